"""Annotation loading for word-level, sentence-level and notation-level sources.

Each loader returns a table mapping clip-id to a normalized Annotation.
Missing files produce an empty table; a file that cannot be parsed
empties the table of the source it belongs to. Neither is fatal.
"""
import csv
import io
import json
import logging
import os
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pandas as pd

from ..common.labels import normalize_label, normalize_text, split_sequence
from ..config import SubDataset
from ..errors import AnnotationParseError
from ..models import Annotation

logger = logging.getLogger(__name__)

WLASL = "wlasl"
HOW2SIGN = "how2sign"
PHOENIX = "phoenix"
HAMNOSYS = "hamnosys"

# Lookup order when a clip-id appears in several tables
SOURCE_PRIORITY: Tuple[str, ...] = (WLASL, HOW2SIGN, PHOENIX, HAMNOSYS)

SOURCE_DIALECTS = {
    WLASL: "ASL",
    HOW2SIGN: "ASL",
    PHOENIX: "GSL",
    HAMNOSYS: "ISL",
}

AnnotationTable = Dict[str, Annotation]


class AnnotationTables:
    """
    Read-only set of per-source annotation tables.

    Args:
        tables: Mapping from source tag to clip-id table

    Examples:
        >>> tables = AnnotationTables({"wlasl": {"v1": ann}})
        >>> tables.find("v1").source
        'wlasl'
    """

    def __init__(self, tables: Optional[Dict[str, AnnotationTable]] = None):
        self._tables: Dict[str, AnnotationTable] = dict(tables or {})

    def __getitem__(self, source: str) -> AnnotationTable:
        return self._tables.get(source, {})

    def __contains__(self, source: str) -> bool:
        return source in self._tables

    def sources(self) -> List[str]:
        return list(self._tables)

    def total(self) -> int:
        return sum(len(t) for t in self._tables.values())

    def find(self, clip_id: str) -> Optional[Annotation]:
        """Return the annotation for ``clip_id`` from the highest-priority table."""
        ordered = list(SOURCE_PRIORITY) + [s for s in self._tables if s not in SOURCE_PRIORITY]
        for source in ordered:
            annotation = self._tables.get(source, {}).get(clip_id)
            if annotation is not None:
                return annotation
        return None


def _read_json(path: str) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        raise AnnotationParseError(f"{path}: {e}") from e


def _clean(value: Any) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    return str(value).strip()


def _bbox(value: Any) -> Optional[Tuple[float, ...]]:
    if not isinstance(value, (list, tuple)):
        return None
    try:
        return tuple(float(v) for v in value)
    except (TypeError, ValueError):
        return None


def parse_wlasl(data: Any) -> AnnotationTable:
    """
    Parse WLASL-style word-level annotations.

    Args:
        data: Decoded JSON, a list of gloss groups each holding ``instances``

    Returns:
        Table keyed by ``video_id``; a repeated id keeps the last instance

    Raises:
        AnnotationParseError: If the document is not a list of gloss groups

    Examples:
        >>> table = parse_wlasl([{"gloss": "hello", "instances": [{"video_id": "v1"}]}])
        >>> table["v1"].label
        'HELLO'
    """
    if not isinstance(data, list):
        raise AnnotationParseError("WLASL annotations must be a list of gloss entries")

    table: AnnotationTable = {}
    for entry in data:
        if not isinstance(entry, dict):
            raise AnnotationParseError(f"Unexpected WLASL entry: {entry!r}")
        label = normalize_label(entry.get("gloss"))
        if not label:
            continue
        category = entry.get("action_class") or "general"

        for instance in entry.get("instances") or []:
            if not isinstance(instance, dict):
                continue
            clip_id = _clean(instance.get("video_id"))
            if not clip_id:
                continue
            table[clip_id] = Annotation(
                clip_id=clip_id,
                source=WLASL,
                dialect=SOURCE_DIALECTS[WLASL],
                label=label,
                category=category,
                split=instance.get("split"),
                bbox=_bbox(instance.get("bbox")),
                kind="word",
            )
    return table


def parse_hamnosys(data: Any) -> AnnotationTable:
    """
    Parse HamNoSys notation annotations.

    Accepts either a list of entries carrying ``video_id`` (or ``id``) or
    an object keyed directly by clip-id. The label comes from ``gloss``,
    falling back to ``sign``.
    """
    if isinstance(data, list):
        items = []
        for entry in data:
            if not isinstance(entry, dict):
                raise AnnotationParseError(f"Unexpected HamNoSys entry: {entry!r}")
            items.append((_clean(entry.get("video_id") or entry.get("id")), entry))
    elif isinstance(data, dict):
        items = [(_clean(k), v if isinstance(v, dict) else {}) for k, v in data.items()]
    else:
        raise AnnotationParseError("HamNoSys annotations must be a list or an object")

    table: AnnotationTable = {}
    for clip_id, entry in items:
        if not clip_id:
            continue
        table[clip_id] = Annotation(
            clip_id=clip_id,
            source=HAMNOSYS,
            dialect=SOURCE_DIALECTS[HAMNOSYS],
            label=normalize_label(entry.get("gloss") or entry.get("sign")),
            notation=entry.get("hamnosys"),
            kind="notation",
        )
    return table


def detect_delimiter(text: str) -> str:
    """
    Pick the field delimiter for a sentence annotation file.

    Examples:
        >>> detect_delimiter("id|video|annotation\\n1|v1|HELLO")
        '|'
        >>> detect_delimiter("video_id,sentence\\nv1,hello")
        ','
    """
    return "|" if "|" in text else ","


def sentence_source(filename: str) -> str:
    """Source tag for a sentence annotation file, chosen by filename."""
    return HOW2SIGN if HOW2SIGN in os.path.basename(filename).lower() else PHOENIX


def read_delimited_rows(path: str) -> List[List[str]]:
    """
    Read a delimited annotation file, skipping its header line.

    Args:
        path: Annotation file path

    Returns:
        Rows as lists of stripped strings (short rows are not padded)

    Raises:
        AnnotationParseError: If the file cannot be read, decoded or tokenized
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise AnnotationParseError(f"{path}: {e}") from e

    delimiter = detect_delimiter(text)
    # Rows may be ragged (optional trailing columns); size the frame to the widest one
    width = max(
        (line.count(delimiter) + 1 for line in text.splitlines()[1:] if line.strip()),
        default=0,
    )
    if width == 0:
        return []

    try:
        frame = pd.read_csv(
            io.StringIO(text),
            sep=delimiter,
            header=None,
            names=list(range(width)),
            index_col=False,
            skiprows=1,
            dtype=str,
            keep_default_na=False,
            engine="python",
            on_bad_lines="skip",
            quoting=csv.QUOTE_NONE if delimiter == "|" else csv.QUOTE_MINIMAL,
        )
    except pd.errors.EmptyDataError:
        return []
    except (pd.errors.ParserError, ValueError) as e:
        raise AnnotationParseError(f"{path}: {e}") from e

    rows = []
    for values in frame.itertuples(index=False, name=None):
        cells = [_clean(v) for v in values]
        while cells and not cells[-1]:
            cells.pop()
        if cells:
            rows.append(cells)
    return rows


def parse_sentence_rows(rows: Iterable[List[str]], source: str) -> AnnotationTable:
    """
    Convert sentence annotation rows into a table.

    How2Sign rows are (clip-id, sentence, optional gloss sequence);
    Phoenix rows are (ordinal, clip-id, annotation) where the gloss
    sequence is the whitespace-split annotation.

    Examples:
        >>> table = parse_sentence_rows([["7", "v42", "A SENTENCE HERE"]], "phoenix")
        >>> table["v42"].label_sequence
        ('A', 'SENTENCE', 'HERE')
    """
    table: AnnotationTable = {}
    for parts in rows:
        if source == HOW2SIGN:
            if len(parts) < 2 or not parts[0]:
                continue
            clip_id, sentence = parts[0], normalize_text(parts[1])
            sequence = split_sequence(parts[2]) if len(parts) > 2 else []
        else:
            if len(parts) < 3 or not parts[1]:
                continue
            clip_id, sentence = parts[1], normalize_text(parts[2])
            sequence = split_sequence(parts[2])

        table[clip_id] = Annotation(
            clip_id=clip_id,
            source=source,
            dialect=SOURCE_DIALECTS[source],
            sentence=sentence,
            label_sequence=tuple(sequence) if sequence else None,
            kind="sentence",
        )
    return table


def load_word_annotations(path: str) -> AnnotationTable:
    if not os.path.isfile(path):
        logger.info(f"WLASL annotations not found at {path}")
        return {}
    table = parse_wlasl(_read_json(path))
    logger.info(f"WLASL: {len(table)} video mappings")
    return table


def load_notation_annotations(path: str) -> AnnotationTable:
    if not os.path.isfile(path):
        logger.info(f"HamNoSys annotations not found at {path}")
        return {}
    table = parse_hamnosys(_read_json(path))
    logger.info(f"HamNoSys: {len(table)} entries")
    return table


def load_sentence_annotations(paths: Iterable[str]) -> Dict[str, AnnotationTable]:
    """
    Load How2Sign- and Phoenix-style sentence files.

    A parse failure in any file empties the table of that file's source
    for this run; the other source keeps its rows.

    Args:
        paths: Annotation file paths; missing files are skipped

    Returns:
        Mapping with ``how2sign`` and ``phoenix`` tables
    """
    tables: Dict[str, AnnotationTable] = {HOW2SIGN: {}, PHOENIX: {}}
    failed = set()

    for path in paths:
        if not os.path.isfile(path):
            logger.debug(f"Sentence annotation file not found: {path}")
            continue
        source = sentence_source(path)
        if source in failed:
            continue
        try:
            rows = read_delimited_rows(path)
        except AnnotationParseError as e:
            logger.warning(f"Could not parse {source} annotations, skipping source: {e}")
            failed.add(source)
            tables[source] = {}
            continue
        tables[source].update(parse_sentence_rows(rows, source))

    logger.info(f"How2Sign: {len(tables[HOW2SIGN])} sentences")
    logger.info(f"PHOENIX: {len(tables[PHOENIX])} sentences")
    return tables


def load_annotations(dataset_root: str, subdatasets: Iterable[SubDataset]) -> AnnotationTables:
    """
    Load annotation tables for every configured sub-dataset.

    Args:
        dataset_root: Root directory of the structured dataset
        subdatasets: Sub-dataset definitions to load

    Returns:
        AnnotationTables covering every source that loaded

    Examples:
        >>> tables = load_annotations("/data/raw/SignAvatars", DEFAULT_SUBDATASETS)
        >>> tables.find("00335").label
        'ABDOMEN'
    """
    logger.info("Loading annotations...")
    tables: Dict[str, AnnotationTable] = {}

    for sub in subdatasets:
        base = os.path.join(dataset_root, sub.path)
        if not os.path.isdir(base):
            logger.info(f"{sub.name}: Not found, skipping")
            continue

        files = [os.path.join(base, f) for f in sub.annotation_files]
        if sub.kind == "sentence":
            tables.update(load_sentence_annotations(files))
            continue

        if sub.kind not in ("word", "notation"):
            logger.warning(f"{sub.name}: unknown annotation kind '{sub.kind}', skipping")
            continue
        source = WLASL if sub.kind == "word" else HAMNOSYS
        loader = load_word_annotations if sub.kind == "word" else load_notation_annotations

        merged: AnnotationTable = {}
        try:
            for path in files:
                merged.update(loader(path))
        except AnnotationParseError as e:
            logger.warning(f"{sub.name}: {e}")
            merged = {}
        tables[source] = merged

    result = AnnotationTables(tables)
    logger.info(f"Loaded {result.total()} annotations")
    return result
