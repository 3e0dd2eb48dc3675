"""Cross-check a persisted index against its own counts and the filesystem."""
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List

from ..common.files import get_filenames
from .store import IndexStore

logger = logging.getLogger(__name__)


@dataclass
class VerifyReport:
    """Result of verifying an index."""

    dialect_counts: Dict[str, int] = field(default_factory=dict)
    meta_counts: Dict[str, int] = field(default_factory=dict)
    missing_assets: List[str] = field(default_factory=list)
    missing_thumbnails: List[str] = field(default_factory=list)
    video_files: Dict[str, int] = field(default_factory=dict)
    thumbnail_files: int = 0
    issues: List[str] = field(default_factory=list)

    @property
    def total_signs(self) -> int:
        return sum(self.dialect_counts.values())

    @property
    def ok(self) -> bool:
        return not self.issues


def count_files_by_dialect(root: str, extension: str) -> Dict[str, int]:
    """Count ``*.<extension>`` files in each dialect subdirectory of ``root``."""
    counts: Dict[str, int] = {}
    if not os.path.isdir(root):
        return counts
    for name in sorted(os.listdir(root)):
        folder = os.path.join(root, name)
        if os.path.isdir(folder):
            counts[name.upper()] = len(get_filenames(folder, "*", extension))
    return counts


def verify_index(store: IndexStore, processed_root: str, thumbnail_root: str) -> VerifyReport:
    """
    Verify that index counts are consistent and every asset exists on disk.

    Checks that ``_meta`` per-dialect counts match the entries actually
    present, that every entry's primary asset and variants exist, and
    notes missing thumbnails (thumbnails are best-effort, so those are
    not issues).

    Args:
        store: Loaded index
        processed_root: Root of transcoded assets
        thumbnail_root: Root of thumbnails

    Returns:
        VerifyReport; ``report.ok`` is False when anything is inconsistent

    Examples:
        >>> store = IndexStore(JsonFileStorage(cfg.index_path)); store.load()
        >>> report = verify_index(store, cfg.processed_root, cfg.thumbnail_root)
        >>> report.ok, report.total_signs
        (True, 120)
    """
    report = VerifyReport()
    meta = store.meta
    report.meta_counts = dict(meta.get("dialects") or {})

    for dialect in store.dialects():
        entries = store.entries(dialect)
        report.dialect_counts[dialect] = len(entries)
        for label, entry in entries.items():
            paths = [entry.get("videoPath")] + list((entry.get("variants") or {}).values())
            for path in dict.fromkeys(p for p in paths if p):
                if not os.path.exists(path):
                    report.missing_assets.append(path)
            if not entry.get("videoPath"):
                report.issues.append(f"{dialect}/{label} has no primary asset")
            thumbnail = entry.get("thumbnail")
            if thumbnail and not os.path.exists(thumbnail):
                report.missing_thumbnails.append(thumbnail)

    for dialect in sorted(set(report.meta_counts) | set(report.dialect_counts)):
        recorded = report.meta_counts.get(dialect, 0)
        actual = report.dialect_counts.get(dialect, 0)
        if recorded != actual:
            report.issues.append(f"{dialect}: _meta records {recorded} signs, index holds {actual}")
    if meta and meta.get("totalSigns", 0) != report.total_signs:
        report.issues.append(
            f"_meta totalSigns {meta.get('totalSigns')} != {report.total_signs} entries"
        )
    if report.missing_assets:
        report.issues.append(f"{len(report.missing_assets)} indexed video files are missing")

    report.video_files = count_files_by_dialect(processed_root, "mp4")
    report.thumbnail_files = sum(count_files_by_dialect(thumbnail_root, "jpg").values())
    return report


def log_report(report: VerifyReport) -> None:
    logger.info(f"Total signs: {report.total_signs}")
    for dialect, count in report.dialect_counts.items():
        logger.info(f"   {dialect}: {count} signs indexed, {report.video_files.get(dialect, 0)} video files")
    logger.info(f"Thumbnails: {report.thumbnail_files}")
    if report.missing_thumbnails:
        logger.warning(f"{len(report.missing_thumbnails)} thumbnails missing")
    for path in report.missing_assets[:20]:
        logger.warning(f"Missing asset: {path}")
    for issue in report.issues:
        logger.error(issue)
    if report.ok:
        logger.info("Index verified: all entries resolve to files on disk")
