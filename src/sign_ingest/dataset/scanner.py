"""Dataset scanning: discover video clips and resolve their label and dialect."""
import logging
import os
from typing import Iterable, List, Optional, Sequence, Tuple

from ..annotations.loader import AnnotationTables
from ..common.files import is_video_file, is_within
from ..common.labels import label_from_filename
from ..config import DIALECTS, VIDEO_EXTENSIONS, PipelineConfig
from ..models import DiscoveredClip, ScanResult

logger = logging.getLogger(__name__)

CUSTOM_SOURCE = "custom"


def walk_videos(
    root: str,
    extensions: Iterable[str] = VIDEO_EXTENSIONS,
    dialects: Iterable[str] = DIALECTS,
    exclude: Sequence[str] = (),
) -> List[Tuple[str, Optional[str]]]:
    """
    Depth-first walk of ``root`` collecting video files with their directory dialect.

    A directory whose name matches a dialect code (case-insensitively)
    sets the dialect for everything beneath it, overriding any dialect
    inherited from its ancestors. Entries are visited in name order;
    the files of a directory come before those of its subdirectories.

    Args:
        root: Directory to walk
        extensions: Accepted video extensions
        dialects: Supported dialect codes
        exclude: Directories to prune from the walk

    Returns:
        List of (file path, dialect or None) tuples

    Examples:
        >>> walk_videos("/data/raw")
        [('/data/raw/bsl/HELLO.mp4', 'BSL'), ('/data/raw/bsl/asl/HI.mp4', 'ASL')]
    """
    dialect_codes = {d.upper() for d in dialects}
    found: List[Tuple[str, Optional[str]]] = []
    stack: List[Tuple[str, Optional[str]]] = [(root, None)]

    while stack:
        current, dialect = stack.pop()
        try:
            entries = sorted(os.scandir(current), key=lambda e: e.name)
        except OSError as e:
            logger.warning(f"Cannot read directory {current}: {e}")
            continue

        subdirs = []
        for entry in entries:
            if entry.is_dir():
                if any(is_within(entry.path, ex) for ex in exclude):
                    continue
                upper = entry.name.upper()
                subdirs.append((entry.path, upper if upper in dialect_codes else dialect))
            elif entry.is_file() and is_video_file(entry.name, extensions):
                found.append((entry.path, dialect))

        # Reversed so the first subdirectory is popped first
        stack.extend(reversed(subdirs))

    return found


class DatasetScanner:
    """
    Discovers clips under the configured sub-datasets and catch-all root.

    Args:
        config: Pipeline configuration
        annotations: Loaded annotation tables, consulted in priority order

    Examples:
        >>> scanner = DatasetScanner(config, load_annotations(config.dataset_root, config.subdatasets))
        >>> result = scanner.scan()
        >>> result.source_counts
        {'word2motion': 120, 'custom': 4}
    """

    def __init__(self, config: PipelineConfig, annotations: AnnotationTables):
        self.config = config
        self.annotations = annotations

    def resolve_clip(
        self,
        path: str,
        dir_dialect: Optional[str],
        source: str,
        default_dialect: Optional[str],
    ) -> Optional[DiscoveredClip]:
        """Build the clip for one video file, or None if no label can be derived."""
        filename = os.path.basename(path)
        clip_id, extension = os.path.splitext(filename)
        annotation = self.annotations.find(clip_id)

        label = (annotation.label if annotation else None) or label_from_filename(filename)
        if label is None:
            logger.warning(f"Skipping {path}: no sign label in filename")
            return None
        dialect = (
            (annotation.dialect if annotation else None)
            or dir_dialect
            or default_dialect
            or self.config.default_dialect
        )
        return DiscoveredClip(
            path=path,
            filename=filename,
            clip_id=clip_id,
            label=label,
            dialect=dialect.upper(),
            source=source,
            extension=extension.lower(),
            annotation=annotation,
        )

    def scan_directory(
        self,
        directory: str,
        source: str,
        default_dialect: Optional[str] = None,
        exclude: Sequence[str] = (),
    ) -> Tuple[DiscoveredClip, ...]:
        files = walk_videos(directory, VIDEO_EXTENSIONS, DIALECTS, exclude)
        clips = (self.resolve_clip(path, dialect, source, default_dialect) for path, dialect in files)
        return tuple(c for c in clips if c is not None)

    def structured_roots(self) -> List[str]:
        roots = [self.config.dataset_root]
        roots.extend(os.path.join(self.config.dataset_root, sub.path) for sub in self.config.subdatasets)
        return roots

    def scan(self) -> ScanResult:
        """
        Scan every sub-dataset, then the catch-all root.

        Returns:
            ScanResult with clips in discovery order (truncated to
            ``config.limit`` when set) and per-source clip counts
        """
        logger.info("Scanning dataset directory...")
        clips: List[DiscoveredClip] = []
        counts = {}

        for sub in self.config.subdatasets:
            videos_path = os.path.join(self.config.dataset_root, sub.path, sub.videos_dir)
            if not os.path.isdir(videos_path):
                logger.info(f"{sub.name}/{sub.videos_dir}: Not found")
                continue
            found = self.scan_directory(videos_path, sub.name, sub.dialect)
            clips.extend(found)
            counts[sub.name] = len(found)
            logger.info(f"{sub.name}: {len(found)} videos")

        raw_root = self.config.raw_root
        if raw_root and os.path.isdir(raw_root):
            custom = self.scan_directory(
                raw_root,
                CUSTOM_SOURCE,
                self.config.default_dialect,
                exclude=self.structured_roots(),
            )
            if custom:
                clips.extend(custom)
                counts[CUSTOM_SOURCE] = len(custom)
                logger.info(f"{CUSTOM_SOURCE}: {len(custom)} videos")

        logger.info(f"Total: {len(clips)} video files")

        if self.config.limit is not None:
            logger.info(f"Limited mode: processing first {self.config.limit} videos only")
            clips = clips[: self.config.limit]

        return ScanResult(clips=tuple(clips), source_counts=counts)
