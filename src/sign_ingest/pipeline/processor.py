"""Per-clip processing: probe, thumbnail, transcode and index entry."""
import logging
import os
import re
import threading
from typing import Dict, Optional, Tuple

from ..config import THUMBNAIL_OFFSET_MS, PipelineConfig, QualityPreset
from ..errors import MediaToolError
from ..index.store import IndexStore
from ..media.tools import MediaTools
from ..models import DEFAULT_METADATA, ClipOutcome, DiscoveredClip, IndexEntry, VideoMetadata

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^\w.-]")


def file_stem(label: str) -> str:
    """
    Filesystem-safe stem for a label.

    Examples:
        >>> file_stem("THANK_YOU")
        'THANK_YOU'
        >>> file_stem("A/B")
        'A_B'
    """
    return _UNSAFE_CHARS.sub("_", label)


def _remove_partial(path: str) -> None:
    if os.path.exists(path):
        os.remove(path)


class VideoProcessor:
    """
    Produces the on-disk assets and the index entry for one clip.

    Output paths depend only on (dialect, label, preset), and every step
    is skipped when its output already exists, so re-running a clip is
    cheap and safe.

    Args:
        config: Pipeline configuration (output roots, presets, skip policy)
        tools: Media tool adapter
        store: Index receiving the entries

    Examples:
        >>> processor = VideoProcessor(config, FFmpegTools(), store)
        >>> processor.process(clip)
        <ClipOutcome.PROCESSED: 'processed'>
        >>> processor.output_path(clip, config.primary_preset)
        'dataset/processed/asl/HELLO_720p.mp4'
    """

    def __init__(self, config: PipelineConfig, tools: MediaTools, store: IndexStore):
        self.config = config
        self.tools = tools
        self.store = store
        self._stems_lock = threading.Lock()
        # (dialect dir, file stem) -> label that owns those output files
        self._stems: Dict[Tuple[str, str], str] = {}
        for dialect in store.dialects():
            for label in store.labels(dialect):
                self._stems.setdefault((dialect.lower(), file_stem(label)), label)

    def output_path(self, clip: DiscoveredClip, preset: QualityPreset) -> str:
        return os.path.join(
            self.config.processed_root,
            clip.dialect.lower(),
            f"{file_stem(clip.label)}_{preset.name}.mp4",
        )

    def thumbnail_path(self, clip: DiscoveredClip) -> str:
        return os.path.join(
            self.config.thumbnail_root,
            clip.dialect.lower(),
            f"{file_stem(clip.label)}.jpg",
        )

    def claim_output_name(self, clip: DiscoveredClip) -> Optional[str]:
        """
        Reserve the clip's output file stem for its label.

        Returns:
            None if the stem is free or already owned by this label,
            otherwise the other label whose files use the same stem
        """
        key = (clip.dialect.lower(), file_stem(clip.label))
        with self._stems_lock:
            owner = self._stems.setdefault(key, clip.label)
        return None if owner == clip.label else owner

    def is_already_processed(self, clip: DiscoveredClip) -> bool:
        return self.store.has_primary(clip.dialect, clip.label)

    def probe(self, clip: DiscoveredClip) -> VideoMetadata:
        """Probe the clip, substituting default metadata on any failure."""
        try:
            return self.tools.probe(clip.path)
        except MediaToolError as e:
            logger.debug(f"Could not extract metadata for {clip.filename}: {e}")
            return DEFAULT_METADATA

    def make_thumbnail(self, clip: DiscoveredClip) -> Tuple[str, bool]:
        """
        Extract the thumbnail frame if it does not exist yet.

        Failures are ignored; the clip is still processed.

        Returns:
            Tuple of (thumbnail path, whether this call created the file)
        """
        dest = self.thumbnail_path(clip)
        try:
            os.makedirs(os.path.dirname(dest), exist_ok=True)
            if os.path.exists(dest):
                return dest, False
            try:
                self.tools.extract_thumbnail(clip.path, dest, THUMBNAIL_OFFSET_MS)
            except BaseException:
                _remove_partial(dest)
                raise
            return dest, os.path.exists(dest)
        except (MediaToolError, OSError) as e:
            logger.debug(f"Thumbnail skipped for {clip.filename}: {e}")
            return dest, False

    def _transcode(self, clip: DiscoveredClip, preset: QualityPreset) -> str:
        dest = self.output_path(clip, preset)
        if os.path.exists(dest):
            return dest
        os.makedirs(os.path.dirname(dest), exist_ok=True)
        try:
            self.tools.transcode(clip.path, dest, preset)
        except BaseException:
            # Includes KeyboardInterrupt; a leftover file would be taken as done on the next run
            _remove_partial(dest)
            raise
        return dest

    def transcode_variants(self, clip: DiscoveredClip) -> Dict[str, str]:
        """
        Transcode every requested preset, primary first.

        Raises:
            MediaToolError: If the primary preset fails; failures of
                secondary presets are logged and the variant omitted
        """
        presets = self.config.requested_presets()
        primary, others = presets[0], presets[1:]

        variants = {primary.name: self._transcode(clip, primary)}
        for preset in others:
            try:
                variants[preset.name] = self._transcode(clip, preset)
            except MediaToolError as e:
                logger.warning(f"{clip.label} ({clip.dialect}): {preset.name} variant failed: {e}")
        return variants

    def process(self, clip: DiscoveredClip) -> ClipOutcome:
        """
        Process one clip and record its index entry.

        Returns:
            SKIPPED if the index already holds a primary asset and
            skip-existing is enabled, FAILED if the primary transcode
            failed or another label already uses the same output file
            name, otherwise PROCESSED
        """
        if self.config.skip_existing and self.is_already_processed(clip):
            return ClipOutcome.SKIPPED

        owner = self.claim_output_name(clip)
        if owner is not None:
            logger.error(
                f"Failed {clip.label} ({clip.dialect}) from {clip.path}: "
                f"output name {file_stem(clip.label)} is already used by {owner}"
            )
            return ClipOutcome.FAILED

        metadata = self.probe(clip)
        thumbnail, thumbnail_created = self.make_thumbnail(clip)

        try:
            variants = self.transcode_variants(clip)
        except MediaToolError as e:
            logger.error(f"Failed {clip.label} ({clip.dialect}) from {clip.path}: {e}")
            if thumbnail_created:
                _remove_partial(thumbnail)
            return ClipOutcome.FAILED
        except BaseException:
            if thumbnail_created:
                _remove_partial(thumbnail)
            raise

        entry = IndexEntry.from_clip(
            clip,
            metadata,
            variants,
            primary_quality=self.config.default_quality,
            thumbnail=thumbnail,
        )
        self.store.put(clip.dialect, clip.label, entry)
        return ClipOutcome.PROCESSED
