"""Record types passed between pipeline stages."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class Annotation:
    """
    Normalized per-source annotation for one clip.

    Sentence-level sources carry no label of their own; ``label`` is then
    None and the scanner derives one from the filename.
    """

    clip_id: str
    source: str
    dialect: str
    label: Optional[str] = None
    category: Optional[str] = None
    sentence: Optional[str] = None
    label_sequence: Optional[Tuple[str, ...]] = None
    notation: Optional[str] = None
    split: Optional[str] = None
    bbox: Optional[Tuple[float, ...]] = None
    kind: str = "word"


@dataclass(frozen=True)
class DiscoveredClip:
    """A video file found by the scanner with its resolved label and dialect."""

    path: str
    filename: str
    clip_id: str
    label: str
    dialect: str
    source: str
    extension: str
    annotation: Optional[Annotation] = None

    @property
    def key(self) -> Tuple[str, str]:
        return self.dialect, self.label


@dataclass(frozen=True)
class VideoMetadata:
    """Technical metadata returned by the media prober."""

    duration: float
    width: int
    height: int
    fps: int
    codec: str

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"


# Substituted whenever probing a clip fails
DEFAULT_METADATA = VideoMetadata(duration=2.0, width=1280, height=720, fps=30, codec="unknown")


@dataclass
class IndexEntry:
    """
    One (dialect, label) record of the lookup index.

    Serialized with the camelCase keys the index document uses.

    Examples:
        >>> entry = IndexEntry(video_path="p/asl/HELLO_720p.mp4", thumbnail="t/asl/HELLO.jpg",
        ...                    duration=1.5, source="word2motion",
        ...                    variants={"720p": "p/asl/HELLO_720p.mp4"},
        ...                    fps=30, resolution="1280x720",
        ...                    original_file="v1.mp4", video_id="v1")
        >>> entry.to_dict()["metadata"]["videoId"]
        'v1'
    """

    video_path: str
    thumbnail: str
    duration: float
    source: str
    variants: Dict[str, str]
    fps: int
    resolution: str
    original_file: str
    video_id: str
    context: Optional[Dict[str, Any]] = None

    @classmethod
    def from_clip(
        cls,
        clip: DiscoveredClip,
        metadata: VideoMetadata,
        variants: Dict[str, str],
        primary_quality: str,
        thumbnail: str,
    ) -> "IndexEntry":
        return cls(
            video_path=variants[primary_quality],
            thumbnail=thumbnail,
            duration=metadata.duration,
            source=clip.source,
            variants=dict(variants),
            fps=metadata.fps,
            resolution=metadata.resolution,
            original_file=clip.filename,
            video_id=clip.clip_id,
            context=annotation_context(clip.annotation),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "videoPath": self.video_path,
            "thumbnail": self.thumbnail,
            "duration": self.duration,
            "source": self.source,
            "variants": dict(self.variants),
            "metadata": {
                "fps": self.fps,
                "resolution": self.resolution,
                "originalFile": self.original_file,
                "videoId": self.video_id,
            },
            "context": self.context,
        }


def annotation_context(annotation: Optional[Annotation]) -> Optional[Dict[str, Any]]:
    """Optional context block attached to an index entry."""
    if annotation is None:
        return None
    return {
        "category": annotation.category,
        "sentence": annotation.sentence,
        "glossSequence": list(annotation.label_sequence) if annotation.label_sequence else None,
        "hamnosys": annotation.notation,
    }


class ClipOutcome(Enum):
    PROCESSED = "processed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class ScanResult:
    """Clips discovered by one scan plus per-source clip counts."""

    clips: Tuple[DiscoveredClip, ...]
    source_counts: Dict[str, int] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.clips)


@dataclass
class RunStats:
    """End-of-run counters; every clip increments exactly one of them."""

    processed: int = 0
    failed: int = 0
    skipped: int = 0
    interrupted: bool = False
    failed_clips: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.processed + self.failed + self.skipped

    def record(self, outcome: ClipOutcome, clip: Optional[DiscoveredClip] = None) -> None:
        if outcome is ClipOutcome.PROCESSED:
            self.processed += 1
        elif outcome is ClipOutcome.SKIPPED:
            self.skipped += 1
        else:
            self.failed += 1
            if clip is not None:
                self.failed_clips.append(clip.path)
