"""Pipeline configuration: sub-datasets, quality presets and run options."""
import os
from dataclasses import dataclass, field, replace
from typing import Dict, Optional, Tuple

# Supported dialect codes; directory names matching one of these set the dialect
DIALECTS: Tuple[str, ...] = ("ASL", "BSL", "ISL", "GSL")
DEFAULT_DIALECT = "ASL"

VIDEO_EXTENSIONS: Tuple[str, ...] = (".mp4", ".mov", ".avi", ".webm", ".mkv")

INDEX_FILENAME = "sign-index.json"
INDEX_VERSION = "2.0.0"

# Thumbnail frame offset in milliseconds
THUMBNAIL_OFFSET_MS = 500


@dataclass(frozen=True)
class QualityPreset:
    """
    Target resolution and video bitrate for one transcoded variant.

    Examples:
        >>> QualityPreset("720p", 1280, 720, "2M").resolution
        '1280x720'
    """

    name: str
    width: int
    height: int
    bitrate: str

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass(frozen=True)
class SubDataset:
    """
    One structured source inside the dataset root.

    Args:
        name: Sub-dataset name, also used as the index ``source`` field
        path: Directory relative to the dataset root
        videos_dir: Media directory relative to ``path``
        annotation_files: Annotation files relative to ``path``
        kind: Annotation format, one of ``word``, ``sentence``, ``notation``
        dialect: Default dialect for clips that match no annotation
    """

    name: str
    path: str
    videos_dir: str = "videos"
    annotation_files: Tuple[str, ...] = ()
    kind: str = "word"
    dialect: str = DEFAULT_DIALECT


DEFAULT_PRESETS: Dict[str, QualityPreset] = {
    "1080p": QualityPreset("1080p", 1920, 1080, "4M"),
    "720p": QualityPreset("720p", 1280, 720, "2M"),
    "480p": QualityPreset("480p", 854, 480, "1M"),
}

DEFAULT_SUBDATASETS: Tuple[SubDataset, ...] = (
    SubDataset(
        name="word2motion",
        path="word2motion",
        annotation_files=("text/WLASL_v0.3.json",),
        kind="word",
        dialect="ASL",
    ),
    SubDataset(
        name="language2motion",
        path="language2motion",
        annotation_files=(
            "text/how2sign_train.csv",
            "text/how2sign_test.csv",
            "text/how2sign_val.csv",
            "text/PHOENIX-2014-T.train.corpus.csv",
            "text/PHOENIX-2014-T.test.corpus.csv",
        ),
        kind="sentence",
        dialect="ASL",
    ),
    SubDataset(
        name="hamnosys2motion",
        path="hamnosys2motion",
        annotation_files=("data.json",),
        kind="notation",
        dialect="ISL",
    ),
)


@dataclass(frozen=True)
class PipelineConfig:
    """
    All settings needed for one ingestion run.

    Paths default to the ``dataset/`` layout under ``base_dir``; use
    :meth:`from_base_dir` to build one, or pass explicit paths.

    Args:
        dataset_root: Root of the structured multi-source dataset
        raw_root: Catch-all media root for ad hoc clips
        processed_root: Output root for transcoded variants
        thumbnail_root: Output root for thumbnails
        metadata_root: Directory holding the index document
        subdatasets: Structured sources to load and scan
        presets: Available quality presets by name
        default_quality: Preset used for the primary asset
        batch_size: Number of clips per scheduler batch
        skip_existing: Skip clips already present in the index
        generate_all_qualities: Transcode every preset instead of the default only
        rebuild_index: Ignore any previously persisted index
        limit: Only process the first N discovered clips
        max_workers: Worker threads per batch (1 is strictly sequential)
        tool_timeout: Seconds before an external tool call is abandoned
        default_dialect: Dialect used when nothing else resolves one
    """

    dataset_root: str
    raw_root: str
    processed_root: str
    thumbnail_root: str
    metadata_root: str
    subdatasets: Tuple[SubDataset, ...] = DEFAULT_SUBDATASETS
    presets: Dict[str, QualityPreset] = field(default_factory=lambda: dict(DEFAULT_PRESETS))
    default_quality: str = "720p"
    batch_size: int = 50
    skip_existing: bool = True
    generate_all_qualities: bool = False
    rebuild_index: bool = False
    limit: Optional[int] = None
    max_workers: int = 1
    tool_timeout: Optional[float] = 300.0
    default_dialect: str = DEFAULT_DIALECT

    def __post_init__(self):
        if self.default_quality not in self.presets:
            raise ValueError(f"Unknown default quality preset: {self.default_quality}")
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")

    @classmethod
    def from_base_dir(cls, base_dir: str, **overrides) -> "PipelineConfig":
        """
        Build a config with the standard ``dataset/`` layout under ``base_dir``.

        Examples:
            >>> cfg = PipelineConfig.from_base_dir("/srv/signs", batch_size=10)
            >>> cfg.index_path
            '/srv/signs/dataset/metadata/sign-index.json'
        """
        dataset_dir = os.path.join(base_dir, "dataset")
        paths = {
            "raw_root": os.path.join(dataset_dir, "raw"),
            "dataset_root": os.path.join(dataset_dir, "raw", "SignAvatars"),
            "processed_root": os.path.join(dataset_dir, "processed"),
            "thumbnail_root": os.path.join(dataset_dir, "thumbnails"),
            "metadata_root": os.path.join(dataset_dir, "metadata"),
        }
        paths.update(overrides)
        return cls(**paths)

    def with_options(self, **changes) -> "PipelineConfig":
        return replace(self, **changes)

    @property
    def index_path(self) -> str:
        return os.path.join(self.metadata_root, INDEX_FILENAME)

    @property
    def primary_preset(self) -> QualityPreset:
        return self.presets[self.default_quality]

    def requested_presets(self) -> Tuple[QualityPreset, ...]:
        """Presets to transcode, primary preset first."""
        if not self.generate_all_qualities:
            return (self.primary_preset,)
        others = tuple(p for name, p in self.presets.items() if name != self.default_quality)
        return (self.primary_preset,) + others
