import json
import os
from typing import Callable, List, Optional, Tuple

import pytest

from sign_ingest.config import PipelineConfig, QualityPreset
from sign_ingest.errors import MediaToolError
from sign_ingest.media.tools import MediaTools
from sign_ingest.models import VideoMetadata


class FakeMediaTools(MediaTools):
    """
    In-memory stand-in for ffprobe/ffmpeg that writes small placeholder files.

    ``fail_transcode`` returns True to fail with MediaToolError, or an
    exception instance to raise after the partial output is written.
    """

    def __init__(
        self,
        missing: Tuple[str, ...] = (),
        metadata: Optional[VideoMetadata] = None,
        probe_error: bool = False,
        thumbnail_error: bool = False,
        fail_transcode: Optional[Callable[[str, QualityPreset], object]] = None,
    ):
        self.missing = list(missing)
        self.metadata = metadata or VideoMetadata(duration=1.5, width=640, height=480, fps=25, codec="h264")
        self.probe_error = probe_error
        self.thumbnail_error = thumbnail_error
        self.fail_transcode = fail_transcode
        self.calls: List[Tuple[str, str]] = []

    def missing_tools(self) -> List[str]:
        return list(self.missing)

    def probe(self, path: str) -> VideoMetadata:
        self.calls.append(("probe", path))
        if self.probe_error:
            raise MediaToolError("ffprobe failed: corrupt input")
        return self.metadata

    def extract_thumbnail(self, path: str, dest: str, offset_ms: int) -> None:
        self.calls.append(("thumbnail", path))
        if self.thumbnail_error:
            raise MediaToolError("ffmpeg failed: no frame at offset")
        with open(dest, "wb") as f:
            f.write(b"jpeg")

    def transcode(self, path: str, dest: str, preset: QualityPreset) -> None:
        self.calls.append(("transcode", path))
        with open(dest, "wb") as f:
            f.write(f"{os.path.basename(path)}@{preset.name}".encode())
        failure = self.fail_transcode(path, preset) if self.fail_transcode is not None else None
        if isinstance(failure, BaseException):
            raise failure
        if failure:
            raise MediaToolError(f"ffmpeg failed: cannot encode {preset.name}")


def touch(path: str, content: bytes = b"video") -> str:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as f:
        f.write(content)
    return path


def write_text(path: str, text: str) -> str:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)
    return path


def write_json(path: str, data) -> str:
    return write_text(path, json.dumps(data))


@pytest.fixture
def fake_tools() -> FakeMediaTools:
    return FakeMediaTools()


@pytest.fixture
def config(tmp_path) -> PipelineConfig:
    return PipelineConfig.from_base_dir(str(tmp_path))


@pytest.fixture
def dataset_root(config) -> str:
    os.makedirs(config.dataset_root, exist_ok=True)
    return config.dataset_root
