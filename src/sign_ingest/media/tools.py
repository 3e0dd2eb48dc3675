"""Media tool adapters for probing, thumbnailing and transcoding."""
import json
import logging
import shutil
import subprocess
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from ..common.video import parse_probe_output
from ..config import QualityPreset
from ..errors import MediaToolError
from ..models import VideoMetadata

logger = logging.getLogger(__name__)

REMEDIATION = (
    "FFmpeg not found. Please install FFmpeg (which provides ffprobe) first.\n"
    "   Windows: winget install FFmpeg\n"
    "   Mac: brew install ffmpeg\n"
    "   Linux: apt-get install ffmpeg"
)


class MediaTools(ABC):
    """
    Abstract interface over the external media prober and transcoder.

    Subclasses should implement:
    - missing_tools: Names of required executables that are unavailable
    - probe: Read container/stream metadata for one file
    - extract_thumbnail: Write a single JPEG frame
    - transcode: Write one scaled, padded, encoded variant

    Every operation raises MediaToolError on failure.
    """

    @abstractmethod
    def missing_tools(self) -> List[str]:
        """
        Return the required executables that cannot be run.

        Called once at startup; an empty list means the run may proceed.
        """
        pass

    @abstractmethod
    def probe(self, path: str) -> VideoMetadata:
        """
        Probe a video file.

        Args:
            path: Source video path

        Returns:
            VideoMetadata for the first video stream

        Raises:
            MediaToolError: If the prober fails, times out or returns garbage
        """
        pass

    @abstractmethod
    def extract_thumbnail(self, path: str, dest: str, offset_ms: int) -> None:
        """Write the frame at ``offset_ms`` of ``path`` to ``dest`` as JPEG."""
        pass

    @abstractmethod
    def transcode(self, path: str, dest: str, preset: QualityPreset) -> None:
        """Transcode ``path`` into ``dest`` at the preset's exact resolution."""
        pass


def scale_pad_filter(preset: QualityPreset) -> str:
    """
    Build the ffmpeg filter that letterboxes/pillarboxes to the preset size.

    Examples:
        >>> scale_pad_filter(QualityPreset("480p", 854, 480, "1M"))
        'scale=854:480:force_original_aspect_ratio=decrease,pad=854:480:(ow-iw)/2:(oh-ih)/2'
    """
    w, h = preset.width, preset.height
    return (
        f"scale={w}:{h}:force_original_aspect_ratio=decrease,"
        f"pad={w}:{h}:(ow-iw)/2:(oh-ih)/2"
    )


def format_offset(offset_ms: int) -> str:
    """
    Format a millisecond offset as an ffmpeg timestamp.

    Examples:
        >>> format_offset(500)
        '00:00:00.500'
        >>> format_offset(61250)
        '00:01:01.250'
    """
    seconds, millis = divmod(int(offset_ms), 1000)
    minutes, seconds = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}.{millis:03d}"


class FFmpegTools(MediaTools):
    """
    Runs ffprobe and ffmpeg as child processes.

    Args:
        ffmpeg: ffmpeg executable name or path
        ffprobe: ffprobe executable name or path
        timeout: Seconds before a single invocation is killed (None = no limit)
        video_codec: Encoder for transcoded video
        crf: Constant rate factor passed to the encoder
        encoder_preset: Encoder speed preset
        audio_codec: Encoder for audio
        audio_bitrate: Audio bitrate

    Examples:
        >>> tools = FFmpegTools(timeout=120)
        >>> tools.missing_tools()
        []
        >>> meta = tools.probe("/videos/HELLO.mp4")
        >>> meta.fps
        30
    """

    def __init__(
        self,
        ffmpeg: str = "ffmpeg",
        ffprobe: str = "ffprobe",
        timeout: Optional[float] = 300.0,
        video_codec: str = "libx264",
        crf: int = 23,
        encoder_preset: str = "fast",
        audio_codec: str = "aac",
        audio_bitrate: str = "128k",
    ):
        self.ffmpeg = ffmpeg
        self.ffprobe = ffprobe
        self.timeout = timeout
        self.video_codec = video_codec
        self.crf = crf
        self.encoder_preset = encoder_preset
        self.audio_codec = audio_codec
        self.audio_bitrate = audio_bitrate

    def missing_tools(self) -> List[str]:
        return [tool for tool in (self.ffprobe, self.ffmpeg) if shutil.which(tool) is None]

    def _run(self, cmd: Sequence[str]) -> subprocess.CompletedProcess:
        try:
            proc = subprocess.run(
                list(cmd),
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except OSError as e:
            raise MediaToolError(f"{cmd[0]} could not be started: {e}") from e
        except subprocess.TimeoutExpired as e:
            raise MediaToolError(f"{cmd[0]} timed out after {self.timeout}s") from e

        if proc.returncode != 0:
            stderr = (proc.stderr or "").strip().splitlines()
            detail = stderr[-1] if stderr else f"exit code {proc.returncode}"
            raise MediaToolError(f"{cmd[0]} failed: {detail}")
        return proc

    def probe(self, path: str) -> VideoMetadata:
        proc = self._run([
            self.ffprobe,
            "-v", "quiet",
            "-print_format", "json",
            "-show_format",
            "-show_streams",
            path,
        ])
        try:
            return parse_probe_output(json.loads(proc.stdout or ""))
        except (ValueError, TypeError) as e:
            raise MediaToolError(f"Invalid ffprobe output for {path}: {e}") from e

    def extract_thumbnail(self, path: str, dest: str, offset_ms: int) -> None:
        self._run([
            self.ffmpeg, "-y",
            "-i", path,
            "-ss", format_offset(offset_ms),
            "-vframes", "1",
            "-q:v", "2",
            dest,
        ])

    def transcode(self, path: str, dest: str, preset: QualityPreset) -> None:
        logger.debug("Transcoding %s -> %s (%s)", path, dest, preset.name)
        self._run([
            self.ffmpeg, "-y",
            "-i", path,
            "-vf", scale_pad_filter(preset),
            "-c:v", self.video_codec,
            "-preset", self.encoder_preset,
            "-crf", str(self.crf),
            "-b:v", preset.bitrate,
            "-c:a", self.audio_codec,
            "-b:a", self.audio_bitrate,
            "-movflags", "+faststart",
            dest,
        ])
