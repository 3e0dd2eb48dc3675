"""Video metadata parsing for ffprobe output."""
import math
from typing import Any, Dict, Optional

from ..models import VideoMetadata

DEFAULT_FPS = 30


def parse_frame_rate(rate: Optional[str]) -> int:
    """
    Parse an ffprobe rational frame rate and round it to an integer.

    Falls back to 30 when the value is absent, malformed or has a zero
    denominator.

    Args:
        rate: Frame rate string such as "30000/1001" or "25"

    Returns:
        Frame rate rounded to the nearest integer

    Examples:
        >>> parse_frame_rate("30000/1001")
        30
        >>> parse_frame_rate("25/1")
        25
        >>> parse_frame_rate("0/0")
        30
        >>> parse_frame_rate(None)
        30
    """
    if not rate:
        return DEFAULT_FPS
    try:
        parts = str(rate).split("/")
        if len(parts) == 2:
            value = int(parts[0]) / int(parts[1])
        elif len(parts) == 1:
            value = float(parts[0])
        else:
            return DEFAULT_FPS
    except (ValueError, ZeroDivisionError):
        return DEFAULT_FPS
    if not math.isfinite(value) or value <= 0:
        return DEFAULT_FPS
    # Round half up, not to even
    return int(math.floor(value + 0.5))


def parse_probe_output(data: Dict[str, Any]) -> VideoMetadata:
    """
    Build VideoMetadata from ``ffprobe -show_format -show_streams`` JSON.

    Args:
        data: Decoded ffprobe JSON document

    Returns:
        VideoMetadata for the first video stream

    Raises:
        ValueError: If the document is not an ffprobe result

    Examples:
        >>> parse_probe_output({
        ...     "format": {"duration": "1.5"},
        ...     "streams": [{"codec_type": "video", "width": 640, "height": 480,
        ...                  "r_frame_rate": "25/1", "codec_name": "h264"}],
        ... })
        VideoMetadata(duration=1.5, width=640, height=480, fps=25, codec='h264')
    """
    if not isinstance(data, dict):
        raise ValueError("ffprobe output is not a JSON object")

    streams = data.get("streams") or []
    video_stream = next(
        (s for s in streams if isinstance(s, dict) and s.get("codec_type") == "video"),
        {},
    )
    fmt = data.get("format") or {}

    return VideoMetadata(
        duration=float(fmt.get("duration") or 0),
        width=int(video_stream.get("width") or 0),
        height=int(video_stream.get("height") or 0),
        fps=parse_frame_rate(video_stream.get("r_frame_rate") or "30/1"),
        codec=video_stream.get("codec_name") or "unknown",
    )
