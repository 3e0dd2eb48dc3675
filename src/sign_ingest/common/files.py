"""Common file and directory utilities for the ingestion pipeline."""
import os
from glob import glob
from typing import Iterable, List


def is_video_file(filename: str, extensions: Iterable[str]) -> bool:
    """
    Check a filename against a set of video extensions, case-insensitively.

    Examples:
        >>> is_video_file("HELLO.MP4", (".mp4", ".mov"))
        True
        >>> is_video_file("notes.txt", (".mp4",))
        False
    """
    ext = os.path.splitext(filename)[1].lower()
    return ext in {e.lower() for e in extensions}


def is_within(path: str, root: str) -> bool:
    """
    Return True if ``path`` is ``root`` itself or lies beneath it.

    Examples:
        >>> is_within("/data/raw/SignAvatars/a.mp4", "/data/raw/SignAvatars")
        True
        >>> is_within("/data/raw/SignAvatarsExtra/a.mp4", "/data/raw/SignAvatars")
        False
    """
    path = os.path.abspath(path)
    root = os.path.abspath(root)
    try:
        return os.path.commonpath([path, root]) == root
    except ValueError:
        # Different drives on Windows
        return False


def ensure_directories(paths: Iterable[str]) -> None:
    for path in paths:
        os.makedirs(path, exist_ok=True)


def get_filenames(directory: str, pattern: str, extension: str) -> List[str]:
    """
    Retrieve filenames matching a pattern/extension, without extensions.

    Args:
        directory: Path to directory containing files
        pattern: File pattern to match (e.g., "*", "HELLO_*")
        extension: File extension without dot (e.g., "mp4", "jpg")

    Returns:
        Sorted list of filenames without extensions

    Examples:
        >>> get_filenames("/dataset/processed/asl", "*", "mp4")
        ['GOODBYE_720p', 'HELLO_720p']
    """
    search_pattern = f"{pattern}.{extension}"
    return sorted(
        os.path.splitext(os.path.basename(f))[0]
        for f in glob(os.path.join(directory, search_pattern))
    )
