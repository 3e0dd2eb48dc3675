"""Sign label normalization and text cleanup."""
import os
import re
from typing import List, Optional

import ftfy

_QUALITY_SUFFIX = re.compile(r"_\d+p$", re.IGNORECASE)
_SIGN_PREFIX = re.compile(r"^sign_", re.IGNORECASE)
_VERSION_SUFFIX = re.compile(r"_v\d+$", re.IGNORECASE)
_SEPARATORS = re.compile(r"[\s_-]+")


def normalize_label(text: Optional[str]) -> Optional[str]:
    """
    Upper-case a label and collapse whitespace, hyphens and underscores.

    Args:
        text: Raw gloss or sign name

    Returns:
        Canonical label, or None when nothing remains

    Examples:
        >>> normalize_label("thank you")
        'THANK_YOU'
        >>> normalize_label("  good-morning__ ")
        'GOOD_MORNING'
        >>> normalize_label("") is None
        True
    """
    if text is None:
        return None
    label = _SEPARATORS.sub("_", str(text).strip()).strip("_").upper()
    return label or None


def label_from_filename(filename: str) -> Optional[str]:
    """
    Derive a sign label from a video filename.

    Strips a trailing quality suffix (``_720p``), a leading ``sign_``
    prefix and a trailing version suffix (``_v2``), in that order, then
    normalizes separators and upper-cases. If nothing is left, the
    whole normalized stem is used; None if that is empty too.

    Examples:
        >>> label_from_filename("sign_HELLO_v2_720p.mp4")
        'HELLO'
        >>> label_from_filename("thank-you.mov")
        'THANK_YOU'
        >>> label_from_filename("sign_.mp4")
        'SIGN'
        >>> label_from_filename("-.mp4") is None
        True
    """
    stem = os.path.splitext(os.path.basename(filename))[0]
    name = _QUALITY_SUFFIX.sub("", stem)
    name = _SIGN_PREFIX.sub("", name)
    name = _VERSION_SUFFIX.sub("", name)
    return normalize_label(name) or normalize_label(stem)


def normalize_text(text: str) -> str:
    """
    Fix mojibake and collapse whitespace, keeping case and punctuation.

    Examples:
        >>> normalize_text("Hello  World\\n")
        'Hello World'
        >>> normalize_text("CafÃ©")
        'Café'
    """
    text = ftfy.fix_text(text)
    text = text.replace("\n", " ").replace("\r", " ")
    text = re.sub(r"\s+", " ", text)
    return text.strip()


def split_sequence(text: Optional[str]) -> List[str]:
    """Split a space-delimited gloss sequence, dropping empty tokens."""
    if not text:
        return []
    return [token for token in text.split() if token]
