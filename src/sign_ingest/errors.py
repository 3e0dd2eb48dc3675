"""Exception types raised by the ingestion pipeline."""
from typing import List


class IngestError(Exception):
    """Base class for pipeline errors."""


class ToolUnavailableError(IngestError):
    """
    Raised once at startup when a required external media tool is missing.

    Args:
        missing: Names of the executables that could not be found
    """

    def __init__(self, missing: List[str]):
        self.missing = list(missing)
        super().__init__(f"Required media tools not found: {', '.join(self.missing)}")


class MediaToolError(IngestError):
    """An external probe, thumbnail or transcode invocation failed or timed out."""


class AnnotationParseError(IngestError, ValueError):
    """An annotation file exists but could not be parsed."""
