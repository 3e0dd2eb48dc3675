"""Sign-language video ingestion pipeline.

This package scans multi-source sign-language video datasets, reconciles
their annotations, transcodes and thumbnails each clip, and builds a
lookup index keyed by dialect and sign label.
"""
__version__ = "2.0.0"
