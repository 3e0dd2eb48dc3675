#!/usr/bin/env python3
"""
Ingest sign-language videos and build the sign lookup index.

This script loads the per-source annotations (WLASL, How2Sign, PHOENIX,
HamNoSys), scans the dataset for video files, probes, thumbnails and
transcodes each clip, then writes the lookup index keyed by dialect and
sign label. Clips already in the index are skipped, so the script can be
re-run to pick up new videos.

Usage:
    python scripts/1_ingest_dataset.py [dataset_path] [options]

    python scripts/1_ingest_dataset.py --test
    python scripts/1_ingest_dataset.py /path/to/SignAvatars --workers 8
    python scripts/1_ingest_dataset.py --rebuild-index --all-qualities

Configuration:
    Edit configs/ingest.py to change:
    - DATASET_DIR, RAW_DIR: Input roots
    - PROCESSED_DIR, THUMBNAIL_DIR, METADATA_DIR: Output roots
    - DEFAULT_QUALITY, GENERATE_ALL_QUALITIES: Transcode presets
    - BATCH_SIZE, MAX_WORKERS, TOOL_TIMEOUT: Processing settings

Output Format:
    dataset/processed/<dialect>/<LABEL>_<preset>.mp4
    dataset/thumbnails/<dialect>/<LABEL>.jpg
    dataset/metadata/sign-index.json
"""
import argparse
import logging
import multiprocessing
import os
import sys

# Add project root and src/ to path for imports
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)
sys.path.insert(0, os.path.join(PROJECT_ROOT, "src"))

import configs.ingest as cfg
from sign_ingest.config import PipelineConfig
from sign_ingest.pipeline.runner import main as run_main

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sign-language dataset ingestion")
    parser.add_argument("dataset_path", nargs="?", default=cfg.DATASET_DIR,
                        help="Structured dataset root (default: %(default)s)")
    parser.add_argument("--test", action="store_true",
                        help=f"Process only the first {cfg.TEST_LIMIT} videos")
    parser.add_argument("--limit", type=int, default=None,
                        help="Process only the first N videos")
    parser.add_argument("--rebuild-index", action="store_true",
                        help="Ignore the existing index and rebuild it from scratch")
    parser.add_argument("--all-qualities", action="store_true", default=cfg.GENERATE_ALL_QUALITIES,
                        help="Transcode every quality preset")
    parser.add_argument("--no-skip-existing", action="store_true",
                        help="Reprocess clips already present in the index")
    parser.add_argument("--workers", type=int, default=cfg.MAX_WORKERS,
                        help="Worker threads per batch (default: %(default)s)")
    parser.add_argument("--batch-size", type=int, default=cfg.BATCH_SIZE,
                        help="Videos per batch (default: %(default)s)")
    parser.add_argument("--timeout", type=float, default=cfg.TOOL_TIMEOUT,
                        help="Seconds per ffprobe/ffmpeg call (default: %(default)s)")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> PipelineConfig:
    limit = args.limit
    if args.test and limit is None:
        limit = cfg.TEST_LIMIT

    return PipelineConfig(
        dataset_root=args.dataset_path,
        raw_root=cfg.RAW_DIR,
        processed_root=cfg.PROCESSED_DIR,
        thumbnail_root=cfg.THUMBNAIL_DIR,
        metadata_root=cfg.METADATA_DIR,
        default_quality=cfg.DEFAULT_QUALITY,
        batch_size=args.batch_size,
        skip_existing=cfg.SKIP_EXISTING and not args.no_skip_existing,
        generate_all_qualities=args.all_qualities,
        rebuild_index=args.rebuild_index,
        limit=limit,
        max_workers=max(1, min(args.workers, multiprocessing.cpu_count())),
        tool_timeout=args.timeout,
        default_dialect=cfg.DEFAULT_DIALECT,
    )


def main(argv=None) -> int:
    """Main function to orchestrate annotation loading, scanning, processing and indexing."""
    args = parse_args(argv)

    # Configure logging
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    logger.info("=" * 80)
    logger.info("Sign Dataset Ingestion - Step 1: Ingest Dataset")
    logger.info("=" * 80)

    config = build_config(args)
    logger.info(f"Configuration:")
    logger.info(f"  - Dataset: {config.dataset_root}")
    logger.info(f"  - Default quality: {config.default_quality}")
    logger.info(f"  - All qualities: {config.generate_all_qualities}")
    logger.info(f"  - Batch size: {config.batch_size}")
    logger.info(f"  - Max workers: {config.max_workers}")
    if config.limit is not None:
        logger.info(f"  - Limit: {config.limit} videos")

    return run_main(config)


if __name__ == "__main__":
    sys.exit(main())
