#!/usr/bin/env python3
"""
Verify the sign lookup index against the processed files on disk.

Loads dataset/metadata/sign-index.json, checks that the per-dialect
counts recorded in its _meta block match the entries it holds, and that
every indexed video exists. Exits non-zero when anything is inconsistent.

Usage:
    python scripts/2_verify_index.py

Configuration:
    Uses the output paths in configs/ingest.py.
"""
import logging
import os
import sys

# Add project root and src/ to path for imports
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)
sys.path.insert(0, os.path.join(PROJECT_ROOT, "src"))

import configs.ingest as cfg
from sign_ingest.config import INDEX_FILENAME
from sign_ingest.index.store import IndexStore, JsonFileStorage
from sign_ingest.index.verify import log_report, verify_index

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Main function to verify the index."""
    logger.info("=" * 80)
    logger.info("Sign Dataset Ingestion - Step 2: Verify Index")
    logger.info("=" * 80)

    index_path = os.path.join(cfg.METADATA_DIR, INDEX_FILENAME)
    if not os.path.exists(index_path):
        logger.error(f"Index not found: {index_path}")
        logger.error("Run scripts/1_ingest_dataset.py first.")
        return 1

    store = IndexStore(JsonFileStorage(index_path))
    store.load()
    meta = store.meta
    logger.info(f"Version: {meta.get('version', 'unknown')}")
    logger.info(f"Generated: {meta.get('generatedAt', 'unknown')}")
    for source, count in (meta.get("sources") or {}).items():
        logger.info(f"   {source}: {count} videos")

    report = verify_index(store, cfg.PROCESSED_DIR, cfg.THUMBNAIL_DIR)
    log_report(report)

    logger.info("=" * 80)
    return 0 if report.ok else 1


if __name__ == "__main__":
    sys.exit(main())
