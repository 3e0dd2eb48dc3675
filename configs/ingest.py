"""Configuration for dataset ingestion (scripts/1_ingest_dataset.py, scripts/2_verify_index.py)"""
import os

# =============================================================================
# PROJECT PATHS
# =============================================================================

# Base paths (ROOT is project root directory)
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
RAW_DIR = os.path.join(ROOT, "dataset", "raw")

# Structured multi-source dataset (word2motion, language2motion, hamnosys2motion)
DATASET_DIR = os.path.join(RAW_DIR, "SignAvatars")

# Outputs
PROCESSED_DIR = os.path.join(ROOT, "dataset", "processed")
THUMBNAIL_DIR = os.path.join(ROOT, "dataset", "thumbnails")
METADATA_DIR = os.path.join(ROOT, "dataset", "metadata")

# =============================================================================
# TRANSCODING
# =============================================================================

# Preset used for the primary asset of every index entry
DEFAULT_QUALITY = "720p"

# Transcode every preset (1080p, 720p, 480p) instead of DEFAULT_QUALITY only
GENERATE_ALL_QUALITIES = False

# Seconds before a single ffprobe/ffmpeg call is abandoned (None = no limit)
TOOL_TIMEOUT = 300.0

# =============================================================================
# PROCESSING CONFIGURATION
# =============================================================================

# Clips per batch; memory usage is logged after each batch
BATCH_SIZE = 50

# Skip clips whose (dialect, label) already has a video in the index
SKIP_EXISTING = True

# Worker threads per batch. ffmpeg is multi-threaded itself, so a few
# workers are usually enough; 1 processes clips strictly in order
MAX_WORKERS = 4

# Number of clips processed with --test
TEST_LIMIT = 10

# Dialect for clips with no annotation, dialect directory or sub-dataset default
DEFAULT_DIALECT = "ASL"
