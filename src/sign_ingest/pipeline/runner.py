"""End-to-end ingestion run: tools check, annotations, scan, process, index."""
import logging
import os
from typing import List, Optional

from ..annotations.loader import load_annotations
from ..common.files import ensure_directories
from ..config import DIALECTS, PipelineConfig
from ..dataset.scanner import DatasetScanner
from ..errors import ToolUnavailableError
from ..index.builder import IndexBuilder, log_summary
from ..index.store import IndexStorage, IndexStore, JsonFileStorage
from ..media.tools import REMEDIATION, FFmpegTools, MediaTools
from ..models import RunStats
from .processor import VideoProcessor
from .scheduler import BatchScheduler

logger = logging.getLogger(__name__)


def check_tools(tools: MediaTools) -> None:
    """
    Verify the external media tools once, before any work starts.

    Raises:
        ToolUnavailableError: If any required executable is missing
    """
    missing = tools.missing_tools()
    if missing:
        raise ToolUnavailableError(missing)
    logger.info("FFmpeg found")


def output_directories(config: PipelineConfig) -> List[str]:
    dirs = [config.processed_root, config.metadata_root, config.thumbnail_root]
    for dialect in DIALECTS:
        dirs.append(os.path.join(config.processed_root, dialect.lower()))
        dirs.append(os.path.join(config.thumbnail_root, dialect.lower()))
    return dirs


def run_ingest(
    config: PipelineConfig,
    tools: Optional[MediaTools] = None,
    storage: Optional[IndexStorage] = None,
    show_progress: bool = True,
) -> RunStats:
    """
    Run the whole pipeline once.

    Args:
        config: Pipeline configuration
        tools: Media tool adapter (defaults to FFmpegTools)
        storage: Index persistence (defaults to the JSON file at ``config.index_path``)
        show_progress: Display a progress bar while processing

    Returns:
        RunStats for the run

    Raises:
        ToolUnavailableError: If ffmpeg/ffprobe are missing; raised before
            annotations are loaded or anything is scanned

    Examples:
        >>> cfg = PipelineConfig.from_base_dir("/srv/signs", limit=10)
        >>> stats = run_ingest(cfg)
        >>> stats.processed
        10
    """
    tools = tools or FFmpegTools(timeout=config.tool_timeout)
    check_tools(tools)

    logger.info(f"Dataset path: {config.dataset_root}")
    logger.info(f"Output path: {config.processed_root}")

    ensure_directories(output_directories(config))

    store = IndexStore(storage or JsonFileStorage(config.index_path))
    store.load(rebuild=config.rebuild_index)

    annotations = load_annotations(config.dataset_root, config.subdatasets)
    scan = DatasetScanner(config, annotations).scan()

    if not scan.clips:
        logger.warning("No videos found to process.")
        logger.warning(f"Make sure videos are in: {config.dataset_root}")
        return RunStats()

    processor = VideoProcessor(config, tools, store)
    scheduler = BatchScheduler(
        processor,
        batch_size=config.batch_size,
        max_workers=config.max_workers,
        show_progress=show_progress,
    )
    stats = scheduler.run(scan.clips)

    meta = IndexBuilder(store).finalize(scan.source_counts)
    if store.save():
        logger.info(f"Index saved to: {config.index_path}")

    log_summary(stats, meta)
    return stats


def main(
    config: PipelineConfig,
    tools: Optional[MediaTools] = None,
    storage: Optional[IndexStorage] = None,
    show_progress: bool = True,
) -> int:
    """
    Run the pipeline and translate the outcome into a process exit code.

    Returns:
        0 on completion, 1 if the external media tools are unavailable
    """
    try:
        run_ingest(config, tools=tools, storage=storage, show_progress=show_progress)
    except ToolUnavailableError as e:
        logger.error(str(e))
        for line in REMEDIATION.splitlines():
            logger.error(line)
        return 1
    return 0
