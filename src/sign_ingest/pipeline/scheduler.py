"""Batch scheduling of clip processing with run statistics."""
import gc
import logging
import math
import os
import threading
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Iterable, List, Optional, Sequence

import psutil
from tqdm import tqdm

from ..models import ClipOutcome, DiscoveredClip, RunStats
from .processor import VideoProcessor

logger = logging.getLogger(__name__)


def group_by_key(batch: Sequence[DiscoveredClip]) -> List[List[DiscoveredClip]]:
    """
    Group clips sharing a (dialect, label) key, keeping discovery order.

    Clips in one group are processed one after another, so the last
    clip of a group is the one whose entry ends up in the index.

    Examples:
        >>> [[c.filename for c in g] for g in group_by_key([a_hello, b_bye, c_hello])]
        [['a.mp4', 'c.mp4'], ['b.mp4']]
    """
    groups: "OrderedDict[tuple, List[DiscoveredClip]]" = OrderedDict()
    for clip in batch:
        groups.setdefault(clip.key, []).append(clip)
    return list(groups.values())


def log_memory_usage(label: str) -> None:
    process = psutil.Process(os.getpid())
    memory_info = process.memory_info()
    logger.info(f"{label}. Memory: {memory_info.rss / 1024 / 1024:.2f} MB")


class BatchScheduler:
    """
    Drives a VideoProcessor over discovered clips in fixed-size batches.

    Batches run strictly in discovery order. Within a batch, clips run on
    up to ``max_workers`` threads; clips that resolve to the same
    (dialect, label) are serialized in discovery order. Each clip
    increments exactly one of processed/failed/skipped and failed clips
    are not retried.

    Args:
        processor: Per-clip processor
        batch_size: Clips per batch
        max_workers: Worker threads per batch (1 runs strictly sequentially)
        show_progress: Display a tqdm progress bar

    Examples:
        >>> scheduler = BatchScheduler(processor, batch_size=50, max_workers=4)
        >>> stats = scheduler.run(scan.clips)
        >>> stats.processed, stats.failed, stats.skipped
        (118, 2, 0)
    """

    def __init__(
        self,
        processor: VideoProcessor,
        batch_size: int = 50,
        max_workers: int = 1,
        show_progress: bool = True,
    ):
        self.processor = processor
        self.batch_size = max(int(batch_size), 1)
        self.max_workers = max(int(max_workers), 1)
        self.show_progress = show_progress
        self._lock = threading.Lock()
        self._stop = threading.Event()

    def request_stop(self) -> None:
        """Stop after in-flight clips finish; unstarted clips are left for the next run."""
        self._stop.set()

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    def _run_clip(self, clip: DiscoveredClip, stats: RunStats, pbar: Optional[tqdm]) -> None:
        logger.debug(f"{clip.label} ({clip.dialect}) [{clip.source}] {clip.path}")
        try:
            outcome = self.processor.process(clip)
        except Exception as e:
            logger.error(f"Unexpected error processing {clip.path}: {e}")
            outcome = ClipOutcome.FAILED

        with self._lock:
            stats.record(outcome, clip)
            if pbar is not None:
                pbar.update(1)
                pbar.set_postfix(failed=stats.failed, skipped=stats.skipped)

    def _run_group(self, group: List[DiscoveredClip], stats: RunStats, pbar: Optional[tqdm]) -> None:
        for clip in group:
            if self._stop.is_set():
                return
            self._run_clip(clip, stats, pbar)

    def _run_batch(self, batch: Sequence[DiscoveredClip], stats: RunStats, pbar: Optional[tqdm]) -> None:
        groups = group_by_key(batch)

        if self.max_workers == 1:
            for group in groups:
                self._run_group(group, stats, pbar)
            return

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(groups))) as executor:
            futures = [executor.submit(self._run_group, group, stats, pbar) for group in groups]
            try:
                for future in as_completed(futures):
                    future.result()
            except KeyboardInterrupt:
                # Cancel queued groups; the executor still waits for running ones
                self._stop.set()
                for future in futures:
                    future.cancel()
                raise

    def run(self, clips: Iterable[DiscoveredClip]) -> RunStats:
        """
        Process every clip and return the run statistics.

        A KeyboardInterrupt (or :meth:`request_stop`) ends the run after
        in-flight clips complete; the returned stats are then marked
        ``interrupted``.
        """
        clips = list(clips)
        stats = RunStats()
        total_batches = math.ceil(len(clips) / self.batch_size) if clips else 0

        logger.info(f"Processing {len(clips)} videos in {total_batches} batches "
                    f"with {self.max_workers} worker(s)")

        with tqdm(total=len(clips), desc="Processing videos", unit="video",
                  disable=not self.show_progress) as pbar:
            try:
                for i in range(0, len(clips), self.batch_size):
                    if self._stop.is_set():
                        break
                    batch = clips[i:i + self.batch_size]
                    batch_num = i // self.batch_size + 1
                    logger.info(f"Batch {batch_num}/{total_batches} ({len(batch)} videos)")

                    self._run_batch(batch, stats, pbar)

                    gc.collect()
                    log_memory_usage(f"Batch {batch_num} completed")
            except KeyboardInterrupt:
                logger.warning("Interrupted; in-flight videos finished, remaining videos left for the next run")
                self._stop.set()

        stats.interrupted = self._stop.is_set()
        return stats
