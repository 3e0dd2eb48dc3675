"""Aggregate statistics for the index and the end-of-run summary."""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from ..config import DIALECTS, INDEX_VERSION
from ..models import RunStats
from .store import IndexStore

logger = logging.getLogger(__name__)


class IndexBuilder:
    """
    Attaches the ``_meta`` record to an IndexStore.

    Args:
        store: Index to summarize
        dialects: Dialect codes to count, in reporting order
        version: Schema version written into ``_meta``
    """

    def __init__(
        self,
        store: IndexStore,
        dialects: Iterable[str] = DIALECTS,
        version: str = INDEX_VERSION,
    ):
        self.store = store
        self.dialects = tuple(dialects)
        self.version = version

    def dialect_counts(self) -> Dict[str, int]:
        """Label counts per dialect, in configured order, for dialects present in the index."""
        present = set(self.store.dialects())
        ordered = list(self.dialects) + sorted(present - set(self.dialects))
        return {d: len(self.store.labels(d)) for d in ordered if d in present}

    def build_meta(
        self,
        source_counts: Dict[str, int],
        generated_at: Optional[str] = None,
    ) -> Dict[str, Any]:
        counts = self.dialect_counts()
        return {
            "version": self.version,
            "generatedAt": generated_at or datetime.now(timezone.utc).isoformat(),
            "totalSigns": sum(counts.values()),
            "dialects": counts,
            "sources": dict(source_counts),
        }

    def finalize(self, source_counts: Dict[str, int]) -> Dict[str, Any]:
        """
        Compute and attach ``_meta``.

        When no entry changed during the run and the statistics match the
        previously persisted ones, the prior ``generatedAt`` is kept so the
        written document is identical to the one loaded.

        Args:
            source_counts: Per-source clip counts gathered while scanning

        Returns:
            The ``_meta`` record now stored in the index
        """
        logger.info("Building search index...")
        previous = self.store.meta
        meta = self.build_meta(source_counts)

        if previous and not self.store.dirty:
            unchanged = all(
                previous.get(key) == meta[key]
                for key in ("version", "totalSigns", "dialects", "sources")
            )
            if unchanged and previous.get("generatedAt"):
                meta["generatedAt"] = previous["generatedAt"]

        self.store.set_meta(meta)
        return meta


def summary_lines(stats: RunStats, meta: Dict[str, Any]) -> List[str]:
    """
    Format the end-of-run summary.

    Examples:
        >>> summary_lines(RunStats(processed=2), {"dialects": {"ASL": 2}, "sources": {}})[:2]
        ['PROCESSING COMPLETE', 'Processed: 2']
    """
    lines = [
        "PROCESSING COMPLETE" if not stats.interrupted else "PROCESSING INTERRUPTED",
        f"Processed: {stats.processed}",
        f"Failed: {stats.failed}",
        f"Skipped: {stats.skipped}",
        "Signs per dialect:",
    ]
    for dialect, count in (meta.get("dialects") or {}).items():
        lines.append(f"   {dialect}: {count} signs")
    lines.append("By source:")
    for source, count in (meta.get("sources") or {}).items():
        lines.append(f"   {source}: {count} videos")
    return lines


def log_summary(stats: RunStats, meta: Dict[str, Any]) -> None:
    logger.info("=" * 80)
    for line in summary_lines(stats, meta or {}):
        logger.info(line)
    logger.info("=" * 80)
