# src/quality/history.py — v1
"""Quality history — append-only, capped log of per-run quality snapshots.

The history file is the only state carried between runs. Appends rebuild
the list in memory and atomically replace the file, so a crash mid-write
leaves the previously committed history intact. Oldest entries are evicted
first once the cap is exceeded.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from sportsync.storage.json_io import read_json_if_exists, write_json_atomic

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 100


class QualitySnapshot(BaseModel):
    """Point-in-time quality record for one generation run."""

    model_config = ConfigDict(populate_by_name=True)

    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    editorial: dict[str, Any] | None = None
    enrichment: dict[str, Any] | None = None
    featured: dict[str, Any] | None = None
    watch_plan: dict[str, Any] | None = Field(default=None, alias="watchPlan")
    hints_applied: list[str] = Field(default_factory=list, alias="hintsApplied")
    token_usage: dict[str, Any] | None = Field(default=None, alias="tokenUsage")

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def build_quality_snapshot(
    editorial: Any = None,
    enrichment: dict[str, Any] | None = None,
    featured: dict[str, Any] | None = None,
    watch_plan: Any = None,
    *,
    hints_applied: list[str] | None = None,
    token_usage: dict[str, Any] | None = None,
) -> QualitySnapshot:
    """Condense the run's quality results into a history entry.

    Args:
        editorial: EditorialResult (score + metrics) or None.
        enrichment: Enrichment coverage/score mapping or None.
        featured: Mapping with blocks/score/provider/valid or None.
        watch_plan: WatchPlanResult or None.
        hints_applied: Correction hints injected into this run's prompt.
        token_usage: Folded LLM usage for this run.
    """
    editorial_doc = None
    if editorial is not None:
        metrics = editorial.metrics
        editorial_doc = {
            "score": editorial.score,
            **metrics,
            "blockCount": len((featured or {}).get("blocks") or []),
        }

    enrichment_doc = None
    if enrichment is not None:
        after = enrichment.get("after") or {}
        enrichment_doc = {
            "score": enrichment.get("score"),
            "importanceCoverage": enrichment.get("importanceCoverage", after.get("importanceCoverage")),
            "summaryCoverage": enrichment.get("summaryCoverage", after.get("summaryCoverage")),
        }

    featured_doc = None
    if featured is not None:
        blocks = featured.get("blocks")
        featured_doc = {
            "score": featured.get("score"),
            "blockCount": len(blocks) if isinstance(blocks, list) else featured.get("blockCount", 0),
            "provider": featured.get("provider"),
            "valid": featured.get("valid"),
        }

    watch_plan_doc = None
    if watch_plan is not None:
        watch_plan_doc = {
            "score": watch_plan.score,
            "pickCount": watch_plan.metrics.get("pickCount", 0),
            "avgScore": watch_plan.metrics.get("avgScore", 0),
            "streamingCoverage": watch_plan.metrics.get("streamingCoverage", 0),
        }

    return QualitySnapshot(
        editorial=editorial_doc,
        enrichment=enrichment_doc,
        featured=featured_doc,
        watch_plan=watch_plan_doc,
        hints_applied=list(hints_applied or []),
        token_usage=token_usage,
    )


class QualityHistory:
    """File-backed, FIFO-capped list of quality snapshots.

    Args:
        path: History JSON file (a JSON array).
        max_entries: Cap; oldest entries are dropped first.
    """

    def __init__(self, path: str | Path, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self._path = Path(path)
        self._max_entries = max_entries

    @property
    def path(self) -> Path:
        return self._path

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def load(self) -> list[dict[str, Any]]:
        """Return committed entries, oldest first ([] if missing or corrupt)."""
        data = read_json_if_exists(self._path)
        if data is None:
            return []
        if not isinstance(data, list):
            logger.warning("Quality history %s is not a JSON array, ignoring", self._path)
            return []
        return [entry for entry in data if isinstance(entry, dict)]

    def append(self, snapshot: QualitySnapshot | dict[str, Any]) -> list[dict[str, Any]]:
        """Append one entry, evict the oldest beyond the cap, persist atomically."""
        entry = snapshot.to_document() if isinstance(snapshot, QualitySnapshot) else dict(snapshot)
        entries = [*self.load(), entry]
        dropped = max(0, len(entries) - self._max_entries)
        if dropped:
            entries = entries[dropped:]
            logger.debug("Quality history capped: dropped %d oldest entries", dropped)
        write_json_atomic(self._path, entries)
        return entries
