# src/quality/editorial.py — v1
"""Editorial, watch-plan and enrichment scoring.

These ratios feed the quality history; the adaptive hint builder reads the
editorial ones back to steer the next generation attempt.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence
from datetime import datetime, timedelta
from typing import Any

from pydantic import BaseModel, Field

from sportsync.quality.blocks import BLOCK_WORD_LIMITS, block_text, count_words
from sportsync.quality.validator import QualityIssue

logger = logging.getLogger(__name__)

EDITORIAL_WEIGHTS: dict[str, int] = {
    "mustWatchCoverage": 30,
    "sportDiversity": 20,
    "blockTypeBalance": 15,
    "textQuality": 15,
    "quietDayCompliance": 10,
    "blockCountTarget": 10,
}

SPORT_EMOJIS: dict[str, str] = {
    "football": "⚽",
    "golf": "⛳",
    "tennis": "🎾",
    "formula1": "🏎",
    "chess": "♟",
    "esports": "🎮",
    "olympics": "🏅",
}

MUST_WATCH_IMPORTANCE = 4


class EditorialResult(BaseModel):
    score: int
    metrics: dict[str, float]
    issues: list[QualityIssue] = Field(default_factory=list)


class WatchPlanResult(BaseModel):
    score: int
    metrics: dict[str, float]


def evaluate_editorial_quality(
    featured: dict[str, Any] | None,
    events: Sequence[dict[str, Any]] | None,
    now: datetime | None = None,
) -> EditorialResult:
    """Score how well the blocks cover today's events."""
    blocks = (featured or {}).get("blocks") or []
    today = filter_today_events(events or [], now)

    metrics = {
        "mustWatchCoverage": _ratio(_must_watch_coverage(blocks, today)),
        "sportDiversity": _ratio(_sport_diversity(blocks, today)),
        "blockTypeBalance": _ratio(_block_type_balance(blocks)),
        "textQuality": _ratio(_text_quality(blocks)),
        "quietDayCompliance": _ratio(0.3 if len(today) < 3 and len(blocks) > 5 else 1.0),
        "blockCountTarget": _ratio(_block_count_score(len(blocks))),
    }
    score = round(sum(metrics[k] * w for k, w in EDITORIAL_WEIGHTS.items()))

    issues: list[QualityIssue] = []
    if metrics["mustWatchCoverage"] < 0.5:
        issues.append(QualityIssue(
            severity="warning", code="must_watch_missed",
            message=f"Only {round(metrics['mustWatchCoverage'] * 100)}% of must-watch events covered in blocks",
        ))
    if metrics["sportDiversity"] < 0.3:
        issues.append(QualityIssue(
            severity="warning", code="low_sport_diversity",
            message=f"Sport diversity is {round(metrics['sportDiversity'] * 100)}%",
        ))
    if metrics["blockCountTarget"] < 0.5:
        issues.append(QualityIssue(
            severity="warning", code="block_count_out_of_range",
            message=f"Block count {len(blocks)} is outside ideal range (3-8)",
        ))

    return EditorialResult(score=max(0, min(100, score)), metrics=metrics, issues=issues)


def evaluate_watch_plan_quality(watch_plan: dict[str, Any] | None) -> WatchPlanResult:
    picks = (watch_plan or {}).get("picks") or []
    count = len(picks)
    if count == 0:
        return WatchPlanResult(
            score=0,
            metrics={"pickCount": 0, "avgScore": 0, "streamingCoverage": 0, "reasonCoverage": 0},
        )

    avg_score = round(sum(p.get("score") or 0 for p in picks) / count)
    streaming = _ratio(sum(1 for p in picks if p.get("streaming")) / count)
    reasons = _ratio(sum(1 for p in picks if p.get("reasons")) / count)
    score = round(40 + streaming * 30 + reasons * 30)
    return WatchPlanResult(
        score=max(0, min(100, score)),
        metrics={
            "pickCount": count,
            "avgScore": avg_score,
            "streamingCoverage": streaming,
            "reasonCoverage": reasons,
        },
    )


def get_enrichment_coverage(events: Sequence[dict[str, Any]] | None) -> dict[str, float]:
    """Share of events carrying each AI-enrichment field."""
    events = list(events or [])
    return {
        "totalEvents": len(events),
        "importanceCoverage": _coverage(events, lambda e: isinstance(e.get("importance"), (int, float))),
        "summaryCoverage": _coverage(events, lambda e: _nonblank(e.get("summary"))),
        "relevanceCoverage": _coverage(
            events, lambda e: isinstance(e.get("norwegianRelevance"), (int, float))
        ),
        "tagsCoverage": _coverage(events, lambda e: bool(e.get("tags"))),
    }


def filter_today_events(
    events: Sequence[dict[str, Any]], now: datetime | None = None
) -> list[dict[str, Any]]:
    """Events starting today, or started earlier and still running."""
    ref = now or datetime.now().astimezone()
    day_start = ref.replace(hour=0, minute=0, second=0, microsecond=0)
    day_end = day_start + timedelta(days=1)

    today: list[dict[str, Any]] = []
    for event in events:
        start = parse_time(event.get("time"), ref)
        if start is None:
            continue
        end = parse_time(event.get("endTime"), ref)
        if day_start <= start < day_end or (start < day_start and end and end >= day_start):
            today.append(event)
    return today


def parse_time(value: Any, ref: datetime) -> datetime | None:
    """Parse an ISO timestamp, aligning naive/aware with ``ref``."""
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Ignoring unparseable event time %r", value)
        return None
    if ref.tzinfo is not None and parsed.tzinfo is None:
        return parsed.replace(tzinfo=ref.tzinfo)
    if ref.tzinfo is None and parsed.tzinfo is not None:
        return parsed.astimezone().replace(tzinfo=None)
    return parsed


# --- Metric helpers ---


def _must_watch_coverage(blocks: list[dict[str, Any]], events: list[dict[str, Any]]) -> float:
    must_watch = [e for e in events if (e.get("importance") or 0) >= MUST_WATCH_IMPORTANCE]
    if not must_watch:
        return 1.0
    haystack = " ".join(block_text(b) for b in blocks).lower()
    covered = 0
    for event in must_watch:
        needles = [e for e in (event.get("title"), event.get("homeTeam"), event.get("awayTeam")) if e]
        if any(n.lower() in haystack for n in needles):
            covered += 1
    return covered / len(must_watch)


def _sport_diversity(blocks: list[dict[str, Any]], events: list[dict[str, Any]]) -> float:
    event_sports = {("formula1" if e.get("sport") == "f1" else e.get("sport")) for e in events if e.get("sport")}
    if not event_sports:
        return 1.0
    text = " ".join(block_text(b) for b in blocks)
    found = {sport for sport, emoji in SPORT_EMOJIS.items() if emoji in text}
    return min(len(found) / len(event_sports), 1.0)


def _block_type_balance(blocks: list[dict[str, Any]]) -> float:
    if not blocks:
        return 1.0
    counts = Counter(b.get("type") for b in blocks)
    return 0.5 if max(counts.values()) / len(blocks) > 0.8 else 1.0


def _text_quality(blocks: list[dict[str, Any]]) -> float:
    checked = within = 0
    for block in blocks:
        limit = BLOCK_WORD_LIMITS.get(block.get("type"), 0)
        text = block.get("text")
        if limit and text:
            checked += 1
            if count_words(text) <= limit:
                within += 1
    return 1.0 if checked == 0 else within / checked


def _block_count_score(count: int) -> float:
    if 3 <= count <= 8:
        return 1.0
    if count < 3 or count > 10:
        return 0.4
    return 0.7


def _coverage(events: list[dict[str, Any]], predicate) -> float:
    if not events:
        return 1.0
    return _ratio(sum(1 for e in events if predicate(e)) / len(events))


def _nonblank(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _ratio(value: float) -> float:
    return round(value, 3)
