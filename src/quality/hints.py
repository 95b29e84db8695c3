# src/quality/hints.py — v2
"""Adaptive hint builder — turn rolling quality averages into prompt corrections.

Stateless given the history: averages each tracked editorial metric over
the most recent entries and emits the fixed instruction of every rule whose
metric average is below its threshold.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

MIN_HISTORY = 3
WINDOW = 5


@dataclass(frozen=True)
class HintRule:
    metric: str
    threshold: float
    hint: str


ADAPTIVE_HINT_RULES: tuple[HintRule, ...] = (
    HintRule(
        "mustWatchCoverage", 0.6,
        "CORRECTION: Recent outputs missed must-watch events. You MUST include ALL events "
        "with importance ≥4. This is the highest-priority fix.",
    ),
    HintRule(
        "sportDiversity", 0.4,
        "CORRECTION: Recent outputs were too focused on one sport. Include events from at "
        "least 2 different sports when available.",
    ),
    HintRule(
        "blockTypeBalance", 0.6,
        "CORRECTION: Recent outputs used too many of the same block type. Mix headlines, "
        "event-lines, narratives, and dividers.",
    ),
    HintRule(
        "textQuality", 0.7,
        "CORRECTION: Recent blocks exceeded word limits. headline: max 15 words, "
        "event-line: max 20, narrative: max 40.",
    ),
    HintRule(
        "blockCountTarget", 0.6,
        "CORRECTION: Keep total block count between 3 and 8. Recent outputs were outside "
        "this range.",
    ),
    HintRule(
        "quietDayCompliance", 0.5,
        "CORRECTION: On quiet days (<3 events), use only 3-4 blocks. Don't pad with "
        "low-importance events.",
    ),
)


@dataclass
class AdaptiveHints:
    hints: list[str] = field(default_factory=list)
    metrics: dict[str, float | None] = field(default_factory=dict)


def build_adaptive_hints(
    history: Sequence[dict[str, Any]] | None,
    rules: Sequence[HintRule] = ADAPTIVE_HINT_RULES,
) -> AdaptiveHints:
    """Compute rolling metric averages and the corrections they trigger.

    Args:
        history: Snapshot documents, oldest first.
        rules: Static (metric, threshold, hint) table; one hint per rule.

    Returns:
        AdaptiveHints; empty when fewer than 3 entries exist.
    """
    if not history or len(history) < MIN_HISTORY:
        return AdaptiveHints()

    recent = [_editorial(entry) for entry in list(history)[-WINDOW:]]
    averages: dict[str, float | None] = {}
    for rule in rules:
        values = [
            v for v in (editorial.get(rule.metric) for editorial in recent)
            if isinstance(v, (int, float)) and not isinstance(v, bool)
        ]
        averages[rule.metric] = sum(values) / len(values) if values else None

    hints = [
        rule.hint
        for rule in rules
        if averages[rule.metric] is not None and averages[rule.metric] < rule.threshold
    ]
    return AdaptiveHints(hints=hints, metrics=averages)


def _editorial(entry: Any) -> dict[str, Any]:
    editorial = entry.get("editorial") if isinstance(entry, dict) else None
    return editorial if isinstance(editorial, dict) else {}


def format_hints_block(hints: Sequence[str]) -> str:
    """Render hints as the prompt section appended to the user message."""
    if not hints:
        return ""
    lines = "\n".join(f"- {h}" for h in hints)
    return f"ADAPTIVE CORRECTIONS (based on recent quality scores):\n{lines}"
