# src/quality/validator.py — v1
"""Content quality gate for block-based featured content.

Structural rules (penalty from a starting score of 100):
- empty artifact                      → error, score 0
- fewer than 3 normalized blocks      → error   blocks_too_few        −35
- more than 10 blocks                 → warning blocks_too_many       −10
- no event-line / event-group block   → error   no_event_blocks       −25
- more than 3 narratives              → warning too_many_narratives   −10
- block over its word budget          → warning block_text_too_long    −5 each

``valid`` depends only on error-severity issues, never on the score.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from sportsync.quality.blocks import (
    BLOCK_WORD_LIMITS,
    EVENT_BLOCK_TYPES,
    count_words,
    sanitize_block,
)

Severity = Literal["info", "warning", "error"]

MIN_BLOCKS = 3
MAX_BLOCKS = 10
MAX_NARRATIVES = 3

PENALTY_TOO_FEW = 35
PENALTY_TOO_MANY = 10
PENALTY_NO_EVENTS = 25
PENALTY_NARRATIVES = 10
PENALTY_TEXT_TOO_LONG = 5


class QualityIssue(BaseModel):
    """One descriptive finding; never raised, only reported."""

    severity: Severity
    code: str
    message: str


class QualityResult(BaseModel):
    valid: bool
    score: int = Field(ge=0, le=100)
    issues: list[QualityIssue] = Field(default_factory=list)
    normalized: dict[str, Any] = Field(default_factory=lambda: {"blocks": []})

    @property
    def errors(self) -> list[QualityIssue]:
        return [i for i in self.issues if i.severity == "error"]

    def issue_messages(self, limit: int | None = None) -> list[str]:
        messages = [i.message for i in self.issues]
        return messages if limit is None else messages[:limit]


def validate_blocks(blocks: Any) -> QualityResult:
    """Validate, score and normalize a list of content blocks."""
    if not isinstance(blocks, list) or not blocks:
        return QualityResult(
            valid=False,
            score=0,
            issues=[_issue("error", "blocks_empty", "Blocks array is empty.")],
        )

    sanitized = [b for b in (sanitize_block(raw) for raw in blocks) if b is not None]
    issues: list[QualityIssue] = []
    score = 100

    if len(sanitized) < MIN_BLOCKS:
        issues.append(_issue(
            "error", "blocks_too_few",
            f"Only {len(sanitized)} valid blocks (min {MIN_BLOCKS}).",
        ))
        score -= PENALTY_TOO_FEW
    if len(sanitized) > MAX_BLOCKS:
        issues.append(_issue(
            "warning", "blocks_too_many",
            f"{len(sanitized)} blocks exceeds recommended max of {MAX_BLOCKS}.",
        ))
        score -= PENALTY_TOO_MANY

    if not any(b["type"] in EVENT_BLOCK_TYPES for b in sanitized):
        issues.append(_issue(
            "error", "no_event_blocks",
            "At least 1 event-line or event-group block is required.",
        ))
        score -= PENALTY_NO_EVENTS

    narratives = sum(1 for b in sanitized if b["type"] == "narrative")
    if narratives > MAX_NARRATIVES:
        issues.append(_issue(
            "warning", "too_many_narratives",
            f"{narratives} narratives exceeds max of {MAX_NARRATIVES}.",
        ))
        score -= PENALTY_NARRATIVES

    for block in sanitized:
        limit = BLOCK_WORD_LIMITS.get(block["type"], 0)
        text = block.get("text") or ""
        if limit and text and count_words(text) > limit:
            issues.append(_issue(
                "warning", "block_text_too_long",
                f'{block["type"]} block exceeds {limit} words: "{text[:50]}..."',
            ))
            score -= PENALTY_TEXT_TOO_LONG

    return QualityResult(
        valid=not any(i.severity == "error" for i in issues),
        score=max(0, min(100, score)),
        issues=issues,
        normalized={"blocks": sanitized},
    )


def validate_featured(featured: Any) -> QualityResult:
    """Validate a ``{"blocks": [...]}`` featured document."""
    blocks = featured.get("blocks") if isinstance(featured, dict) else None
    return validate_blocks(blocks if isinstance(blocks, list) else [])


def _issue(severity: Severity, code: str, message: str) -> QualityIssue:
    return QualityIssue(severity=severity, code=code, message=message)
