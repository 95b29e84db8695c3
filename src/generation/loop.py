# src/generation/loop.py — v1
"""Bounded generate → validate → retry → fallback loop for featured content.

States: Generate, Validate, RetryWithHints, FallbackDeterministic, Done.
Attempts are capped; a retry carries the first issue messages of the
failed attempt as correction hints. When every attempt fails, or the
generator itself gives up, the deterministic fallback is validated and
returned instead.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from sportsync.generation.generator import (
    ContentGenerator,
    GenerationError,
    parse_response_json,
    to_featured_shape,
)
from sportsync.llm.models import TokenUsage
from sportsync.quality.validator import QualityResult, validate_featured

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 2
MAX_CORRECTIONS = 5
FALLBACK_PROVIDER = "fallback"


@dataclass
class FeaturedOutcome:
    featured: dict[str, Any]
    quality: QualityResult
    provider: str
    attempts: int
    usage: TokenUsage = field(default_factory=TokenUsage)
    hints_applied: list[str] = field(default_factory=list)

    @property
    def used_fallback(self) -> bool:
        return self.provider == FALLBACK_PROVIDER


async def generate_featured(
    generator: ContentGenerator | None,
    system_context: str,
    *,
    fallback: Callable[[], dict[str, Any]],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_hints: Sequence[str] = (),
) -> FeaturedOutcome:
    """Run the generation loop and return the accepted artifact.

    Args:
        generator: Source of raw output; None goes straight to the fallback.
        system_context: System prompt handed to every attempt.
        fallback: Builds the deterministic artifact on demand.
        max_attempts: Upper bound on generator calls (>= 1).
        base_hints: Adaptive hints already baked into the prompt; recorded
            on the outcome for the quality history.

    Returns:
        FeaturedOutcome with the normalized artifact and the usage folded
        over every attempt.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    usage = TokenUsage()
    corrections: list[str] = []
    attempts = 0
    provider = FALLBACK_PROVIDER

    if generator is not None:
        for attempt in range(1, max_attempts + 1):
            attempts = attempt
            try:
                generation = await generator.generate(system_context, corrections)
            except GenerationError as e:
                logger.warning("Featured generation failed (attempt %d): %s", attempt, e)
                break

            usage = usage + generation.usage
            provider = generation.provider

            try:
                candidate = to_featured_shape(parse_response_json(generation.content))
            except GenerationError as e:
                corrections = [str(e)]
                logger.warning("Failed to parse featured JSON (attempt %d): %s", attempt, e)
                continue

            quality = validate_featured(candidate)
            if quality.valid:
                logger.info(
                    "Featured content accepted (attempt %d, provider=%s, score=%d)",
                    attempt, provider, quality.score,
                )
                return FeaturedOutcome(
                    featured=quality.normalized,
                    quality=quality,
                    provider=provider,
                    attempts=attempts,
                    usage=usage,
                    hints_applied=list(base_hints),
                )

            corrections = quality.issue_messages(MAX_CORRECTIONS)
            logger.warning(
                "Featured quality gate failed (attempt %d): %s",
                attempt, "; ".join(corrections),
            )

    logger.info("Using deterministic fallback for featured content")
    quality = validate_featured(fallback())
    return FeaturedOutcome(
        featured=quality.normalized,
        quality=quality,
        provider=FALLBACK_PROVIDER,
        attempts=attempts,
        usage=usage,
        hints_applied=list(base_hints),
    )
