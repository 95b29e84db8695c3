# src/llm/retry.py — v2
"""Retry with exponential backoff for transient LLM failures.

Rate limits, timeouts and 5xx responses are retried; anything else
(bad request, auth) propagates after the first attempt.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


class LLMRetryExhausted(Exception):
    """All retries exhausted for an LLM call."""

    def __init__(self, label: str, error_type: str, attempts: int, last_error: Exception):
        self.label = label
        self.error_type = error_type
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"LLM call '{label}' failed after {attempts} attempts ({error_type}): {last_error}"
        )


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 2
    base_delay_s: float = 1.0
    backoff_factor: float = 2.0
    jitter: bool = True


DEFAULT_RETRY_POLICY = RetryPolicy()

_RETRYABLE = frozenset({"rate_limit", "timeout", "server_error"})


def classify_error(error: Exception) -> str:
    """Classify an exception into a retry error type."""
    msg = str(error).lower()
    name = type(error).__name__.lower()

    if "ratelimit" in name or "429" in msg or "rate limit" in msg:
        return "rate_limit"
    if "timeout" in name or "timeout" in msg or "timed out" in msg:
        return "timeout"
    if "internalserver" in name or "overloaded" in msg or any(
        code in msg for code in ("500", "502", "503", "504", "529")
    ):
        return "server_error"
    return "unknown"


def compute_delay(policy: RetryPolicy, attempt: int) -> float:
    """Delay before retry ``attempt`` (0-based)."""
    delay = policy.base_delay_s * (policy.backoff_factor ** attempt)
    if policy.jitter:
        delay *= 0.5 + random.random()  # noqa: S311
    return delay


async def with_retry(
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
    label: str = "llm",
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    **kwargs: Any,
) -> Any:
    """Await ``fn(*args, **kwargs)``, retrying transient failures.

    Raises:
        LLMRetryExhausted: When a retryable error persists past ``max_retries``.
        Exception: Non-retryable errors propagate unchanged.
    """
    attempts = 0
    while True:
        try:
            return await fn(*args, **kwargs)
        except Exception as e:
            error_type = classify_error(e)
            if error_type not in _RETRYABLE:
                raise
            attempts += 1
            if attempts > policy.max_retries:
                raise LLMRetryExhausted(label, error_type, attempts, e) from e

            delay = compute_delay(policy, attempts - 1)
            logger.warning(
                "LLM call '%s': %s (attempt %d/%d), retrying in %.1fs",
                label, error_type, attempts, policy.max_retries, delay,
            )
            await asyncio.sleep(delay)
