# src/pipeline/errors.py — v1
"""Step error categorization for pattern detection across runs.

An ordered, static table of (predicate, category) pairs evaluated top to
bottom on the lower-cased message; the first match wins. Order matters:
"Command failed: request timed out" is a timeout, not a command error.
"""

from __future__ import annotations

from collections.abc import Callable

from sportsync.pipeline.models import ErrorCategory


def _contains(*needles: str) -> Callable[[str], bool]:
    def predicate(message: str) -> bool:
        return any(n in message for n in needles)

    return predicate


ERROR_RULES: tuple[tuple[Callable[[str], bool], ErrorCategory], ...] = (
    (_contains("etimedout", "timedout", "timed out", "timeout"), "timeout"),
    (
        _contains(
            "econnrefused", "econnreset", "enotfound", "fetch failed", "network",
            "connection refused", "connection reset",
        ),
        "network",
    ),
    (_contains("401", "403", "unauthorized", "forbidden", "authentication"), "auth"),
    (_contains("unexpected token", "syntaxerror", "jsondecodeerror", "parse"), "parse"),
    (_contains("validation failed", "validation", "invalid schema", "schema"), "validation"),
    (
        _contains(
            "command failed", "enoent", "no such file", "not found", "exit code",
            "returned non-zero",
        ),
        "command",
    ),
)


def categorize_error(message: str | None) -> ErrorCategory:
    """Map an error message to one of the fixed step-error categories.

    Pure and total: never raises, returns "unknown" when nothing matches.
    """
    if not message:
        return "unknown"
    m = str(message).lower()
    for predicate, category in ERROR_RULES:
        if predicate(m):
            return category
    return "unknown"
