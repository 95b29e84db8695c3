# src/generation/fallback.py — v2
"""Deterministic featured content built straight from the events list.

Used when no LLM is configured or every generation attempt failed. Times
are rendered in the timezone of ``now``.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from datetime import datetime, timedelta
from typing import Any

from sportsync.quality.editorial import SPORT_EMOJIS, filter_today_events, parse_time

MAX_TODAY_LINES = 4
MAX_WEEK_LINES = 3
MAX_SECTION_ITEMS = 6
NO_EVENTS_LINE = "No events scheduled today."
CHECK_BACK_LINE = "Check back after the next data sync."
WEEK_DIVIDER = {"type": "divider", "text": "This Week"}
MIN_FALLBACK_BLOCKS = 3

_MAJOR_EVENT = re.compile(
    r"olympics|world cup|champions league|grand slam|masters|major|playoff|final",
    re.IGNORECASE,
)


def build_fallback_featured(
    events: Sequence[dict[str, Any]] | None, now: datetime | None = None
) -> dict[str, Any]:
    """Build ``{"blocks": [...]}`` without any model call."""
    ref = now or datetime.now().astimezone()
    events = [e for e in (events or []) if isinstance(e, dict)]
    if not events:
        return {"blocks": _padded([{"type": "event-line", "text": NO_EVENTS_LINE}])}

    blocks: list[dict[str, Any]] = [
        {"type": "event-line", "text": line} for line in fallback_today_lines(events, ref)
    ]

    section = _major_event_section(events, ref)
    excluded: set[str] = set()
    if section is not None:
        blocks.append(section)
        if "olympic" in f"{section['id']} {section['title']}".lower():
            excluded.add("olympics")

    week = fallback_week_lines(events, ref, exclude_sports=excluded)
    if week:
        blocks.append(dict(WEEK_DIVIDER))
        blocks.extend({"type": "event-line", "text": line} for line in week)
    return {"blocks": _padded(blocks)}


def _padded(blocks: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Top up short documents to the minimum block count with a week placeholder."""
    if len(blocks) >= MIN_FALLBACK_BLOCKS:
        return blocks
    if not any(b["type"] == "divider" for b in blocks):
        blocks.append(dict(WEEK_DIVIDER))
    while len(blocks) < MIN_FALLBACK_BLOCKS:
        blocks.append({"type": "event-line", "text": CHECK_BACK_LINE})
    return blocks


def fallback_today_lines(events: Sequence[dict[str, Any]], now: datetime) -> list[str]:
    """Up to four lines for today: favourites, then importance, then relevance."""
    today = filter_today_events(events, now)
    if not today:
        return [NO_EVENTS_LINE]

    ranked = sorted(
        today,
        key=lambda e: (
            not e.get("isFavorite"),
            -(e.get("importance") or 0),
            -(e.get("norwegianRelevance") or 0),
        ),
    )
    lines: list[str] = []
    seen: set[str] = set()
    for event in ranked:
        if len(lines) >= MAX_TODAY_LINES:
            break
        title = event.get("title") or ""
        if title in seen:
            continue
        seen.add(title)
        lines.append(fallback_line(event, now))
    return lines


def fallback_week_lines(
    events: Sequence[dict[str, Any]],
    now: datetime,
    exclude_sports: set[str] | None = None,
) -> list[str]:
    """Up to three upcoming lines after today, one per sport."""
    exclude_sports = exclude_sports or set()
    tomorrow = now.replace(hour=0, minute=0, second=0, microsecond=0) + timedelta(days=1)

    upcoming: list[tuple[datetime, dict[str, Any]]] = []
    for event in events:
        start = parse_time(event.get("time"), now)
        if start is not None and start >= tomorrow and event.get("sport") not in exclude_sports:
            upcoming.append((start, event))
    upcoming.sort(key=lambda pair: pair[0])
    ordered = [event for _, event in upcoming]

    candidates = [
        *(e for e in ordered if e.get("norwegian") and (e.get("importance") or 0) >= 3),
        *(e for e in ordered if (e.get("importance") or 0) >= 4),
        *ordered,
    ]
    lines: list[str] = []
    used: set[Any] = set()
    for event in candidates:
        if event.get("sport") in used:
            continue
        used.add(event.get("sport"))
        start = _local(parse_time(event.get("time"), now), now)
        lines.append(
            f"{sport_emoji(event.get('sport'))} {start:%a} {start:%H:%M} — {event.get('title', '')}"
        )
        if len(lines) >= MAX_WEEK_LINES:
            break
    return lines


def fallback_line(event: dict[str, Any], now: datetime | None = None) -> str:
    """One event-line text for ``event``."""
    ref = now or datetime.now().astimezone()
    start = parse_time(event.get("time"), ref)
    time = f"{_local(start, ref):%H:%M}" if start else "TBD"
    emoji = sport_emoji(event.get("sport"))
    title = event.get("title") or ""
    tournament = event.get("tournament") or ""
    summary = (event.get("summary") or "").split(".")[0]

    if event.get("sport") == "football" and event.get("homeTeam") and event.get("awayTeam"):
        line = f"{emoji} {event['homeTeam']} v {event['awayTeam']}, {time}"
        if tournament:
            line += f", {tournament}"
        if summary:
            line += f" — {summary}"
        return line

    parts = [emoji, f"{title},", time]
    if tournament and tournament not in title:
        parts.append(f"— {tournament}")
    elif summary:
        parts.append(f"— {summary}")
    return " ".join(parts)


def sport_emoji(sport: Any) -> str:
    if sport == "f1":
        sport = "formula1"
    return SPORT_EMOJIS.get(sport, "🏆")


def looks_like_major_event(event: dict[str, Any]) -> bool:
    haystack = f"{event.get('context') or ''} {event.get('tournament') or ''} {event.get('title') or ''}"
    return bool(_MAJOR_EVENT.search(haystack))


def _major_event_section(
    events: Sequence[dict[str, Any]], now: datetime
) -> dict[str, Any] | None:
    major = [
        e for e in events
        if (start := parse_time(e.get("time"), now)) is not None
        and start >= now
        and looks_like_major_event(e)
    ][:MAX_SECTION_ITEMS]
    if not major:
        return None

    lead = major[0]
    key = lead.get("context") or lead.get("tournament") or "featured-now"
    return {
        "type": "section",
        "id": re.sub(r"\s+", "-", key.lower()),
        "title": lead.get("tournament") or lead.get("context") or "Major Event Focus",
        "emoji": "🏅",
        "style": "highlight",
        "items": [
            {
                "text": f"{_local(parse_time(e.get('time'), now), now):%H:%M} — {e.get('title', '')}",
                "type": "event",
            }
            for e in major
        ],
        "expandLabel": None,
        "expandItems": [],
    }


def _local(value: datetime, ref: datetime) -> datetime:
    if value.tzinfo is not None and ref.tzinfo is not None:
        return value.astimezone(ref.tzinfo)
    return value
