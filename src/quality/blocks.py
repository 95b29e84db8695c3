# src/quality/blocks.py — v1
"""Featured-content block vocabulary and normalization.

A featured artifact is ``{"blocks": [...]}`` where each block has a type
from a fixed vocabulary. sanitize_block() returns a cleaned copy, or None
when the block is unknown or has nothing left to render.
"""

from __future__ import annotations

import re
from typing import Any

BLOCK_TYPES: tuple[str, ...] = (
    "headline",
    "event-line",
    "event-group",
    "narrative",
    "section",
    "divider",
)
EVENT_BLOCK_TYPES = frozenset({"event-line", "event-group"})

# Max words per block text; 0 = not checked (sections are judged by items).
BLOCK_WORD_LIMITS: dict[str, int] = {
    "headline": 15,
    "event-line": 20,
    "event-group": 20,
    "narrative": 40,
    "section": 0,
    "divider": 8,
}

_ITEM_TYPES = ("stat", "event", "text")
_WS = re.compile(r"\s+")


def normalize_line(text: Any) -> str:
    """Collapse whitespace; non-strings become ''."""
    if not isinstance(text, str):
        return ""
    return _WS.sub(" ", text).strip()


def count_words(text: Any) -> int:
    if not isinstance(text, str):
        return 0
    return len(text.split())


def block_text(block: dict[str, Any]) -> str:
    """All visible text of a block (text, label and items) joined by spaces."""
    parts = [block.get("text") or "", block.get("label") or "", block.get("title") or ""]
    for item in block.get("items") or []:
        parts.append(item if isinstance(item, str) else (item or {}).get("text", ""))
    return " ".join(p for p in parts if p)


def sanitize_block(block: Any) -> dict[str, Any] | None:
    """Return a normalized copy of ``block`` or None to drop it."""
    if not isinstance(block, dict):
        return None
    btype = block.get("type").strip() if isinstance(block.get("type"), str) else ""
    if btype not in BLOCK_TYPES:
        return None

    if btype == "section":
        return _sanitize_section(block)

    if btype == "event-group":
        items = [
            normalize_line(item if isinstance(item, str) else (item or {}).get("text", ""))
            for item in _as_list(block.get("items"))
        ]
        items = [i for i in items if i]
        if not items:
            return None
        return {"type": btype, "label": normalize_line(block.get("label")), "items": items}

    text = normalize_line(block.get("text"))
    if btype != "divider" and not text:
        return None
    return {"type": btype, "text": text}


def _sanitize_section(block: dict[str, Any]) -> dict[str, Any] | None:
    title = normalize_line(block.get("title"))
    items = _sanitize_items(block.get("items"))
    if not title or not items:
        return None
    section_id = _WS.sub("-", normalize_line(block.get("id")).lower()) or "featured"
    return {
        "type": "section",
        "id": section_id,
        "title": title,
        "emoji": normalize_line(block.get("emoji")),
        "style": "highlight" if block.get("style") == "highlight" else "default",
        "items": items,
        "expandLabel": normalize_line(block.get("expandLabel")) or None,
        "expandItems": _sanitize_items(block.get("expandItems")),
    }


def _sanitize_items(items: Any) -> list[dict[str, str]]:
    out: list[dict[str, str]] = []
    for item in _as_list(items):
        if not isinstance(item, dict):
            continue
        text = normalize_line(item.get("text"))
        if not text:
            continue
        itype = item.get("type") if item.get("type") in _ITEM_TYPES else "text"
        out.append({"text": text, "type": itype})
    return out


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []
