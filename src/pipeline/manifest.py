# src/pipeline/manifest.py — v2
"""Manifest loader — parse and validate the declarative phase/step document.

Validation is exhaustive and synchronous: either the whole document is
accepted, or ManifestError names the first offending phase or step.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from sportsync.pipeline.models import ERROR_POLICIES, Manifest

logger = logging.getLogger(__name__)


class ManifestError(Exception):
    """Raised when a manifest document is missing required structure."""


def load_manifest(source: str | Path | Mapping[str, Any]) -> Manifest:
    """Load and validate a pipeline manifest.

    Args:
        source: Path to a JSON manifest, or an already parsed mapping.

    Returns:
        Validated, immutable Manifest.

    Raises:
        ManifestError: If the document is unreadable or structurally invalid.
    """
    if isinstance(source, Mapping):
        raw = source
    elif isinstance(source, (str, Path)):
        raw = _read_document(Path(source))
    else:
        raise ManifestError("Invalid manifest: document must be a JSON object")
    _validate_structure(raw)

    try:
        manifest = Manifest.model_validate(raw)
    except ValidationError as e:
        raise ManifestError(f"Invalid manifest: {e}") from e

    logger.debug(
        "Loaded manifest: %d phases, %d steps",
        len(manifest.phases),
        sum(len(p.steps) for p in manifest.phases),
    )
    return manifest


def _read_document(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ManifestError(f"Cannot read manifest {path}: {e}") from e
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ManifestError(f"Manifest {path} is not valid JSON: {e}") from e


def _validate_structure(raw: Any) -> None:
    if not isinstance(raw, Mapping):
        raise ManifestError("Invalid manifest: document must be a JSON object")

    phases = raw.get("phases")
    if not isinstance(phases, list):
        raise ManifestError("Invalid manifest: missing phases array")

    seen: set[str] = set()
    for phase in phases:
        if not isinstance(phase, Mapping) or not _is_name(phase.get("name")):
            raise ManifestError(f"Invalid phase (missing name): {_preview(phase)}")
        name = phase["name"]
        if not isinstance(phase.get("steps"), list):
            raise ManifestError(f'Invalid phase "{name}": steps must be an array')
        if not phase["steps"]:
            raise ManifestError(f'Invalid phase "{name}": steps must not be empty')
        if name in seen:
            raise ManifestError(f'Duplicate phase name "{name}"')
        seen.add(name)

        for step in phase["steps"]:
            _validate_step(name, step)


def _validate_step(phase_name: str, step: Any) -> None:
    if (
        not isinstance(step, Mapping)
        or not _is_name(step.get("name"))
        or not isinstance(step.get("command"), str)
        or not step["command"].strip()
    ):
        raise ManifestError(
            f'Invalid step in phase "{phase_name}" (needs name and command): {_preview(step)}'
        )
    policy = step.get("errorPolicy", step.get("error_policy"))
    if policy not in ERROR_POLICIES:
        raise ManifestError(
            f'Invalid errorPolicy "{policy}" for step "{step["name"]}" '
            f"(expected one of: {', '.join(ERROR_POLICIES)})"
        )

    requires = step.get("requires", [])
    if not isinstance(requires, list) or not all(isinstance(r, str) for r in requires):
        raise ManifestError(f'Step "{step["name"]}": requires must be a list of env var names')

    timeout = step.get("timeout")
    if timeout is not None and (
        isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0
    ):
        raise ManifestError(f'Step "{step["name"]}": timeout must be a positive number of seconds')


def _is_name(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _preview(value: Any, limit: int = 120) -> str:
    try:
        text = json.dumps(value, default=str)
    except (TypeError, ValueError):
        text = repr(value)
    return text if len(text) <= limit else text[:limit] + "..."
