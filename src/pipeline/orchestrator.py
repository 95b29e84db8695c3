# src/pipeline/orchestrator.py — v3
"""Pipeline orchestrator — drive all manifest phases and decide the gate.

Drives the run:
  1. Load the manifest once.
  2. Run phases strictly in order; after the first aborting phase every
     remaining phase is recorded as skipped and never executed.
  3. Gate = fail if any phase aborted or the pre-publish gate step failed.
  4. Persist the PipelineResult atomically, whatever happened, so the last
     run can always be inspected.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from sportsync.config.settings import Settings
from sportsync.logging.context import set_phase_context, set_run_context
from sportsync.pipeline.executor import StepExecutor
from sportsync.pipeline.manifest import load_manifest
from sportsync.pipeline.models import (
    Gate,
    PhaseResult,
    PipelineResult,
    RunSummary,
)
from sportsync.pipeline.phase_runner import Executor, run_phase
from sportsync.storage.json_io import write_json_atomic

logger = logging.getLogger(__name__)

_ICONS = {"success": "+", "skipped": "~", "failed": "x"}


def compute_gate(
    phases: Mapping[str, PhaseResult],
    gate_phase: str = "finalize",
    gate_step: str = "pre-commit-gate",
) -> Gate:
    """Return "fail" on any phase abort or a failed gate step, else "pass"."""
    if any(p.aborted_by for p in phases.values()):
        return "fail"
    finalize = phases.get(gate_phase)
    if finalize is not None:
        for step in finalize.steps:
            if step.name == gate_step and step.status == "failed":
                return "fail"
    return "pass"


class PipelineOrchestrator:
    """Run a manifest end to end and write the result document.

    Args:
        settings: Application settings (paths, timeouts, gate step).
        executor: Step executor; defaults to a StepExecutor built from settings.
        result_path: Override for the result document location.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        executor: Executor | None = None,
        result_path: str | Path | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self._executor = executor or StepExecutor(
            default_timeout=self._settings.step_timeout_s,
            cwd=self._settings.project_root,
            kill_grace=self._settings.kill_grace_s,
        )
        self._result_path = Path(result_path) if result_path else self._settings.result_path

    @property
    def result_path(self) -> Path:
        return self._result_path

    async def run(
        self, manifest_source: str | Path | Mapping[str, Any] | None = None
    ) -> PipelineResult:
        """Execute every phase of the manifest.

        Args:
            manifest_source: Manifest path or mapping (defaults to settings).

        Returns:
            The persisted PipelineResult.

        Raises:
            Exception: Orchestration errors (e.g. ManifestError) propagate
                after a partial, gate=fail result has been written. Cancellation
                and KeyboardInterrupt are re-raised the same way.
        """
        source = manifest_source if manifest_source is not None else (
            self._settings.resolved_manifest_path
        )
        started_at = datetime.now(timezone.utc).isoformat()
        start = time.monotonic()
        set_run_context(uuid.uuid4().hex[:12])
        phases: dict[str, PhaseResult] = {}

        try:
            manifest = load_manifest(source)
            aborted = False
            for phase in manifest.phases:
                if aborted:
                    phases[phase.name] = PhaseResult(name=phase.name, status="skipped")
                    logger.info("Phase '%s' skipped (pipeline aborted)", phase.name)
                    continue

                logger.info("=== Phase: %s — %s ===", phase.name, phase.description)
                result = await run_phase(phase, self._executor)
                phases[phase.name] = result
                _log_phase(result)
                aborted = result.aborted_by is not None
            set_phase_context(None)

            gate = compute_gate(
                phases, self._settings.gate_phase, self._settings.gate_step
            )
            pipeline_result = _build_result(started_at, start, gate, phases)
        except BaseException as exc:
            if isinstance(exc, Exception):
                logger.exception("Pipeline runner error: %s", exc)
            else:
                logger.warning(
                    "Pipeline interrupted (%s), writing partial result", type(exc).__name__
                )
            error = f"{type(exc).__name__}: {exc}" if str(exc) else type(exc).__name__
            partial = _build_result(started_at, start, "fail", phases, error=error)
            self._persist(partial)
            raise

        self._persist(pipeline_result)
        summary = pipeline_result.summary
        logger.info(
            "Pipeline complete: %d/%d steps succeeded, %d failed, %d skipped, gate=%s",
            summary.success, summary.total, summary.failed, summary.skipped,
            pipeline_result.gate,
        )
        return pipeline_result

    def _persist(self, result: PipelineResult) -> None:
        write_json_atomic(self._result_path, result.to_document())
        logger.debug("Pipeline result written to %s", self._result_path)


async def run_pipeline(
    manifest_source: str | Path | Mapping[str, Any] | None = None,
    settings: Settings | None = None,
    result_path: str | Path | None = None,
) -> PipelineResult:
    """Convenience wrapper: build an orchestrator and run it once."""
    orchestrator = PipelineOrchestrator(settings=settings, result_path=result_path)
    return await orchestrator.run(manifest_source)


def _build_result(
    started_at: str,
    start: float,
    gate: Gate,
    phases: dict[str, PhaseResult],
    error: str | None = None,
) -> PipelineResult:
    return PipelineResult(
        started_at=started_at,
        completed_at=datetime.now(timezone.utc).isoformat(),
        duration=int((time.monotonic() - start) * 1000),
        gate=gate,
        phases=dict(phases),
        summary=RunSummary.from_phases(phases),
        error=error,
    )


def _log_phase(result: PhaseResult) -> None:
    for step in result.steps:
        detail = ""
        if step.error:
            detail = f" — {step.error[:80]}"
        elif step.reason:
            detail = f" — {step.reason}"
        logger.info(
            "  [%s] %s (%dms)%s", _ICONS.get(step.status, "?"), step.name, step.duration, detail
        )
