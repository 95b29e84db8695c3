# src/pipeline/phase_runner.py — v1
"""Phase runner — execute a phase's steps sequentially or concurrently.

Sequential phases stop at the first failed ``required`` step; parallel
phases always await every sibling (abort semantics only exist in sequential
order). Results are reported in declaration order in both modes.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Protocol

from sportsync.logging.context import set_phase_context
from sportsync.pipeline.models import Phase, PhaseResult, PhaseStatus, Step, StepResult

logger = logging.getLogger(__name__)


class Executor(Protocol):
    async def execute(self, step: Step) -> StepResult: ...


def reduce_phase_status(
    steps: Sequence[StepResult], aborted_by: str | None = None
) -> PhaseStatus:
    """Fold step outcomes into a phase status.

    Precedence: failed (required-step abort) > partial (any failed step)
    > success. Skipped steps never downgrade a phase.
    """
    if aborted_by is not None:
        return "failed"
    if any(s.status == "failed" for s in steps):
        return "partial"
    return "success"


async def run_phase(phase: Phase, executor: Executor) -> PhaseResult:
    """Run all steps of a phase and aggregate their outcomes.

    Args:
        phase: Phase definition from the manifest.
        executor: Object exposing ``async execute(step) -> StepResult``.

    Returns:
        PhaseResult with one StepResult per executed step.
    """
    set_phase_context(phase.name)
    if phase.parallel:
        results = await _run_parallel(phase.steps, executor)
        aborted_by = None
    else:
        results, aborted_by = await _run_sequential(phase.steps, executor)

    status = reduce_phase_status(results, aborted_by)
    if aborted_by is not None:
        logger.error(
            "Phase '%s' aborted by required step '%s'", phase.name, aborted_by
        )
    return PhaseResult(
        name=phase.name, status=status, steps=tuple(results), aborted_by=aborted_by
    )


async def _run_sequential(
    steps: Sequence[Step], executor: Executor
) -> tuple[list[StepResult], str | None]:
    results: list[StepResult] = []
    for step in steps:
        result = await executor.execute(step)
        results.append(result)
        if result.status == "failed" and step.error_policy == "required":
            return results, step.name
    return results, None


async def _run_parallel(steps: Sequence[Step], executor: Executor) -> list[StepResult]:
    tasks = [
        asyncio.create_task(executor.execute(step), name=f"step:{step.name}")
        for step in steps
    ]
    settled = await asyncio.gather(*tasks, return_exceptions=True)

    results: list[StepResult] = []
    for step, outcome in zip(steps, settled):
        if isinstance(outcome, StepResult):
            results.append(outcome)
            continue
        # Executor bug or cancellation, not a command failure.
        logger.error("Step '%s' raised unexpectedly: %r", step.name, outcome)
        results.append(
            StepResult(
                name=step.name,
                status="failed",
                duration=0,
                error=str(outcome)[:200] or type(outcome).__name__,
                error_category="unknown",
            )
        )
    return results
