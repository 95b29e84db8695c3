# tests/unit/pipeline/test_unit_orchestrator.py — v3
"""Tests for pipeline/orchestrator.py — phase ordering, gate, persistence."""

from __future__ import annotations

import asyncio
import json

import pytest

from sportsync.pipeline.manifest import ManifestError
from sportsync.pipeline.models import PhaseResult, StepResult
from sportsync.pipeline.orchestrator import PipelineOrchestrator, compute_gate


def _phase_result(name, steps, aborted_by=None):
    return PhaseResult(
        name=name,
        status="failed" if aborted_by else "success",
        steps=tuple(StepResult(name=n, status=s) for n, s in steps),
        aborted_by=aborted_by,
    )


class TestComputeGate:
    def test_pass(self):
        phases = {"finalize": _phase_result("finalize", [("pre-commit-gate", "success")])}
        assert compute_gate(phases) == "pass"

    def test_gate_step_failed(self):
        phases = {"finalize": _phase_result("finalize", [("pre-commit-gate", "failed")])}
        assert compute_gate(phases) == "fail"

    def test_gate_step_skipped_passes(self):
        phases = {"finalize": _phase_result("finalize", [("pre-commit-gate", "skipped")])}
        assert compute_gate(phases) == "pass"

    def test_abort_anywhere_fails(self):
        phases = {"build": _phase_result("build", [("x", "failed")], aborted_by="x")}
        assert compute_gate(phases) == "fail"

    def test_other_failures_pass(self):
        phases = {
            "fetch": _phase_result("fetch", [("fetch-golf", "failed")]),
            "finalize": _phase_result("finalize", [("other", "failed")]),
        }
        assert compute_gate(phases) == "pass"

    def test_custom_gate_step(self):
        phases = {"publish": _phase_result("publish", [("check", "failed")])}
        assert compute_gate(phases, gate_phase="publish", gate_step="check") == "fail"


class TestPipelineOrchestrator:
    @pytest.mark.asyncio
    async def test_all_phases_run(self, settings, sample_manifest, scripted_executor_factory):
        executor = scripted_executor_factory({"enrich": "skipped"})
        orchestrator = PipelineOrchestrator(settings=settings, executor=executor)
        result = await orchestrator.run(sample_manifest)

        assert result.gate == "pass"
        assert list(result.phases) == ["fetch", "build", "finalize"]
        assert result.summary.total == 5
        assert result.summary.success == 4
        assert result.summary.skipped == 1
        assert result.error is None

    @pytest.mark.asyncio
    async def test_abort_skips_remaining_phases(
        self, settings, sample_manifest, scripted_executor_factory
    ):
        executor = scripted_executor_factory({"build-events": "failed"})
        orchestrator = PipelineOrchestrator(settings=settings, executor=executor)
        result = await orchestrator.run(sample_manifest)

        assert result.gate == "fail"
        assert result.phases["build"].aborted_by == "build-events"
        assert result.phases["finalize"].status == "skipped"
        assert result.phases["finalize"].steps == ()
        assert "pre-commit-gate" not in executor.calls
        assert "enrich" not in executor.calls

    @pytest.mark.asyncio
    async def test_gate_failure(self, settings, sample_manifest, scripted_executor_factory):
        executor = scripted_executor_factory({"pre-commit-gate": "failed"})
        result = await PipelineOrchestrator(settings=settings, executor=executor).run(
            sample_manifest
        )
        assert result.gate == "fail"
        assert result.phases["finalize"].status == "partial"

    @pytest.mark.asyncio
    async def test_result_document_written(
        self, settings, sample_manifest, scripted_executor_factory
    ):
        orchestrator = PipelineOrchestrator(
            settings=settings, executor=scripted_executor_factory({"fetch-golf": "failed"})
        )
        await orchestrator.run(sample_manifest)

        assert orchestrator.result_path == settings.result_path
        doc = json.loads(orchestrator.result_path.read_text())
        assert doc["gate"] == "pass"
        assert {"startedAt", "completedAt", "duration", "phases", "summary"} <= set(doc)
        assert "error" not in doc
        golf = doc["phases"]["fetch"]["steps"][1]
        assert golf["errorCategory"] == "command"
        assert doc["phases"]["fetch"]["status"] == "partial"

    @pytest.mark.asyncio
    async def test_result_path_override(
        self, settings, sample_manifest, scripted_executor_factory, tmp_path
    ):
        target = tmp_path / "elsewhere" / "result.json"
        orchestrator = PipelineOrchestrator(
            settings=settings, executor=scripted_executor_factory(), result_path=target
        )
        await orchestrator.run(sample_manifest)
        assert target.exists()

    @pytest.mark.asyncio
    async def test_invalid_manifest_persists_partial_result(self, settings):
        orchestrator = PipelineOrchestrator(settings=settings)
        with pytest.raises(ManifestError):
            await orchestrator.run({"phases": "nope"})

        doc = json.loads(orchestrator.result_path.read_text())
        assert doc["gate"] == "fail"
        assert doc["error"].startswith("ManifestError")
        assert doc["phases"] == {}
        assert doc["summary"]["total"] == 0

    @pytest.mark.asyncio
    async def test_cancelled_run_persists_partial_result(
        self, settings, sample_manifest, scripted_executor_factory
    ):
        executor = scripted_executor_factory(delays={"build-events": 5})
        orchestrator = PipelineOrchestrator(settings=settings, executor=executor)
        task = asyncio.create_task(orchestrator.run(sample_manifest))
        while "build-events" not in executor.calls:
            await asyncio.sleep(0.01)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        doc = json.loads(orchestrator.result_path.read_text())
        assert doc["gate"] == "fail"
        assert doc["error"] == "CancelledError"
        assert list(doc["phases"]) == ["fetch"]
        assert doc["summary"]["success"] == 2

    @pytest.mark.asyncio
    async def test_manifest_from_settings(
        self, settings, sample_manifest, scripted_executor_factory
    ):
        settings.resolved_manifest_path.parent.mkdir(parents=True, exist_ok=True)
        settings.resolved_manifest_path.write_text(json.dumps(sample_manifest))
        result = await PipelineOrchestrator(
            settings=settings, executor=scripted_executor_factory()
        ).run()
        assert result.summary.total == 5
