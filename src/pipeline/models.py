# src/pipeline/models.py — v1
"""Pipeline domain models: manifest (Manifest/Phase/Step) and run results.

Manifest models are frozen: a manifest is loaded fresh each run and never
mutated. Result models serialize with camelCase aliases so the result
document keeps the dashboard's field names (errorPolicy, abortedBy, ...).
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ErrorPolicy = Literal["continue", "required"]
StepStatus = Literal["success", "failed", "skipped"]
PhaseStatus = Literal["success", "partial", "failed", "skipped"]
Gate = Literal["pass", "fail"]
ErrorCategory = Literal[
    "timeout", "network", "auth", "parse", "validation", "command", "unknown"
]

ERROR_POLICIES: tuple[str, ...] = ("continue", "required")


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class Step(_Frozen):
    """One schedulable unit: a shell command with an error policy."""

    name: str
    command: str
    error_policy: ErrorPolicy = Field(alias="errorPolicy")
    requires: tuple[str, ...] = ()
    timeout: float | None = None  # seconds; None = executor default


class Phase(_Frozen):
    """Named group of steps run either all concurrently or all in order."""

    name: str
    description: str = ""
    parallel: bool = False
    steps: tuple[Step, ...]


class Manifest(_Frozen):
    """Ordered list of phases; the root of the pipeline configuration."""

    version: int | str = 1
    phases: tuple[Phase, ...]

    def phase(self, name: str) -> Phase | None:
        for p in self.phases:
            if p.name == name:
                return p
        return None


class _Result(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_document(self) -> dict:
        """JSON-ready dict with camelCase keys and absent fields omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class StepResult(_Result):
    """Outcome of one step execution attempt."""

    name: str
    status: StepStatus
    duration: int = 0  # milliseconds
    error: str | None = None
    error_category: ErrorCategory | None = Field(default=None, alias="errorCategory")
    reason: str | None = None


class PhaseResult(_Result):
    name: str
    status: PhaseStatus
    steps: tuple[StepResult, ...] = ()
    aborted_by: str | None = Field(default=None, alias="abortedBy")


class RunSummary(_Result):
    total: int = 0
    success: int = 0
    failed: int = 0
    skipped: int = 0

    @classmethod
    def from_phases(cls, phases: dict[str, PhaseResult]) -> RunSummary:
        steps = [s for p in phases.values() for s in p.steps]
        return cls(
            total=len(steps),
            success=sum(1 for s in steps if s.status == "success"),
            failed=sum(1 for s in steps if s.status == "failed"),
            skipped=sum(1 for s in steps if s.status == "skipped"),
        )


class PipelineResult(_Result):
    """Authoritative record of one pipeline run."""

    started_at: str = Field(alias="startedAt")
    completed_at: str = Field(alias="completedAt")
    duration: int  # milliseconds
    gate: Gate
    phases: dict[str, PhaseResult] = Field(default_factory=dict)
    summary: RunSummary = Field(default_factory=RunSummary)
    error: str | None = None  # set only when orchestration itself crashed
