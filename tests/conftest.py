# tests/conftest.py — v2
"""Shared test fixtures for all unit and integration tests.

Provides a scripted step executor, sample manifests, sample events and a
mock LLM client. No network access; subprocesses only run the current
Python interpreter.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from sportsync.config.settings import Settings
from sportsync.llm.models import LLMResponse
from sportsync.logging.context import clear_context
from sportsync.pipeline.models import Step, StepResult


# === Helpers ===


class ScriptedExecutor:
    """Executor returning canned results keyed by step name.

    Unknown steps succeed. ``delays`` (seconds) make steps overlap in time
    so concurrency can be observed through ``max_in_flight``.
    """

    def __init__(
        self,
        outcomes: dict[str, str] | None = None,
        delays: dict[str, float] | None = None,
        raises: dict[str, Exception] | None = None,
    ) -> None:
        self.outcomes = outcomes or {}
        self.delays = delays or {}
        self.raises = raises or {}
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def execute(self, step: Step) -> StepResult:
        self.calls.append(step.name)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if step.name in self.delays:
                await asyncio.sleep(self.delays[step.name])
            if step.name in self.raises:
                raise self.raises[step.name]
            status = self.outcomes.get(step.name, "success")
            if status == "failed":
                return StepResult(
                    name=step.name, status="failed", duration=1,
                    error="Command failed (exit code 1): boom", error_category="command",
                )
            if status == "skipped":
                return StepResult(
                    name=step.name, status="skipped", reason="missing env: TOKEN",
                )
            return StepResult(name=step.name, status="success", duration=1)
        finally:
            self.in_flight -= 1


# === FIXTURES ===


@pytest.fixture(autouse=True)
def _reset_log_context():
    clear_context()
    yield
    clear_context()


@pytest.fixture(autouse=True)
def _reset_sportsync_logger():
    """Drop handlers installed by setup_logging() (they hold captured streams)."""
    yield
    root = logging.getLogger("sportsync")
    for handler in list(root.handlers):
        handler.close()
    root.handlers.clear()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings rooted in a temp dir, no .env, no LLM."""
    return Settings(
        _env_file=None,
        project_root=tmp_path,
        data_dir=tmp_path / "data",
        llm_provider="none",
        anthropic_api_key="",
        openai_api_key="",
    )


@pytest.fixture
def scripted_executor_factory() -> Callable[..., ScriptedExecutor]:
    return ScriptedExecutor


@pytest.fixture
def sample_manifest() -> dict:
    """Three phases mirroring the production layout."""
    return {
        "version": 1,
        "phases": [
            {
                "name": "fetch",
                "description": "Fetch sports data",
                "parallel": True,
                "steps": [
                    {"name": "fetch-football", "command": "true", "errorPolicy": "continue"},
                    {"name": "fetch-golf", "command": "true", "errorPolicy": "continue"},
                ],
            },
            {
                "name": "build",
                "description": "Build events",
                "steps": [
                    {"name": "build-events", "command": "true", "errorPolicy": "required"},
                    {"name": "enrich", "command": "true", "errorPolicy": "continue",
                     "requires": ["ANTHROPIC_API_KEY"]},
                ],
            },
            {
                "name": "finalize",
                "description": "Validate before publish",
                "steps": [
                    {"name": "pre-commit-gate", "command": "true", "errorPolicy": "continue"},
                ],
            },
        ],
    }


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 3, 14, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_events() -> list[dict]:
    """Today's and this week's events relative to the ``now`` fixture."""
    return [
        {
            "sport": "football", "title": "Arsenal vs Chelsea",
            "homeTeam": "Arsenal", "awayTeam": "Chelsea",
            "tournament": "Premier League", "time": "2026-03-14T17:30:00Z",
            "importance": 5, "norwegianRelevance": 3, "summary": "London derby. Big one.",
            "tags": ["derby"],
        },
        {
            "sport": "golf", "title": "The Players Championship R3",
            "tournament": "PGA Tour", "time": "2026-03-14T12:00:00Z",
            "importance": 4, "norwegianRelevance": 5, "norwegian": True,
        },
        {
            "sport": "chess", "title": "Candidates Round 2",
            "time": "2026-03-15T13:00:00Z", "importance": 3,
        },
        {
            "sport": "tennis", "title": "Indian Wells Final",
            "tournament": "Masters 1000", "time": "2026-03-16T19:00:00Z",
            "importance": 4,
        },
    ]


@pytest.fixture
def valid_featured() -> dict:
    return {
        "blocks": [
            {"type": "headline", "text": "Derby day in London"},
            {"type": "event-line", "text": "⚽ Arsenal v Chelsea, 17:30, Premier League"},
            {"type": "event-line", "text": "⛳ The Players Championship R3, 12:00"},
            {"type": "narrative", "text": "Hovland chases a first Sawgrass title."},
        ]
    }


@pytest.fixture
def mock_llm_response() -> LLMResponse:
    return LLMResponse(
        content='{"blocks": []}',
        input_tokens=100,
        output_tokens=50,
        model="claude-sonnet-4-20250514",
        provider="anthropic",
        latency_ms=120,
    )


@pytest.fixture
def mock_llm_client(mock_llm_response: LLMResponse) -> AsyncMock:
    """Mock BaseLLMClient with default response."""
    client = AsyncMock()
    client.complete = AsyncMock(return_value=mock_llm_response)
    client.provider_name = "mock"
    client.model = "mock-model"
    return client
