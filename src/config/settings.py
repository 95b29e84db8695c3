# src/config/settings.py — v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for paths, pipeline timeouts, quality-loop limits,
LLM credentials and logging options.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Paths ===
    project_root: Path = Path(".")
    manifest_path: Path = Path("scripts/pipeline-manifest.json")
    data_dir: Path = Path("docs/data")
    result_filename: str = "pipeline-result.json"
    history_filename: str = "quality-history.json"

    # === Pipeline ===
    step_timeout_s: float = 300.0
    kill_grace_s: float = 5.0
    gate_phase: str = "finalize"
    gate_step: str = "pre-commit-gate"

    # === Quality loop ===
    history_max_entries: int = 100
    generation_max_attempts: int = 2

    # === LLM ===
    llm_provider: Literal["auto", "anthropic", "openai", "none"] = "auto"
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    openai_model: str = "gpt-4o-mini"
    llm_temperature: float = 0.3
    llm_max_tokens: int = 4096

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("step_timeout_s", "kill_grace_s")
    @classmethod
    def validate_positive_seconds(cls, v: float) -> float:  # noqa: N805
        if v <= 0:
            raise ValueError("timeouts must be > 0 seconds")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.history_max_entries < 1:
            errors.append("HISTORY_MAX_ENTRIES must be >= 1")

        if self.generation_max_attempts < 1:
            errors.append("GENERATION_MAX_ATTEMPTS must be >= 1")

        if self.llm_provider == "anthropic" and not self.anthropic_api_key:
            errors.append("LLM_PROVIDER=anthropic requires ANTHROPIC_API_KEY")

        if self.llm_provider == "openai" and not self.openai_api_key:
            errors.append("LLM_PROVIDER=openai requires OPENAI_API_KEY")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def resolved_data_dir(self) -> Path:
        """Data directory resolved against the project root."""
        return _resolve(self.project_root, self.data_dir)

    @property
    def resolved_manifest_path(self) -> Path:
        return _resolve(self.project_root, self.manifest_path)

    @property
    def result_path(self) -> Path:
        """Where the pipeline result document is written."""
        return self.resolved_data_dir / self.result_filename

    @property
    def history_path(self) -> Path:
        return self.resolved_data_dir / self.history_filename


def _resolve(root: Path, path: Path) -> Path:
    path = Path(path).expanduser()
    if path.is_absolute():
        return path
    return Path(root).expanduser() / path


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-run config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
