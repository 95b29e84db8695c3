# src/pipeline/executor.py — v2
"""Step executor — run one manifest step as a shell subprocess.

Flow per step:
  1. Environment gate: unset ``requires`` variables → skipped, nothing spawned.
  2. Spawn the command via the shell in its own process group.
  3. Bound the wall-clock time; on expiry kill the whole group and wait for
     it to be reaped before returning.
  4. Classify failures with categorize_error().

One async implementation backs both call sites: the phase runner awaits
execute_step_async() (concurrently for parallel phases) and synchronous
callers use execute_step(), which drives the same coroutine to completion.
Side effects of a failed command are reported, never rolled back.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import time
from collections.abc import Mapping
from pathlib import Path

from sportsync.logging.context import set_step_context
from sportsync.pipeline.errors import categorize_error
from sportsync.pipeline.models import Step, StepResult

logger = logging.getLogger(__name__)

DEFAULT_STEP_TIMEOUT_S = 300.0
DEFAULT_KILL_GRACE_S = 5.0
MAX_ERROR_CHARS = 200
_OUTPUT_TAIL_CHARS = 2000


def check_requirements(
    requires: tuple[str, ...] | list[str] | None,
    environ: Mapping[str, str] | None = None,
) -> tuple[bool, list[str]]:
    """Return (ok, missing) for the env vars a step requires.

    A variable set to the empty string counts as missing.
    """
    if not requires:
        return True, []
    env = os.environ if environ is None else environ
    missing = [name for name in requires if not env.get(name)]
    return not missing, missing


async def execute_step_async(
    step: Step,
    default_timeout: float = DEFAULT_STEP_TIMEOUT_S,
    *,
    cwd: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    kill_grace: float = DEFAULT_KILL_GRACE_S,
) -> StepResult:
    """Execute a step without blocking the event loop.

    Args:
        step: Step definition from the manifest.
        default_timeout: Seconds allowed when the step sets no timeout.
        cwd: Working directory for the command.
        env: Full environment for the command (defaults to os.environ).
        kill_grace: Seconds to wait for a killed process to be reaped.

    Returns:
        Exactly one StepResult; never raises for command failures.
    """
    set_step_context(step.name)
    environ = dict(os.environ if env is None else env)

    ok, missing = check_requirements(step.requires, environ)
    if not ok:
        reason = f"missing env: {', '.join(missing)}"
        logger.info("Skipping step '%s': %s", step.name, reason)
        return StepResult(name=step.name, status="skipped", duration=0, reason=reason)

    timeout = step.timeout or default_timeout
    start = time.monotonic()

    try:
        proc = await asyncio.create_subprocess_shell(
            step.command,
            cwd=str(cwd) if cwd is not None else None,
            env=environ,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=(os.name == "posix"),
        )
    except OSError as e:
        return _failed(step, f"Command failed to start: {e}", start)

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        stopped = await _terminate(proc, kill_grace)
        message = f"Command timed out after {timeout:g}s: {step.command}"
        if not stopped:
            message += " (process unresponsive to kill)"
            logger.error("Step '%s' did not exit after kill", step.name)
        return _failed(step, message, start)
    except asyncio.CancelledError:
        await _terminate(proc, kill_grace)
        raise

    if proc.returncode == 0:
        duration = _elapsed_ms(start)
        logger.debug("Step '%s' succeeded in %dms", step.name, duration)
        return StepResult(name=step.name, status="success", duration=duration)

    detail = _tail(stderr) or _tail(stdout) or step.command
    return _failed(step, f"Command failed (exit code {proc.returncode}): {detail}", start)


def execute_step(
    step: Step,
    default_timeout: float = DEFAULT_STEP_TIMEOUT_S,
    *,
    cwd: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    kill_grace: float = DEFAULT_KILL_GRACE_S,
) -> StepResult:
    """Blocking variant of execute_step_async().

    Must not be called from inside a running event loop; async code awaits
    execute_step_async() directly.
    """
    return asyncio.run(
        execute_step_async(
            step, default_timeout, cwd=cwd, env=env, kill_grace=kill_grace
        )
    )


class StepExecutor:
    """Executor bound to one run's working directory, environment and timeouts."""

    def __init__(
        self,
        default_timeout: float = DEFAULT_STEP_TIMEOUT_S,
        cwd: str | Path | None = None,
        env: Mapping[str, str] | None = None,
        kill_grace: float = DEFAULT_KILL_GRACE_S,
    ) -> None:
        self._default_timeout = default_timeout
        self._cwd = cwd
        self._env = env
        self._kill_grace = kill_grace

    @property
    def default_timeout(self) -> float:
        return self._default_timeout

    async def execute(self, step: Step) -> StepResult:
        return await execute_step_async(
            step,
            self._default_timeout,
            cwd=self._cwd,
            env=self._env,
            kill_grace=self._kill_grace,
        )


# --- Internal helpers ---


async def _terminate(proc: asyncio.subprocess.Process, grace: float) -> bool:
    """Kill the process group and wait for exit. Returns False if it never exits."""
    try:
        if os.name == "posix":
            os.killpg(proc.pid, signal.SIGKILL)
        else:
            proc.kill()
    except ProcessLookupError:
        pass

    try:
        await asyncio.wait_for(proc.wait(), timeout=grace)
    except asyncio.TimeoutError:
        return False
    return True


def _failed(step: Step, message: str, start: float) -> StepResult:
    duration = _elapsed_ms(start)
    category = categorize_error(message)
    logger.warning(
        "Step '%s' failed after %dms [%s]: %s",
        step.name, duration, category, message[:MAX_ERROR_CHARS],
    )
    return StepResult(
        name=step.name,
        status="failed",
        duration=duration,
        error=message[:MAX_ERROR_CHARS] or "unknown error",
        error_category=category,
    )


def _tail(output: bytes | None) -> str:
    if not output:
        return ""
    text = output.decode("utf-8", errors="replace").strip()
    return text[-_OUTPUT_TAIL_CHARS:]


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
