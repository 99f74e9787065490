"""Pluggable script execution.

A ``ScriptRunner`` turns a script identity into a ``RunResult``. Runners do
not persist anything; recording the outcome is the job of
``runboard.core.execution_recorder``.
"""

from __future__ import annotations

import asyncio
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import PurePosixPath

from runboard.config.settings import Settings
from runboard.core.errors import RunnerFault
from runboard.core.logger import get_logger
from runboard.state.execution_state import (
    EXIT_CODE_FAIL,
    EXIT_CODE_PASS,
    EXIT_CODE_TIMEOUT,
    ExecutionStatus,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class ScriptRef:
    script_id: str
    script_name: str


@dataclass(frozen=True)
class RunResult:
    status: ExecutionStatus
    output: str
    duration_ms: int
    exit_code: int

    @property
    def passed(self) -> bool:
        return self.status == ExecutionStatus.PASS


class ScriptRunner(ABC):
    name = "base"

    @abstractmethod
    async def run(self, script: ScriptRef) -> RunResult:
        """Execute ``script``.

        A failing assertion is returned as a ``fail`` result with diagnostic
        output. ``RunnerFault`` is raised only when the script cannot be
        executed at all.
        """


def _artifact_name(script_name: str, suffix: str) -> str:
    path = PurePosixPath(script_name)
    stem = path.stem if path.suffix == ".py" else path.name
    return f"{stem}_{suffix}.png"


def render_pass_log(script_name: str, duration_ms: int) -> str:
    return "\n".join(
        [
            "Test Execution Log:",
            "==================",
            f"[INFO] Starting test: {script_name}",
            "[INFO] Browser: Chrome (visible mode)",
            "[INFO] Initializing Selenium WebDriver...",
            "[SUCCESS] WebDriver initialized successfully",
            "[INFO] Navigating to test URL...",
            "[SUCCESS] Page loaded successfully",
            "[INFO] Executing test steps...",
            "[SUCCESS] Step 1: Element located and clicked",
            "[SUCCESS] Step 2: Form filled with test data",
            "[SUCCESS] Step 3: Submit button clicked",
            "[SUCCESS] Step 4: Verification passed - Expected element found",
            "[INFO] Taking screenshot...",
            f"[SUCCESS] Screenshot saved: {_artifact_name(script_name, 'result')}",
            "[INFO] Closing browser...",
            "==================",
            "TEST PASSED - All assertions successful",
            f"Execution time: {duration_ms / 1000:.1f} seconds",
        ]
    )


def render_fail_log(script_name: str, duration_ms: int) -> str:
    return "\n".join(
        [
            "Test Execution Log:",
            "==================",
            f"[INFO] Starting test: {script_name}",
            "[INFO] Browser: Chrome (visible mode)",
            "[INFO] Initializing Selenium WebDriver...",
            "[SUCCESS] WebDriver initialized successfully",
            "[INFO] Navigating to test URL...",
            "[SUCCESS] Page loaded successfully",
            "[INFO] Executing test steps...",
            "[SUCCESS] Step 1: Element located and clicked",
            "[SUCCESS] Step 2: Form filled with test data",
            "[ERROR] Step 3: Element not found - Timeout waiting for submit button",
            "[TRACEBACK] selenium.common.exceptions.TimeoutException: Message: ",
            f"    at wait_for_element ({script_name}:45)",
            f"    at execute_test ({script_name}:78)",
            "[INFO] Taking screenshot of failure state...",
            f"[SUCCESS] Screenshot saved: {_artifact_name(script_name, 'error')}",
            "[INFO] Closing browser...",
            "==================",
            "TEST FAILED - See error details above",
            f"Execution time: {duration_ms / 1000:.1f} seconds",
        ]
    )


class SimulatedScriptRunner(ScriptRunner):
    """Stand-in runner that randomises the outcome instead of driving a browser."""

    name = "simulated"

    def __init__(
        self,
        pass_probability: float = 0.7,
        min_duration_ms: int = 1000,
        max_duration_ms: int = 4000,
        realtime: bool = False,
        rng: random.Random | None = None,
    ):
        if not 0.0 <= pass_probability <= 1.0:
            raise ValueError("pass_probability must be within [0, 1]")
        if min_duration_ms < 0 or max_duration_ms < min_duration_ms:
            raise ValueError("duration range must satisfy 0 <= min <= max")
        self.pass_probability = pass_probability
        self.min_duration_ms = min_duration_ms
        self.max_duration_ms = max_duration_ms
        self.realtime = realtime
        self._rng = rng or random.Random()

    async def run(self, script: ScriptRef) -> RunResult:
        script_name = (script.script_name or "").strip()
        if not script_name:
            raise RunnerFault(f"script not found: {script.script_id or '<unknown>'}")

        passed = self._rng.random() < self.pass_probability
        duration_ms = self._rng.randint(self.min_duration_ms, self.max_duration_ms)
        if self.realtime:
            await asyncio.sleep(duration_ms / 1000)

        logger.debug("runner.simulated.result", script_id=script.script_id, passed=passed, duration_ms=duration_ms)
        if passed:
            return RunResult(ExecutionStatus.PASS, render_pass_log(script_name, duration_ms), duration_ms, EXIT_CODE_PASS)
        return RunResult(ExecutionStatus.FAIL, render_fail_log(script_name, duration_ms), duration_ms, EXIT_CODE_FAIL)


async def run_script(runner: ScriptRunner, script: ScriptRef, timeout_sec: float) -> RunResult:
    try:
        result = await asyncio.wait_for(runner.run(script), timeout=timeout_sec)
    except asyncio.TimeoutError as exc:
        raise RunnerFault(
            f"script {script.script_name} did not finish within {timeout_sec:g}s",
            exit_code=EXIT_CODE_TIMEOUT,
            details={"timeout_sec": timeout_sec},
        ) from exc
    if result.status not in (ExecutionStatus.PASS, ExecutionStatus.FAIL):
        raise RunnerFault(f"runner {runner.name} returned non-terminal status {result.status}")
    if result.duration_ms < 0:
        raise RunnerFault(f"runner {runner.name} returned negative duration {result.duration_ms}")
    return result


def build_script_runner(config: Settings) -> ScriptRunner:
    kind = config.script_runner_normalized
    if kind == "simulated":
        low, high = config.simulated_duration_range_ms
        rng = random.Random(config.SIMULATED_SEED) if config.SIMULATED_SEED is not None else None
        return SimulatedScriptRunner(
            pass_probability=float(config.SIMULATED_PASS_PROBABILITY),
            min_duration_ms=low,
            max_duration_ms=high,
            realtime=bool(config.SIMULATED_REALTIME),
            rng=rng,
        )
    raise ValueError(f"Unknown SCRIPT_RUNNER: {config.SCRIPT_RUNNER!r}")
