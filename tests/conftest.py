from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import httpx
import pytest

from runboard.api.app import create_app
from runboard.api.dependencies import get_script_runner
from runboard.config.settings import settings
from runboard.core.errors import RunnerFault
from runboard.core.script_runner import RunResult, ScriptRef, ScriptRunner
from runboard.db.database import ensure_schema
from runboard.db.repository import ExecutionRepository
from runboard.state.execution_state import EXIT_CODE_FAIL, EXIT_CODE_PASS, Execution, ExecutionStatus

FIXED_NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


class StaticScriptRunner(ScriptRunner):
    """Deterministic runner: returns a configured result or raises a configured fault."""

    name = "static"

    def __init__(
        self,
        status: ExecutionStatus = ExecutionStatus.PASS,
        output: str = "TEST PASSED - All assertions successful",
        duration_ms: int = 1500,
        fault: RunnerFault | None = None,
        delay_sec: float = 0.0,
    ):
        self.status = status
        self.output = output
        self.duration_ms = duration_ms
        self.fault = fault
        self.delay_sec = delay_sec
        self.calls: list[ScriptRef] = []
        self.started = asyncio.Event()

    async def run(self, script: ScriptRef) -> RunResult:
        self.calls.append(script)
        self.started.set()
        if self.delay_sec:
            await asyncio.sleep(self.delay_sec)
        if self.fault is not None:
            raise self.fault
        exit_code = EXIT_CODE_PASS if self.status == ExecutionStatus.PASS else EXIT_CODE_FAIL
        return RunResult(self.status, self.output, self.duration_ms, exit_code)


async def insert_execution(
    project_id: str,
    started_at: datetime,
    status: ExecutionStatus | None,
    duration_ms: int = 2000,
    script_name: str = "login_test.py",
    script_id: str = "scr_login",
) -> Execution:
    """Store an execution as it would look after begin (and optionally complete)."""
    execution = Execution.begin(project_id, script_id, script_name, "tester", started_at=started_at)
    await ExecutionRepository.create(execution)
    if status is not None:
        execution = execution.complete(status, f"{status.value} log", duration_ms, 0 if status == ExecutionStatus.PASS else 1)
        await ExecutionRepository.complete(execution)
    return execution


@pytest.fixture(autouse=True)
def _isolated_store(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "STATE_DB_PATH", str(tmp_path / "runboard.db"))
    monkeypatch.setattr(settings, "WEBHOOK_ENABLED", False)
    monkeypatch.setattr(settings, "RECONCILE_ON_STARTUP", False)
    ensure_schema()


@pytest.fixture()
def runner() -> StaticScriptRunner:
    return StaticScriptRunner()


@pytest.fixture()
async def client(runner: StaticScriptRunner) -> httpx.AsyncClient:
    app = create_app()
    app.dependency_overrides[get_script_runner] = lambda: runner
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as test_client:
        yield test_client


@pytest.fixture()
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture()
def store_execution():
    return insert_execution
