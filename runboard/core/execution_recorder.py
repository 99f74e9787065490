from __future__ import annotations

import math
from datetime import datetime, timedelta

from runboard.config.settings import settings
from runboard.core.errors import ExecutionStateError, PersistenceError, require_text
from runboard.core.history_scope import normalize_project_id, normalize_user_id
from runboard.core.logger import get_logger
from runboard.db.repository import ExecutionRepository
from runboard.state.execution_state import (
    EXIT_CODE_ABANDONED,
    Execution,
    ExecutionStatus,
    to_utc,
    utc_now,
)

logger = get_logger(__name__)


class ExecutionRecorder:
    """Owns the ``running -> pass|fail`` lifecycle of execution records.

    Each execution id has a single writer: ``begin_execution`` creates the
    row, ``complete_execution`` applies the one terminal update.
    """

    def __init__(self, repository: type[ExecutionRepository] = ExecutionRepository):
        self._repository = repository

    async def begin_execution(
        self,
        project_id: str | None,
        script_id: str | None,
        script_name: str | None,
        user_id: str | None = None,
    ) -> Execution:
        execution = Execution.begin(
            normalize_project_id(project_id),
            script_id,
            script_name,
            normalize_user_id(user_id),
        )
        try:
            await self._repository.create(execution)
        except PersistenceError:
            logger.error(
                "execution.begin.failed",
                execution_id=execution.id,
                project_id=execution.project_id,
                script_id=execution.script_id,
            )
            raise
        logger.info(
            "execution.begin",
            execution_id=execution.id,
            project_id=execution.project_id,
            script_id=execution.script_id,
            user_id=execution.user_id,
        )
        return execution

    async def complete_execution(
        self,
        execution_id: str,
        status: ExecutionStatus | str,
        output: str,
        duration_ms: int,
        exit_code: int,
        *,
        completed_at: datetime | None = None,
    ) -> Execution:
        execution_id = require_text(execution_id, "executionId")
        current = await self._repository.get(execution_id)
        if current is None:
            raise ExecutionStateError(f"Execution {execution_id} does not exist", details={"execution_id": execution_id})
        completed = current.complete(status, output, duration_ms, exit_code, completed_at=completed_at)
        try:
            updated = await self._repository.complete(completed)
        except PersistenceError:
            logger.error(
                "execution.complete.write_failed",
                execution_id=execution_id,
                status=completed.status.value,
            )
            raise
        if not updated:
            raise ExecutionStateError(
                f"Execution {execution_id} was completed by another writer",
                details={"execution_id": execution_id},
            )
        logger.info(
            "execution.complete",
            execution_id=execution_id,
            status=completed.status.value,
            duration_ms=completed.duration_ms,
            exit_code=completed.exit_code,
        )
        return completed

    async def get_execution(self, execution_id: str) -> Execution | None:
        return await self._repository.get(execution_id)

    @staticmethod
    def effective_grace_sec(grace_sec: int) -> int:
        return max(int(grace_sec), 0, math.ceil(settings.runner_timeout_sec))

    async def reconcile_stale_executions(
        self,
        grace_sec: int,
        now: datetime | None = None,
    ) -> list[Execution]:
        """Force-fail ``running`` executions older than ``grace_sec``.

        Closes the gap left when a run finished but its terminal update never
        reached the store.

        The grace period never drops below the runner timeout, so a run still
        inside its time budget is left to its own writer.
        """
        grace_sec = self.effective_grace_sec(grace_sec)
        reference = to_utc(now) if now else utc_now()
        cutoff = reference - timedelta(seconds=grace_sec)
        stale = await self._repository.list_stale_running(cutoff)
        reconciled: list[Execution] = []
        for execution in stale:
            elapsed_ms = max(0, int((reference - execution.started_at).total_seconds() * 1000))
            output = (
                f"Execution abandoned: no terminal result was recorded within {int(grace_sec)}s "
                f"of start ({execution.started_at.isoformat()}). Marked as failed by reconciliation."
            )
            try:
                completed = await self.complete_execution(
                    execution.id,
                    ExecutionStatus.FAIL,
                    output,
                    elapsed_ms,
                    EXIT_CODE_ABANDONED,
                    completed_at=reference,
                )
            except ExecutionStateError:
                # Completed concurrently by its original writer.
                logger.info("execution.reconcile.skipped", execution_id=execution.id)
                continue
            reconciled.append(completed)
        logger.info(
            "execution.reconcile",
            grace_sec=grace_sec,
            candidates=len(stale),
            reconciled=len(reconciled),
        )
        return reconciled
