from __future__ import annotations

from fastapi import APIRouter, Depends

from runboard.api.dependencies import get_execution_recorder, get_request_id, get_script_runner, http_error
from runboard.config.settings import settings
from runboard.core.errors import PersistenceError
from runboard.core.execution_recorder import ExecutionRecorder
from runboard.core.logger import get_logger
from runboard.core.script_runner import ScriptRunner
from runboard.db.repository import ExecutionRepository
from runboard.schemas.request_schemas import ReconcileRequest
from runboard.schemas.response_schemas import API_VERSION, response_envelope

router = APIRouter()
logger = get_logger(__name__)


@router.get("/system/health")
async def get_health(
    request_id: str = Depends(get_request_id),
    runner: ScriptRunner = Depends(get_script_runner),
):
    logger.info("api.system.health", request_id=request_id)
    db_status = "up"
    db_size_mb = 0.0
    counts: dict[str, int] = {}
    try:
        counts = await ExecutionRepository.count_by_status()
        db_path = settings.state_db_path
        if db_path.exists():
            db_size_mb = round(db_path.stat().st_size / 1e6, 2)
    except PersistenceError:
        db_status = "down"

    data = {
        "status": "healthy" if db_status == "up" else "degraded",
        "version": API_VERSION,
        "components": {
            "api": {"status": "up"},
            "database": {"status": db_status, "type": "sqlite", "size_mb": db_size_mb},
            "script_runner": {"status": "up", "kind": runner.name, "timeout_sec": settings.runner_timeout_sec},
        },
        "running_executions": counts.get("running", 0),
        "total_executions": sum(counts.values()),
    }
    return response_envelope(True, data=data, request_id=request_id)


@router.post("/system/reconcile")
async def post_reconcile(
    request: ReconcileRequest | None = None,
    request_id: str = Depends(get_request_id),
    recorder: ExecutionRecorder = Depends(get_execution_recorder),
):
    requested = request.grace_sec if request and request.grace_sec is not None else settings.STALE_EXECUTION_GRACE_SEC
    grace_sec = recorder.effective_grace_sec(requested)
    logger.info("api.system.reconcile", request_id=request_id, grace_sec=grace_sec)
    try:
        reconciled = await recorder.reconcile_stale_executions(grace_sec)
    except PersistenceError as exc:
        raise http_error(exc) from exc
    data = {
        "grace_sec": grace_sec,
        "reconciled_count": len(reconciled),
        "reconciled_ids": [item.id for item in reconciled],
    }
    return response_envelope(True, data=data, request_id=request_id)
