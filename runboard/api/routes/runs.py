from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from runboard.api.dependencies import get_execution_recorder, get_request_id, get_script_runner, http_error
from runboard.core.errors import PersistenceError, ValidationError
from runboard.core.execution_recorder import ExecutionRecorder
from runboard.core.logger import get_logger
from runboard.core.script_runner import ScriptRunner
from runboard.core.test_runs import run_test
from runboard.schemas.request_schemas import RunTestRequest
from runboard.schemas.response_schemas import error_payload, response_envelope

router = APIRouter()
logger = get_logger(__name__)


@router.post("/runs")
async def post_run(
    request: RunTestRequest,
    request_id: str = Depends(get_request_id),
    recorder: ExecutionRecorder = Depends(get_execution_recorder),
    runner: ScriptRunner = Depends(get_script_runner),
):
    logger.info(
        "api.runs.start",
        request_id=request_id,
        project_id=request.project_id,
        script_id=request.script_id,
        runner=runner.name,
    )
    try:
        outcome = await run_test(
            recorder,
            runner,
            request.project_id,
            request.script_id,
            request.script_name,
            request.user_id,
        )
    except ValidationError as exc:
        raise http_error(exc) from exc
    except PersistenceError as exc:
        raise http_error(
            exc,
            details={"status": "fail", "output": f"Error: execution could not be recorded ({exc.message})"},
        ) from exc

    logger.info(
        "api.runs.end",
        request_id=request_id,
        execution_id=outcome.execution_id,
        status=outcome.status.value,
        persisted=outcome.persisted,
    )
    return response_envelope(True, data=outcome.to_dict(), request_id=request_id)


@router.get("/executions/{execution_id}")
async def get_execution(
    execution_id: str,
    request_id: str = Depends(get_request_id),
    recorder: ExecutionRecorder = Depends(get_execution_recorder),
):
    try:
        execution = await recorder.get_execution(execution_id)
    except PersistenceError as exc:
        raise http_error(exc) from exc
    if execution is None:
        raise HTTPException(
            status_code=404,
            detail=error_payload("EXECUTION_NOT_FOUND", f"Execution {execution_id} does not exist"),
        )
    return response_envelope(True, data=execution.to_dict(), request_id=request_id)
