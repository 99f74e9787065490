from __future__ import annotations

from functools import lru_cache

from fastapi import HTTPException, Request

from runboard.config.settings import settings
from runboard.core.dashboard_service import DashboardQueryService
from runboard.core.errors import RunboardError
from runboard.core.execution_recorder import ExecutionRecorder
from runboard.core.metrics import MetricsAggregator
from runboard.core.script_runner import ScriptRunner, build_script_runner
from runboard.schemas.response_schemas import error_payload


def get_request_id(request: Request) -> str:
    rid = getattr(request.state, "request_id", "")
    return rid or "req_local"


@lru_cache(maxsize=1)
def get_script_runner() -> ScriptRunner:
    return build_script_runner(settings)


def get_execution_recorder() -> ExecutionRecorder:
    return ExecutionRecorder()


def get_dashboard_service() -> DashboardQueryService:
    aggregator = MetricsAggregator(
        recent_limit=settings.RECENT_EXECUTIONS_LIMIT,
        max_window_days=settings.METRICS_MAX_WINDOW_DAYS,
    )
    return DashboardQueryService(aggregator, default_window_days=settings.METRICS_DEFAULT_WINDOW_DAYS)


def http_error(exc: RunboardError, details: dict | None = None) -> HTTPException:
    merged = {**exc.details, **(details or {})}
    return HTTPException(status_code=exc.http_status, detail=error_payload(exc.code, exc.message, details=merged))
