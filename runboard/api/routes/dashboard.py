from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from runboard.api.dependencies import get_dashboard_service, get_request_id, http_error
from runboard.core.dashboard_service import DashboardQueryService
from runboard.core.errors import PersistenceError, ValidationError
from runboard.core.logger import get_logger
from runboard.schemas.response_schemas import response_envelope

router = APIRouter()
logger = get_logger(__name__)


@router.get("/dashboard/metrics")
async def get_dashboard_metrics(
    project_id: str | None = Query(default=None, alias="projectId"),
    days: str | None = Query(default=None),
    request_id: str = Depends(get_request_id),
    service: DashboardQueryService = Depends(get_dashboard_service),
):
    logger.info("api.dashboard.metrics", request_id=request_id, project_id=project_id, days=days)
    try:
        metrics = await service.get_metrics(project_id, days)
    except ValidationError as exc:
        raise http_error(exc) from exc
    except PersistenceError as exc:
        raise http_error(exc) from exc
    return response_envelope(True, data=metrics, request_id=request_id)


@router.get("/scripts")
async def get_scripts(
    project_id: str | None = Query(default=None, alias="projectId"),
    request_id: str = Depends(get_request_id),
    service: DashboardQueryService = Depends(get_dashboard_service),
):
    logger.info("api.scripts.list", request_id=request_id, project_id=project_id)
    try:
        scripts = await service.list_scripts(project_id)
    except ValidationError as exc:
        raise http_error(exc) from exc
    except PersistenceError as exc:
        raise http_error(exc) from exc
    return response_envelope(True, data=scripts, request_id=request_id)
