from fastapi import APIRouter

from runboard.api.routes.dashboard import router as dashboard_router
from runboard.api.routes.runs import router as runs_router
from runboard.api.routes.system import router as system_router

api_router = APIRouter()
api_router.include_router(runs_router, tags=["runs"])
api_router.include_router(dashboard_router, tags=["dashboard"])
api_router.include_router(system_router, tags=["system"])
