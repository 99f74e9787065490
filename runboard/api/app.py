from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from runboard.api.dependencies import get_script_runner
from runboard.api.middleware import register_middleware
from runboard.api.router import api_router
from runboard.config.settings import settings
from runboard.core.execution_recorder import ExecutionRecorder
from runboard.core.logger import get_logger
from runboard.core.logging import configure_logging
from runboard.db.database import init_db
from runboard.schemas.response_schemas import API_VERSION

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.LOG_LEVEL)
    logger.info("app.startup", env=settings.APP_ENV, version=API_VERSION, runner=settings.script_runner_normalized)
    # An unknown SCRIPT_RUNNER fails here rather than on the first request.
    runner = app.dependency_overrides.get(get_script_runner, get_script_runner)()
    logger.info("app.startup.runner", runner=runner.name)
    await init_db()
    if settings.RECONCILE_ON_STARTUP:
        reconciled = await ExecutionRecorder().reconcile_stale_executions(settings.STALE_EXECUTION_GRACE_SEC)
        logger.info("app.startup.reconciled", count=len(reconciled))
    yield
    logger.info("app.shutdown")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Runboard",
        version=API_VERSION,
        description="UI test execution recording and pass/fail analytics per project",
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_middleware(app)
    app.include_router(api_router, prefix="/api/v1")
    return app


app = create_app()
