from __future__ import annotations

from datetime import datetime
from typing import Any

from runboard.core.errors import require_text
from runboard.core.metrics import MetricsAggregator
from runboard.db.repository import ScriptRepository


class DashboardQueryService:
    """Stateless façade over the metrics rollup and the script listing."""

    def __init__(
        self,
        aggregator: MetricsAggregator,
        default_window_days: int = 7,
        scripts: type[ScriptRepository] = ScriptRepository,
    ):
        self._aggregator = aggregator
        self._default_window_days = default_window_days
        self._scripts = scripts

    async def get_metrics(self, project_id: str | None, days: Any = None, now: datetime | None = None) -> dict[str, Any]:
        project = require_text(project_id, "projectId")
        window = self._default_window_days if days is None else days
        return await self._aggregator.compute(project, window, now=now)

    async def list_scripts(self, project_id: str | None) -> list[dict[str, Any]]:
        project = require_text(project_id, "projectId")
        return await self._scripts.list_for_project(project)
