from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Any, Iterable

from runboard.core.errors import AggregationError, require_text
from runboard.core.logger import get_logger
from runboard.db.repository import ExecutionRepository
from runboard.state.execution_state import Execution, ExecutionStatus, format_timestamp, to_utc, utc_now

logger = get_logger(__name__)

DEFAULT_WINDOW_DAYS = 7
DEFAULT_RECENT_LIMIT = 10


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def summarize_executions(executions: Iterable[Execution], recent_limit: int = DEFAULT_RECENT_LIMIT) -> dict[str, Any]:
    """Roll up executions already ordered by start time, oldest first."""
    selected = list(executions)
    total_runs = len(selected)
    passed_runs = sum(1 for item in selected if item.status == ExecutionStatus.PASS)
    failed_runs = sum(1 for item in selected if item.status == ExecutionStatus.FAIL)
    pass_rate = round_half_up(passed_runs / total_runs * 100) if total_runs else 0

    # Running executions have no duration; they are left out rather than counted as 0.
    durations = [item.duration_ms for item in selected if item.duration_ms is not None]
    avg_duration = round_half_up(sum(durations) / len(durations)) if durations else 0

    by_date: dict[str, dict[str, Any]] = {}
    for item in selected:
        date = item.started_at.date().isoformat()
        bucket = by_date.setdefault(date, {"date": date, "passed": 0, "failed": 0, "total": 0})
        bucket["total"] += 1
        if item.status == ExecutionStatus.PASS:
            bucket["passed"] += 1
        elif item.status == ExecutionStatus.FAIL:
            bucket["failed"] += 1

    newest_first = sorted(selected, key=lambda item: item.started_at, reverse=True)
    recent = [
        {
            "id": item.id,
            "scriptName": item.script_name,
            "status": item.status.value,
            "startedAt": format_timestamp(item.started_at),
            "durationMs": item.duration_ms,
        }
        for item in newest_first[: max(0, recent_limit)]
    ]

    return {
        "totalRuns": total_runs,
        "passedRuns": passed_runs,
        "failedRuns": failed_runs,
        "passRate": pass_rate,
        "avgDuration": avg_duration,
        "chartData": list(by_date.values()),
        "recentExecutions": recent,
    }


def validate_window(days: Any, max_window_days: int) -> int:
    if isinstance(days, bool):
        raise AggregationError("days must be an integer", details={"days": days})
    try:
        window = int(days)
    except (TypeError, ValueError) as exc:
        raise AggregationError("days must be an integer", details={"days": str(days)}) from exc
    if isinstance(days, float) and not days.is_integer():
        raise AggregationError("days must be a whole number", details={"days": days})
    if window <= 0:
        raise AggregationError("days must be greater than 0", details={"days": window})
    if window > max_window_days:
        raise AggregationError(
            f"days must not exceed {max_window_days}",
            details={"days": window, "max_days": max_window_days},
        )
    return window


class MetricsAggregator:
    def __init__(
        self,
        repository: type[ExecutionRepository] = ExecutionRepository,
        recent_limit: int = DEFAULT_RECENT_LIMIT,
        max_window_days: int = 365,
    ):
        self._repository = repository
        self.recent_limit = recent_limit
        self.max_window_days = max_window_days

    async def compute(
        self,
        project_id: str | None,
        days: Any = DEFAULT_WINDOW_DAYS,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        project = require_text(project_id, "projectId", AggregationError)
        window = validate_window(days, self.max_window_days)
        reference = to_utc(now) if now else utc_now()
        since = reference - timedelta(days=window)

        logger.info("metrics.compute.start", project_id=project, days=window)
        executions = await self._repository.list_for_project_since(project, since)
        metrics = summarize_executions(executions, self.recent_limit)
        logger.info(
            "metrics.compute.done",
            project_id=project,
            total_runs=metrics["totalRuns"],
            failed_runs=metrics["failedRuns"],
            pass_rate=metrics["passRate"],
        )
        return metrics
