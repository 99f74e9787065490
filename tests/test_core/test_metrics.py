from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from runboard.core.errors import AggregationError
from runboard.core.metrics import MetricsAggregator, round_half_up, summarize_executions
from runboard.state.execution_state import Execution, ExecutionStatus

EMPTY_METRICS = {
    "totalRuns": 0,
    "passedRuns": 0,
    "failedRuns": 0,
    "passRate": 0,
    "avgDuration": 0,
    "chartData": [],
    "recentExecutions": [],
}


def _execution(started_at: datetime, status: ExecutionStatus | None, duration_ms: int = 1000, name: str = "a.py") -> Execution:
    execution = Execution.begin("prj_1", "scr_1", name, started_at=started_at)
    if status is None:
        return execution
    return execution.complete(status, "log", duration_ms, 0)


def test_empty_history_yields_zero_totals():
    assert summarize_executions([]) == EMPTY_METRICS


def test_rounding_is_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(66.66) == 67
    assert round_half_up(0.49) == 0


def test_running_executions_count_toward_totals_but_not_outcomes(fixed_now):
    executions = [
        _execution(fixed_now - timedelta(hours=3), ExecutionStatus.PASS, 1000),
        _execution(fixed_now - timedelta(hours=2), ExecutionStatus.FAIL, 3000),
        _execution(fixed_now - timedelta(hours=1), None),
    ]
    metrics = summarize_executions(executions)
    assert metrics["totalRuns"] == 3
    assert metrics["passedRuns"] + metrics["failedRuns"] == 2
    assert metrics["passRate"] == 33
    # the running execution is excluded from the mean, not treated as 0
    assert metrics["avgDuration"] == 2000
    assert metrics["chartData"] == [{"date": "2026-10-19", "passed": 1, "failed": 1, "total": 3}]
    assert metrics["recentExecutions"][0]["status"] == "running"
    assert metrics["recentExecutions"][0]["durationMs"] is None


def test_avg_duration_is_zero_when_nothing_has_finished(fixed_now):
    metrics = summarize_executions([_execution(fixed_now, None), _execution(fixed_now, None)])
    assert metrics["totalRuns"] == 2
    assert metrics["avgDuration"] == 0
    assert metrics["passRate"] == 0


def test_chart_data_groups_by_utc_date_in_first_seen_order():
    late_evening_pdt = datetime(2026, 10, 18, 20, 0, tzinfo=timezone(timedelta(hours=-7)))
    executions = [
        _execution(datetime(2026, 10, 17, 9, 0, tzinfo=timezone.utc), ExecutionStatus.PASS),
        _execution(late_evening_pdt, ExecutionStatus.FAIL),
        _execution(datetime(2026, 10, 17, 23, 59, tzinfo=timezone.utc), ExecutionStatus.FAIL),
    ]
    chart = summarize_executions(executions)["chartData"]
    assert chart == [
        {"date": "2026-10-17", "passed": 1, "failed": 1, "total": 2},
        {"date": "2026-10-19", "passed": 0, "failed": 1, "total": 1},
    ]
    assert sum(item["total"] for item in chart) == 3


@pytest.mark.asyncio
async def test_seven_passes_three_failures_in_window(fixed_now, store_execution):
    durations = [1000, 1300, 1700, 2000, 2300, 2700, 3000, 3300, 3700, 4000]
    for index, duration in enumerate(durations):
        status = ExecutionStatus.PASS if index < 7 else ExecutionStatus.FAIL
        await store_execution("prj_a", fixed_now - timedelta(hours=index * 12 + 1), status, duration)

    metrics = await MetricsAggregator().compute("prj_a", 7, now=fixed_now)

    assert metrics["totalRuns"] == 10
    assert metrics["passedRuns"] == 7
    assert metrics["failedRuns"] == 3
    assert metrics["passRate"] == 70
    assert metrics["avgDuration"] == 2500
    assert sum(item["total"] for item in metrics["chartData"]) == 10
    dates = [item["date"] for item in metrics["chartData"]]
    assert dates == sorted(dates)


@pytest.mark.asyncio
async def test_project_without_executions_in_window(fixed_now, store_execution):
    await store_execution("prj_b", fixed_now - timedelta(days=30), ExecutionStatus.PASS)
    await store_execution("prj_other", fixed_now - timedelta(hours=1), ExecutionStatus.PASS)

    metrics = await MetricsAggregator().compute("prj_b", 7, now=fixed_now)
    assert metrics == EMPTY_METRICS


@pytest.mark.asyncio
async def test_recent_executions_are_capped_and_newest_first(fixed_now, store_execution):
    for index in range(15):
        await store_execution("prj_c", fixed_now - timedelta(minutes=15 - index), ExecutionStatus.PASS, script_name=f"script_{index}.py")

    metrics = await MetricsAggregator().compute("prj_c", now=fixed_now)
    recent = metrics["recentExecutions"]
    assert len(recent) == 10
    assert [item["scriptName"] for item in recent] == [f"script_{index}.py" for index in range(14, 4, -1)]
    assert set(recent[0]) == {"id", "scriptName", "status", "startedAt", "durationMs"}
    started = [item["startedAt"] for item in recent]
    assert started == sorted(started, reverse=True)


@pytest.mark.asyncio
async def test_window_boundary_and_custom_days(fixed_now, store_execution):
    await store_execution("prj_d", fixed_now - timedelta(days=7), ExecutionStatus.PASS)
    await store_execution("prj_d", fixed_now - timedelta(days=7, seconds=1), ExecutionStatus.PASS)
    await store_execution("prj_d", fixed_now - timedelta(days=20), ExecutionStatus.FAIL)

    aggregator = MetricsAggregator()
    assert (await aggregator.compute("prj_d", 7, now=fixed_now))["totalRuns"] == 1
    assert (await aggregator.compute("prj_d", 30, now=fixed_now))["totalRuns"] == 3


@pytest.mark.asyncio
async def test_compute_is_idempotent_without_writes(fixed_now, store_execution):
    await store_execution("prj_e", fixed_now - timedelta(hours=5), ExecutionStatus.PASS)
    await store_execution("prj_e", fixed_now - timedelta(hours=4), None)
    aggregator = MetricsAggregator()
    first = await aggregator.compute("prj_e", 7, now=fixed_now)
    second = await aggregator.compute("prj_e", 7, now=fixed_now)
    assert first == second


@pytest.mark.asyncio
@pytest.mark.parametrize("days", [0, -3, "abc", 2.5, True, 10_000])
async def test_invalid_window_is_rejected(days):
    with pytest.raises(AggregationError):
        await MetricsAggregator().compute("prj_1", days)


@pytest.mark.asyncio
async def test_blank_project_is_rejected():
    with pytest.raises(AggregationError):
        await MetricsAggregator().compute("   ", 7)
