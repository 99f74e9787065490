from __future__ import annotations

from datetime import timedelta

import pytest

from runboard.db.repository import ExecutionRepository
from runboard.state.execution_state import EXIT_CODE_ABANDONED, ExecutionStatus, utc_now


@pytest.mark.asyncio
async def test_health_endpoint(client, store_execution):
    await store_execution("prj_1", utc_now(), None)
    response = await client.get("/api/v1/system/health")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["components"]["database"]["status"] == "up"
    assert body["data"]["components"]["script_runner"]["kind"] == "static"
    assert body["data"]["running_executions"] == 1


@pytest.mark.asyncio
async def test_reconcile_endpoint_closes_abandoned_runs(client, store_execution):
    stale = await store_execution("prj_1", utc_now() - timedelta(hours=1), None)
    fresh = await store_execution("prj_1", utc_now(), None)

    response = await client.post("/api/v1/system/reconcile", json={"graceSec": 600})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["reconciled_ids"] == [stale.id]

    stored = await ExecutionRepository.get(stale.id)
    assert stored.status == ExecutionStatus.FAIL
    assert stored.exit_code == EXIT_CODE_ABANDONED
    assert (await ExecutionRepository.get(fresh.id)).status == ExecutionStatus.RUNNING


@pytest.mark.asyncio
async def test_reconcile_endpoint_uses_configured_grace_by_default(client, store_execution):
    await store_execution("prj_1", utc_now() - timedelta(seconds=30), None)
    response = await client.post("/api/v1/system/reconcile")
    assert response.status_code == 200
    assert response.json()["data"]["reconciled_count"] == 0
    assert response.json()["data"]["grace_sec"] == 300


@pytest.mark.asyncio
async def test_reconcile_endpoint_keeps_runs_within_timeout(client, store_execution):
    in_flight = await store_execution("prj_1", utc_now() - timedelta(seconds=5), None)
    response = await client.post("/api/v1/system/reconcile", json={"graceSec": 0})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["grace_sec"] == 30
    assert data["reconciled_ids"] == []
    assert (await ExecutionRepository.get(in_flight.id)).status == ExecutionStatus.RUNNING
