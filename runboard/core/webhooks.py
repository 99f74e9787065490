"""Outbound execution notifications."""

from __future__ import annotations

import asyncio
import uuid
from typing import Any

import httpx

from runboard.core.logger import get_logger
from runboard.state.execution_state import Execution, ExecutionStatus, format_timestamp, utc_now

logger = get_logger(__name__)

DELIVERY_TIMEOUT_SEC = 5.0
DELIVERY_ATTEMPTS = 3
# Receivers answering with these are assumed to recover; anything else is final.
TRANSIENT_STATUS_CODES = frozenset({408, 425, 429, 500, 502, 503, 504})


def build_execution_event(event: str, execution: Execution) -> dict[str, Any]:
    """Shape the JSON body posted for an execution lifecycle event."""
    return {
        "eventId": f"evt_{uuid.uuid4().hex[:16]}",
        "event": event,
        "emittedAt": format_timestamp(utc_now()),
        "executionId": execution.id,
        "projectId": execution.project_id,
        "scriptId": execution.script_id,
        "status": execution.status.value,
        "passed": execution.status == ExecutionStatus.PASS,
        "durationMs": execution.duration_ms,
        "exitCode": execution.exit_code,
        "execution": execution.to_dict(),
    }


def _backoff_sec(attempt: int) -> float:
    return min(2.0, 0.5 * 2 ** (attempt - 1))


async def _deliver_once(client: httpx.AsyncClient, url: str, body: dict[str, Any]) -> tuple[bool, bool]:
    """Return ``(delivered, retry)`` for a single POST."""
    try:
        response = await client.post(url, json=body, headers={"X-Runboard-Event": body["event"]})
    except httpx.HTTPError as exc:
        logger.warning("webhook.unreachable", execution_id=body["executionId"], error=str(exc))
        return False, True
    if response.is_success:
        return True, False
    transient = response.status_code in TRANSIENT_STATUS_CODES
    logger.warning(
        "webhook.rejected",
        execution_id=body["executionId"],
        status_code=response.status_code,
        transient=transient,
    )
    return False, transient


async def emit_execution_event(
    webhook_url: str | None,
    event: str,
    execution: Execution,
    transport: httpx.AsyncBaseTransport | None = None,
) -> bool:
    """Post ``event`` for ``execution``; never raises, returns whether it was delivered."""
    url = str(webhook_url or "").strip()
    if not url:
        return False
    body = build_execution_event(event, execution)

    try:
        async with httpx.AsyncClient(timeout=DELIVERY_TIMEOUT_SEC, transport=transport) as client:
            for attempt in range(1, DELIVERY_ATTEMPTS + 1):
                delivered, retry = await _deliver_once(client, url, body)
                if delivered:
                    logger.info("webhook.delivered", execution_id=execution.id, event=event, attempt=attempt)
                    return True
                if not retry or attempt == DELIVERY_ATTEMPTS:
                    break
                await asyncio.sleep(_backoff_sec(attempt))
    except httpx.InvalidURL as exc:
        logger.warning("webhook.invalid_url", execution_id=execution.id, error=str(exc))
        return False

    logger.warning("webhook.dropped", execution_id=execution.id, event=event)
    return False
