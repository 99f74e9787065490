from __future__ import annotations

import argparse
import asyncio

from runboard.config.settings import settings
from runboard.core.execution_recorder import ExecutionRecorder
from runboard.core.logging import configure_logging
from runboard.db.database import init_db


async def _reconcile(grace_sec: int) -> int:
    await init_db()
    reconciled = await ExecutionRecorder().reconcile_stale_executions(grace_sec)
    for execution in reconciled:
        print(f"{execution.id}\t{execution.script_name}\tstarted {execution.started_at.isoformat()}")
    return len(reconciled)


def main() -> None:
    parser = argparse.ArgumentParser(description="Force-fail executions stuck in running state.")
    parser.add_argument("--grace-sec", type=int, default=settings.STALE_EXECUTION_GRACE_SEC)
    args = parser.parse_args()
    configure_logging(settings.LOG_LEVEL)
    count = asyncio.run(_reconcile(args.grace_sec))
    print(f"Reconciled {count} execution(s)")


if __name__ == "__main__":
    main()
