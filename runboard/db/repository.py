from __future__ import annotations

import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator

from runboard.core.errors import PersistenceError
from runboard.core.logger import get_logger
from runboard.db.database import get_connection
from runboard.state.execution_state import Execution, ExecutionStatus, format_timestamp, utc_now

logger = get_logger(__name__)

_EXECUTION_COLUMNS = (
    "id, project_id, script_id, script_name, user_id, status, "
    "started_at, completed_at, duration_ms, output, exit_code"
)


@contextmanager
def _store(operation: str) -> Iterator[sqlite3.Connection]:
    try:
        conn = get_connection()
    except (OSError, sqlite3.Error) as exc:
        logger.error("db.connect.failed", operation=operation, error=str(exc))
        raise PersistenceError(f"Execution store unavailable: {exc}", details={"operation": operation}) from exc
    try:
        yield conn
    except sqlite3.Error as exc:
        logger.error("db.operation.failed", operation=operation, error=str(exc))
        raise PersistenceError(
            f"Execution store failure during {operation}: {exc}",
            details={"operation": operation},
        ) from exc
    finally:
        conn.close()


class ExecutionRepository:
    @staticmethod
    async def create(execution: Execution) -> None:
        row = execution.to_row()
        with _store("execution.create") as conn:
            conn.execute(
                f"""
                INSERT INTO executions ({_EXECUTION_COLUMNS})
                VALUES (:id, :project_id, :script_id, :script_name, :user_id, :status,
                        :started_at, :completed_at, :duration_ms, :output, :exit_code)
                """,
                row,
            )
            conn.commit()
        logger.info(
            "db.execution.create",
            execution_id=execution.id,
            project_id=execution.project_id,
            script_id=execution.script_id,
            status=row["status"],
        )

    @staticmethod
    async def complete(execution: Execution) -> bool:
        """Write all terminal fields in one statement; only a running row is updated."""
        row = execution.to_row()
        with _store("execution.complete") as conn:
            cursor = conn.execute(
                """
                UPDATE executions
                SET status=:status, completed_at=:completed_at, duration_ms=:duration_ms,
                    output=:output, exit_code=:exit_code
                WHERE id=:id AND status=:running
                """,
                {**row, "running": ExecutionStatus.RUNNING.value},
            )
            conn.commit()
            updated = cursor.rowcount == 1
        logger.info(
            "db.execution.complete",
            execution_id=execution.id,
            status=row["status"],
            duration_ms=row["duration_ms"],
            updated=updated,
        )
        return updated

    @staticmethod
    async def get(execution_id: str) -> Execution | None:
        with _store("execution.get") as conn:
            row = conn.execute(
                f"SELECT {_EXECUTION_COLUMNS} FROM executions WHERE id=?",
                (execution_id,),
            ).fetchone()
        if not row:
            return None
        return Execution.from_row(row)

    @staticmethod
    async def list_for_project_since(project_id: str, since: datetime) -> list[Execution]:
        with _store("execution.list_window") as conn:
            rows = conn.execute(
                f"""
                SELECT {_EXECUTION_COLUMNS}
                FROM executions
                WHERE project_id=? AND started_at >= ?
                ORDER BY started_at ASC, rowid ASC
                """,
                (project_id, format_timestamp(since)),
            ).fetchall()
        return [Execution.from_row(row) for row in rows]

    @staticmethod
    async def list_stale_running(started_before: datetime, limit: int = 500) -> list[Execution]:
        with _store("execution.list_stale") as conn:
            rows = conn.execute(
                f"""
                SELECT {_EXECUTION_COLUMNS}
                FROM executions
                WHERE status=? AND started_at < ?
                ORDER BY started_at ASC
                LIMIT ?
                """,
                (ExecutionStatus.RUNNING.value, format_timestamp(started_before), limit),
            ).fetchall()
        return [Execution.from_row(row) for row in rows]

    @staticmethod
    async def count_by_status(project_id: str | None = None) -> dict[str, int]:
        counts = {status.value: 0 for status in ExecutionStatus}
        with _store("execution.count") as conn:
            if project_id:
                rows = conn.execute(
                    "SELECT status, COUNT(*) AS c FROM executions WHERE project_id=? GROUP BY status",
                    (project_id,),
                ).fetchall()
            else:
                rows = conn.execute("SELECT status, COUNT(*) AS c FROM executions GROUP BY status").fetchall()
        for row in rows:
            counts[str(row["status"])] = int(row["c"])
        return counts


class ProjectRepository:
    @staticmethod
    async def create(name: str, project_id: str | None = None) -> dict[str, Any]:
        project = {
            "id": project_id or f"prj_{uuid.uuid4().hex[:12]}",
            "name": name,
            "created_at": format_timestamp(utc_now()),
        }
        with _store("project.create") as conn:
            conn.execute(
                "INSERT INTO projects (id, name, created_at) VALUES (:id, :name, :created_at)",
                project,
            )
            conn.commit()
        logger.info("db.project.create", project_id=project["id"], name=name)
        return project

    @staticmethod
    async def get(project_id: str) -> dict[str, Any] | None:
        with _store("project.get") as conn:
            row = conn.execute("SELECT id, name, created_at FROM projects WHERE id=?", (project_id,)).fetchone()
        return dict(row) if row else None


class ScriptRepository:
    @staticmethod
    async def create(
        project_id: str,
        name: str,
        description: str | None = None,
        script_id: str | None = None,
    ) -> dict[str, Any]:
        script = {
            "id": script_id or f"scr_{uuid.uuid4().hex[:12]}",
            "project_id": project_id,
            "name": name,
            "description": description,
            "created_at": format_timestamp(utc_now()),
        }
        with _store("script.create") as conn:
            conn.execute(
                """
                INSERT INTO scripts (id, project_id, name, description, created_at)
                VALUES (:id, :project_id, :name, :description, :created_at)
                """,
                script,
            )
            conn.commit()
        logger.info("db.script.create", project_id=project_id, script_id=script["id"], name=name)
        return script

    @staticmethod
    async def get(script_id: str) -> dict[str, Any] | None:
        with _store("script.get") as conn:
            row = conn.execute(
                "SELECT id, project_id, name, description FROM scripts WHERE id=?",
                (script_id,),
            ).fetchone()
        return dict(row) if row else None

    @staticmethod
    async def list_for_project(project_id: str) -> list[dict[str, Any]]:
        with _store("script.list") as conn:
            rows = conn.execute(
                """
                SELECT id, name, description
                FROM scripts
                WHERE project_id=?
                ORDER BY name ASC
                """,
                (project_id,),
            ).fetchall()
        output = []
        for row in rows:
            item: dict[str, Any] = {"id": row["id"], "name": row["name"]}
            if row["description"]:
                item["description"] = row["description"]
            output.append(item)
        return output
