from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping

from runboard.core.errors import ExecutionStateError, ValidationError, require_text

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1
EXIT_CODE_RUNNER_FAULT = 2
EXIT_CODE_ABANDONED = 3
EXIT_CODE_TIMEOUT = 124
EXIT_CODE_CANCELLED = 130

_TERMINAL_COLUMNS = ("completed_at", "duration_ms", "output", "exit_code")


class ExecutionStatus(str, Enum):
    RUNNING = "running"
    PASS = "pass"
    FAIL = "fail"


TERMINAL_STATUSES = frozenset({ExecutionStatus.PASS, ExecutionStatus.FAIL})


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    # Fixed microsecond precision keeps lexical and chronological order aligned.
    return to_utc(value).isoformat(timespec="microseconds")


def parse_timestamp(value: str | datetime) -> datetime:
    if isinstance(value, datetime):
        return to_utc(value)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return to_utc(datetime.fromisoformat(text))


def new_execution_id() -> str:
    return f"exe_{uuid.uuid4().hex[:16]}"


def coerce_status(value: Any) -> ExecutionStatus:
    if isinstance(value, ExecutionStatus):
        return value
    try:
        return ExecutionStatus(str(value).strip().lower())
    except ValueError as exc:
        raise ValidationError(f"Unknown execution status: {value!r}", details={"status": str(value)}) from exc


@dataclass(frozen=True)
class ExecutionOutcome:
    """Terminal fields of an execution. Present all together or not at all."""

    status: ExecutionStatus
    output: str
    duration_ms: int
    exit_code: int
    completed_at: datetime


@dataclass(frozen=True)
class Execution:
    id: str
    project_id: str
    script_id: str
    script_name: str
    user_id: str
    started_at: datetime
    outcome: ExecutionOutcome | None = None

    @classmethod
    def begin(
        cls,
        project_id: str | None,
        script_id: str | None,
        script_name: str | None,
        user_id: str | None = None,
        *,
        execution_id: str | None = None,
        started_at: datetime | None = None,
    ) -> "Execution":
        return cls(
            id=execution_id or new_execution_id(),
            project_id=require_text(project_id, "projectId"),
            script_id=require_text(script_id, "scriptId"),
            script_name=require_text(script_name, "scriptName"),
            user_id=(user_id or "anonymous"),
            started_at=to_utc(started_at) if started_at else utc_now(),
        )

    def complete(
        self,
        status: ExecutionStatus | str,
        output: str,
        duration_ms: int,
        exit_code: int,
        *,
        completed_at: datetime | None = None,
    ) -> "Execution":
        if self.outcome is not None:
            raise ExecutionStateError(
                f"Execution {self.id} already reached terminal state {self.outcome.status.value}",
                details={"execution_id": self.id, "status": self.outcome.status.value},
            )
        terminal = coerce_status(status)
        if terminal not in TERMINAL_STATUSES:
            raise ValidationError(
                f"Execution can only be completed as pass or fail, not {terminal.value}",
                details={"status": terminal.value},
            )
        duration = int(duration_ms)
        if duration < 0:
            raise ValidationError("durationMs must be >= 0", details={"duration_ms": duration})
        finished = to_utc(completed_at) if completed_at else utc_now()
        if finished < self.started_at:
            finished = self.started_at
        outcome = ExecutionOutcome(
            status=terminal,
            output=str(output or ""),
            duration_ms=duration,
            exit_code=int(exit_code),
            completed_at=finished,
        )
        return replace(self, outcome=outcome)

    @property
    def status(self) -> ExecutionStatus:
        return self.outcome.status if self.outcome else ExecutionStatus.RUNNING

    @property
    def is_terminal(self) -> bool:
        return self.outcome is not None

    @property
    def completed_at(self) -> datetime | None:
        return self.outcome.completed_at if self.outcome else None

    @property
    def duration_ms(self) -> int | None:
        return self.outcome.duration_ms if self.outcome else None

    @property
    def output(self) -> str | None:
        return self.outcome.output if self.outcome else None

    @property
    def exit_code(self) -> int | None:
        return self.outcome.exit_code if self.outcome else None

    def to_row(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "script_id": self.script_id,
            "script_name": self.script_name,
            "user_id": self.user_id,
            "status": self.status.value,
            "started_at": format_timestamp(self.started_at),
            "completed_at": format_timestamp(self.completed_at) if self.completed_at else None,
            "duration_ms": self.duration_ms,
            "output": self.output,
            "exit_code": self.exit_code,
        }

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Execution":
        status = coerce_status(row["status"])
        present = [name for name in _TERMINAL_COLUMNS if row[name] is not None]
        if status == ExecutionStatus.RUNNING:
            if present:
                raise ExecutionStateError(
                    f"Running execution {row['id']} has terminal fields set",
                    details={"execution_id": row["id"], "fields": present},
                )
            outcome = None
        else:
            if len(present) != len(_TERMINAL_COLUMNS):
                raise ExecutionStateError(
                    f"Terminal execution {row['id']} is missing terminal fields",
                    details={"execution_id": row["id"], "fields": present},
                )
            outcome = ExecutionOutcome(
                status=status,
                output=str(row["output"]),
                duration_ms=int(row["duration_ms"]),
                exit_code=int(row["exit_code"]),
                completed_at=parse_timestamp(row["completed_at"]),
            )
        return cls(
            id=str(row["id"]),
            project_id=str(row["project_id"]),
            script_id=str(row["script_id"]),
            script_name=str(row["script_name"]),
            user_id=str(row["user_id"] or "anonymous"),
            started_at=parse_timestamp(row["started_at"]),
            outcome=outcome,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "projectId": self.project_id,
            "scriptId": self.script_id,
            "scriptName": self.script_name,
            "userId": self.user_id,
            "status": self.status.value,
            "startedAt": format_timestamp(self.started_at),
            "completedAt": format_timestamp(self.completed_at) if self.completed_at else None,
            "durationMs": self.duration_ms,
            "output": self.output,
            "exitCode": self.exit_code,
        }
