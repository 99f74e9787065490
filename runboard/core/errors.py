from __future__ import annotations

from typing import Any


class RunboardError(Exception):
    code = "RUNBOARD_ERROR"
    http_status = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(RunboardError):
    """Required input is missing or malformed. Nothing has been written."""

    code = "VALIDATION_ERROR"
    http_status = 400


class AggregationError(ValidationError):
    code = "INVALID_METRICS_QUERY"


class RunnerFault(RunboardError):
    """The script could not be executed at all.

    Distinct from a script that ran and failed its assertions, which is an
    ordinary ``fail`` result. Callers always resolve a fault into a terminal
    ``fail`` execution.
    """

    code = "RUNNER_FAULT"
    http_status = 500

    def __init__(self, message: str, exit_code: int = 2, details: dict[str, Any] | None = None):
        super().__init__(message, details)
        self.exit_code = exit_code


class PersistenceError(RunboardError):
    code = "PERSISTENCE_ERROR"
    http_status = 503


class ExecutionStateError(RunboardError):
    code = "INVALID_EXECUTION_STATE"
    http_status = 409


def require_text(value: Any, field: str, error_cls: type[ValidationError] = ValidationError) -> str:
    text = str(value).strip() if value is not None else ""
    if not text:
        raise error_cls(f"{field} is required", details={"field": field})
    return text
