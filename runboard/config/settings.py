from __future__ import annotations

from pathlib import Path
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_ENV: str = "production"
    ALLOWED_ORIGINS: List[str] = Field(default_factory=lambda: ["http://localhost:5173"])
    LOG_LEVEL: str = "INFO"

    STATE_DB_PATH: str = "./workspace/runboard.db"

    SCRIPT_RUNNER: str = "simulated"
    RUNNER_TIMEOUT_SEC: float = 30.0
    SIMULATED_PASS_PROBABILITY: float = 0.7
    SIMULATED_MIN_DURATION_MS: int = 1000
    SIMULATED_MAX_DURATION_MS: int = 4000
    SIMULATED_REALTIME: bool = False
    SIMULATED_SEED: int | None = None

    METRICS_DEFAULT_WINDOW_DAYS: int = 7
    METRICS_MAX_WINDOW_DAYS: int = 365
    RECENT_EXECUTIONS_LIMIT: int = 10

    STALE_EXECUTION_GRACE_SEC: int = 300
    RECONCILE_ON_STARTUP: bool = True

    WEBHOOK_ENABLED: bool = False
    EXECUTION_WEBHOOK_URL: str = ""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    @property
    def state_db_path(self) -> Path:
        return Path(self.STATE_DB_PATH).expanduser().resolve()

    @property
    def script_runner_normalized(self) -> str:
        return str(self.SCRIPT_RUNNER or "simulated").strip().lower() or "simulated"

    @property
    def runner_timeout_sec(self) -> float:
        return max(0.1, float(self.RUNNER_TIMEOUT_SEC))

    @property
    def simulated_duration_range_ms(self) -> tuple[int, int]:
        low = max(0, int(self.SIMULATED_MIN_DURATION_MS))
        high = max(low, int(self.SIMULATED_MAX_DURATION_MS))
        return low, high

    @property
    def execution_webhook_url(self) -> str:
        if not self.WEBHOOK_ENABLED:
            return ""
        return str(self.EXECUTION_WEBHOOK_URL or "").strip()


settings = Settings()
