from __future__ import annotations

import pytest

from runboard.api.app import create_app, lifespan
from runboard.api.dependencies import get_script_runner
from runboard.config.settings import settings


@pytest.fixture(autouse=True)
def _fresh_runner_cache():
    get_script_runner.cache_clear()
    yield
    get_script_runner.cache_clear()


@pytest.mark.asyncio
async def test_unknown_script_runner_fails_at_startup(monkeypatch):
    monkeypatch.setattr(settings, "SCRIPT_RUNNER", "selenium-grid")
    with pytest.raises(ValueError, match="selenium-grid"):
        async with lifespan(create_app()):
            pass


@pytest.mark.asyncio
async def test_startup_builds_configured_runner():
    app = create_app()
    async with lifespan(app):
        assert get_script_runner().name == "simulated"
    assert settings.state_db_path.exists()
