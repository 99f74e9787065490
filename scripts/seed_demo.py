from __future__ import annotations

import argparse
import asyncio

from runboard.config.settings import settings
from runboard.core.execution_recorder import ExecutionRecorder
from runboard.core.logging import configure_logging
from runboard.core.script_runner import build_script_runner
from runboard.core.test_runs import run_test
from runboard.db.database import init_db
from runboard.db.repository import ProjectRepository, ScriptRepository

DEMO_PROJECT_ID = "prj_demo"
DEMO_SCRIPTS = [
    ("login_test.py", "Signs in with valid credentials"),
    ("checkout_flow.py", "Adds an item to the cart and checks out"),
    ("user_registration.py", "Registers a new account"),
    ("search_functionality.py", "Searches the catalogue"),
    ("profile_update.py", "Edits profile details"),
    ("password_reset.py", "Requests a password reset email"),
]


async def _seed(rounds: int) -> None:
    await init_db()
    if await ProjectRepository.get(DEMO_PROJECT_ID) is None:
        await ProjectRepository.create("Demo storefront", project_id=DEMO_PROJECT_ID)
        for name, description in DEMO_SCRIPTS:
            await ScriptRepository.create(DEMO_PROJECT_ID, name, description)

    recorder = ExecutionRecorder()
    runner = build_script_runner(settings)
    scripts = await ScriptRepository.list_for_project(DEMO_PROJECT_ID)
    for _ in range(rounds):
        for script in scripts:
            outcome = await run_test(recorder, runner, DEMO_PROJECT_ID, script["id"], script["name"], "demo")
            print(f"{outcome.execution_id}\t{script['name']}\t{outcome.status.value}\t{outcome.duration_ms}ms")


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed a demo project and record simulated runs.")
    parser.add_argument("--rounds", type=int, default=1)
    args = parser.parse_args()
    configure_logging(settings.LOG_LEVEL)
    asyncio.run(_seed(max(1, args.rounds)))


if __name__ == "__main__":
    main()
