from __future__ import annotations

from runboard.config.settings import settings


def main() -> None:
    db = settings.state_db_path
    if db.exists():
        db.unlink()
        print(f"Removed {db}")
    else:
        print("Workspace already clean")


if __name__ == "__main__":
    main()
