from __future__ import annotations

import sqlite3

from sqlalchemy.dialects import sqlite as sqlite_dialect
from sqlalchemy.schema import CreateIndex, CreateTable

from runboard.config.settings import settings
from runboard.core.errors import PersistenceError
from runboard.core.logger import get_logger
from runboard.db.models import Base

logger = get_logger(__name__)


def get_connection() -> sqlite3.Connection:
    db_path = settings.state_db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def schema_statements() -> list[str]:
    dialect = sqlite_dialect.dialect()
    statements: list[str] = []
    for table in Base.metadata.sorted_tables:
        statements.append(str(CreateTable(table, if_not_exists=True).compile(dialect=dialect)).strip())
        for index in sorted(table.indexes, key=lambda item: item.name or ""):
            statements.append(str(CreateIndex(index, if_not_exists=True).compile(dialect=dialect)).strip())
    return statements


def ensure_schema() -> None:
    try:
        conn = get_connection()
    except (OSError, sqlite3.Error) as exc:
        raise PersistenceError(f"Cannot open execution store: {exc}") from exc
    try:
        conn.executescript(";\n".join(schema_statements()) + ";")
        conn.commit()
        logger.info("db.init", path=str(settings.state_db_path), tables=len(Base.metadata.sorted_tables))
    except sqlite3.Error as exc:
        raise PersistenceError(f"Cannot initialise execution store: {exc}") from exc
    finally:
        conn.close()


async def init_db() -> None:
    ensure_schema()
