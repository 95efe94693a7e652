from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Sequence

from .config import Config

LOG = logging.getLogger(__name__)

SCHEMA_VERSION = 1

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS games (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    platform TEXT NOT NULL,
    year INTEGER NOT NULL CHECK (year BETWEEN 1970 AND 2030),
    completed INTEGER NOT NULL DEFAULT 0,
    cover_url TEXT NOT NULL DEFAULT '',
    rating INTEGER NOT NULL DEFAULT 0 CHECK (rating BETWEEN 0 AND 5),
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_games_created_at ON games (created_at);
CREATE INDEX IF NOT EXISTS idx_games_platform ON games (platform);
"""


class Database:
    """sqlite3 connection for the collection; rows come back as sqlite3.Row."""

    def __init__(self, path: Path):
        self.path = path
        self.connection = sqlite3.connect(path, timeout=30)
        self.connection.row_factory = sqlite3.Row
        cursor = self.connection.cursor()
        cursor.execute("PRAGMA journal_mode = WAL;")
        cursor.execute("PRAGMA synchronous = NORMAL;")
        cursor.close()

    def execute(self, sql: str, parameters: Sequence[object] | None = None) -> sqlite3.Cursor:
        cursor = self.connection.execute(sql, parameters or [])
        self.connection.commit()
        return cursor

    def query(self, sql: str, parameters: Sequence[object] | None = None) -> list[sqlite3.Row]:
        cursor = self.connection.execute(sql, parameters or [])
        rows = cursor.fetchall()
        cursor.close()
        return rows

    def scalar(self, sql: str, parameters: Sequence[object] | None = None) -> object:
        rows = self.query(sql, parameters)
        return rows[0][0] if rows else None

    @property
    def schema_version(self) -> int:
        return int(self.scalar("PRAGMA user_version") or 0)

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def close(self) -> None:
        self.connection.close()


def init_database(cfg: Config) -> None:
    db_path = cfg.db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with Database(db_path) as db:
        if db.schema_version > SCHEMA_VERSION:
            raise sqlite3.DatabaseError(
                f"{db_path} has schema version {db.schema_version}; this gameshelf knows {SCHEMA_VERSION}."
            )
        db.connection.executescript(SCHEMA_SQL)
        db.connection.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
        db.connection.commit()
    LOG.debug("database_ready", extra={"path": str(db_path), "schema_version": SCHEMA_VERSION})


@contextmanager
def connect_database(cfg: Config) -> Iterator[Database]:
    db = Database(cfg.db_path())
    try:
        yield db
    finally:
        db.close()
