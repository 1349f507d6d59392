"""DuckDB connection manager for the Record Store."""

from __future__ import annotations

import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import duckdb

from capability_matrix.config.settings import DEFAULT_DB_PATH
from capability_matrix.storage.schema import MIGRATION_COLUMNS, SCHEMA_DDL


def resolve_db_path(db_path: str | None = None) -> str:
    """Resolve database path from argument, env var, or default.

    Priority: explicit arg > CAPMATRIX_DB env var > default local file.
    Supports MotherDuck URIs (md:database_name).
    """
    if db_path:
        return db_path
    return os.environ.get("CAPMATRIX_DB", DEFAULT_DB_PATH)


class Database:
    """DuckDB connection manager. Supports local files, :memory: and MotherDuck."""

    def __init__(self, db_path: str = DEFAULT_DB_PATH) -> None:
        self.db_path = db_path
        self._is_motherduck = db_path.startswith("md:")
        self._conn: duckdb.DuckDBPyConnection | None = None

    @property
    def conn(self) -> duckdb.DuckDBPyConnection:
        if self._conn is None:
            self._conn = self._connect()
        return self._conn

    def _connect(self) -> duckdb.DuckDBPyConnection:
        if self._is_motherduck:
            return self._connect_motherduck()
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        return duckdb.connect(self.db_path)

    def _connect_motherduck(self) -> duckdb.DuckDBPyConnection:
        token = os.environ.get("MOTHERDUCK_TOKEN", "")
        if not token:
            raise EnvironmentError(
                "MOTHERDUCK_TOKEN environment variable required for MotherDuck connections."
            )
        conn = duckdb.connect(":memory:")
        conn.execute("INSTALL motherduck")
        conn.execute("LOAD motherduck")
        conn.execute(f"SET motherduck_token='{token}'")
        db_name = self.db_path.replace("md:", "")
        conn.execute(f"CREATE DATABASE IF NOT EXISTS {db_name}")
        conn.execute(f"USE {db_name}")
        return conn

    def initialize(self) -> None:
        """Create all tables if they don't exist, then run migrations."""
        self.conn.execute(SCHEMA_DDL)
        self._migrate()

    def _migrate(self) -> None:
        """Add new columns to existing tables (idempotent)."""
        for table, col_name, col_type in MIGRATION_COLUMNS:
            self.conn.execute(
                f"ALTER TABLE {table} ADD COLUMN IF NOT EXISTS {col_name} {col_type}"
            )

    @contextmanager
    def transaction(self) -> Iterator[duckdb.DuckDBPyConnection]:
        """Run a block inside one transaction; rolled back on error."""
        conn = self.conn
        conn.execute("BEGIN TRANSACTION")
        try:
            yield conn
        except Exception:
            conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> Database:
        self.initialize()
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
