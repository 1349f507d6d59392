"""Data access objects for terminals, attempts and reconciliation runs."""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import Optional

import polars as pl

from capability_matrix.config.catalog import DEFAULT_CATALOG, DimensionCatalog
from capability_matrix.ingestion.models import TerminalSnapshot
from capability_matrix.ingestion.parser import (
    AttemptParser,
    ConfigParser,
    coerce_bool,
    parse_timestamp,
    row_fingerprint,
)
from capability_matrix.storage.database import Database

ATTEMPT_SCHEMA = {
    "attempt_id": pl.Utf8,
    "terminal_id": pl.Utf8,
    "result": pl.Utf8,
    "is_conclusive_failure": pl.Boolean,
    "card_network": pl.Utf8,
    "payment_method": pl.Utf8,
    "cvm": pl.Utf8,
    "acquiring_mode": pl.Utf8,
    "checkout_location": pl.Utf8,
    "acquiring_institution": pl.Utf8,
    "device_status": pl.Utf8,
    "card_name": pl.Utf8,
    "attempt_number": pl.Int64,
    "user_id": pl.Utf8,
    "notes": pl.Utf8,
    "attempted_at": pl.Datetime("us"),
    "created_at": pl.Datetime("us"),
}

ATTEMPT_COLUMNS = list(ATTEMPT_SCHEMA)

# Document keys that are not part of the configuration
NON_CONFIG_KEYS = ("attempts", "id", "terminal_id")


def _rows_as_dicts(cursor) -> list[dict]:
    cols = [d[0] for d in cursor.description]
    return [dict(zip(cols, row)) for row in cursor.fetchall()]


def _text_or_none(value: object) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _utc_naive(value: object) -> Optional[datetime]:
    """Timestamps are stored as naive UTC; readers re-attach UTC."""
    ts = parse_timestamp(value)
    if ts is None:
        return None
    return ts.astimezone(timezone.utc).replace(tzinfo=None)


def _int_or_none(value: object) -> Optional[int]:
    try:
        return int(value) if value not in (None, "") else None
    except (TypeError, ValueError):
        return None


class TerminalRepo:
    """Operations on the terminals table."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def exists(self, terminal_id: str) -> bool:
        result = self._db.conn.execute(
            "SELECT 1 FROM terminals WHERE terminal_id = ?", [terminal_id]
        ).fetchone()
        return result is not None

    def upsert(self, terminal_id: str, document: dict, name: str = "") -> int:
        """Store the configuration document. Returns its config version."""
        config = {k: v for k, v in document.items() if k not in NON_CONFIG_KEYS}
        config_json = json.dumps(config, sort_keys=True, ensure_ascii=False)

        row = self._db.conn.execute(
            "SELECT config_json, config_version FROM terminals WHERE terminal_id = ?",
            [terminal_id],
        ).fetchone()
        if row is None:
            self._db.conn.execute(
                """INSERT INTO terminals (terminal_id, name, config_json, config_version)
                   VALUES (?, ?, ?, 1)""",
                [terminal_id, name, config_json],
            )
            return 1

        version = row[1] if row[0] == config_json else row[1] + 1
        self._db.conn.execute(
            """UPDATE terminals SET
                name = CASE WHEN ? != '' THEN ? ELSE name END,
                config_json = ?,
                config_version = ?,
                updated_at = CURRENT_TIMESTAMP
               WHERE terminal_id = ?""",
            [name, name, config_json, version, terminal_id],
        )
        return version

    def get(self, terminal_id: str) -> Optional[dict]:
        cursor = self._db.conn.execute(
            "SELECT terminal_id, name, config_json, config_version, updated_at "
            "FROM terminals WHERE terminal_id = ?",
            [terminal_id],
        )
        rows = _rows_as_dicts(cursor)
        if not rows:
            return None
        record = rows[0]
        record["config"] = json.loads(record.pop("config_json") or "{}")
        return record

    def list_ids(self) -> list[str]:
        rows = self._db.conn.execute(
            "SELECT terminal_id FROM terminals ORDER BY terminal_id"
        ).fetchall()
        return [r[0] for r in rows]


class AttemptRepo:
    """Batch operations on the pos_attempts table."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def _normalize_row(self, terminal_id: str, row: dict) -> dict:
        return {
            "attempt_id": _text_or_none(row.get("id", row.get("attempt_id"))) or row_fingerprint(row),
            "terminal_id": terminal_id,
            "result": (_text_or_none(row.get("result", row.get("outcome"))) or "unknown").lower(),
            "is_conclusive_failure": coerce_bool(row.get("is_conclusive_failure")) or False,
            "card_network": _text_or_none(row.get("card_network")),
            "payment_method": _text_or_none(row.get("payment_method")),
            "cvm": _text_or_none(row.get("cvm")),
            "acquiring_mode": _text_or_none(row.get("acquiring_mode")),
            "checkout_location": _text_or_none(row.get("checkout_location")),
            "acquiring_institution": _text_or_none(row.get("acquiring_institution")),
            "device_status": _text_or_none(row.get("device_status")),
            "card_name": _text_or_none(row.get("card_name")),
            "attempt_number": _int_or_none(row.get("attempt_number")),
            "user_id": _text_or_none(row.get("user_id", row.get("author_id"))),
            "notes": _text_or_none(row.get("notes")),
            "attempted_at": _utc_naive(row.get("attempted_at")),
            "created_at": _utc_naive(row.get("created_at")),
        }

    def insert_batch(self, terminal_id: str, rows: list[dict]) -> int:
        """Insert attempt rows using Polars for bulk insert. Existing IDs are skipped.

        Returns the number of rows actually inserted.
        """
        if not rows:
            return 0

        unique: dict[str, dict] = {}
        for row in rows:
            normalized = self._normalize_row(terminal_id, row)
            unique.setdefault(normalized["attempt_id"], normalized)

        before = self.count(terminal_id)
        df = pl.DataFrame(list(unique.values()), schema=ATTEMPT_SCHEMA)
        col_str = ", ".join(ATTEMPT_COLUMNS)
        self._db.conn.execute(
            f"INSERT OR IGNORE INTO pos_attempts ({col_str}) SELECT {col_str} FROM df"
        )
        return self.count(terminal_id) - before

    def delete_for_terminal(self, terminal_id: str) -> None:
        self._db.conn.execute("DELETE FROM pos_attempts WHERE terminal_id = ?", [terminal_id])

    def list_rows(self, terminal_id: str) -> list[dict]:
        """Attempt rows, newest first (attempted_at, then created_at)."""
        cursor = self._db.conn.execute(
            f"""SELECT {', '.join(ATTEMPT_COLUMNS)}
                FROM pos_attempts
                WHERE terminal_id = ?
                ORDER BY attempted_at DESC NULLS LAST, created_at DESC NULLS LAST, attempt_id""",
            [terminal_id],
        )
        rows = _rows_as_dicts(cursor)
        for row in rows:
            row["id"] = row.pop("attempt_id")
        return rows

    def count(self, terminal_id: str = "") -> int:
        if terminal_id:
            result = self._db.conn.execute(
                "SELECT COUNT(*) FROM pos_attempts WHERE terminal_id = ?", [terminal_id]
            ).fetchone()
        else:
            result = self._db.conn.execute("SELECT COUNT(*) FROM pos_attempts").fetchone()
        return result[0]


class ReconciliationRunRepo:
    """Operations on the reconciliation_runs table."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def insert(
        self,
        terminal_id: str,
        snapshot_key: str,
        summary: dict,
        matrix: dict,
        attempt_count: int,
        catalog_version: str = "",
    ) -> str:
        run_id = uuid.uuid4().hex[:12]
        self._db.conn.execute(
            """INSERT INTO reconciliation_runs
               (run_id, terminal_id, snapshot_key, catalog_version, attempt_count,
                supported_count, unsupported_count, unknown_count, conflict_count,
                matrix_json)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            [
                run_id, terminal_id, snapshot_key, catalog_version, attempt_count,
                summary.get("supported_count", 0),
                summary.get("unsupported_count", 0),
                summary.get("unknown_count", 0),
                summary.get("conflict_count", 0),
                json.dumps(matrix, ensure_ascii=False),
            ],
        )
        return run_id

    def latest(self, terminal_id: str) -> Optional[dict]:
        cursor = self._db.conn.execute(
            """SELECT run_id, terminal_id, snapshot_key, catalog_version, attempt_count,
                      supported_count, unsupported_count, unknown_count, conflict_count,
                      created_at
               FROM reconciliation_runs
               WHERE terminal_id = ?
               ORDER BY created_at DESC, run_id DESC
               LIMIT 1""",
            [terminal_id],
        )
        rows = _rows_as_dicts(cursor)
        return rows[0] if rows else None

    def count(self) -> int:
        return self._db.conn.execute("SELECT COUNT(*) FROM reconciliation_runs").fetchone()[0]


class SnapshotReader:
    """Reads one terminal's configuration and full attempt list as a unit."""

    def __init__(self, db: Database, catalog: DimensionCatalog = DEFAULT_CATALOG) -> None:
        self._db = db
        self._terminals = TerminalRepo(db)
        self._attempts = AttemptRepo(db)
        self._parser = AttemptParser(catalog)

    def read(self, terminal_id: str) -> Optional[TerminalSnapshot]:
        """Return the snapshot, or None for an unknown terminal."""
        with self._db.transaction():
            terminal = self._terminals.get(terminal_id)
            if terminal is None:
                return None
            rows = self._attempts.list_rows(terminal_id)

        return TerminalSnapshot(
            terminal_id=terminal_id,
            attempts=self._parser.parse_rows(rows),
            config=ConfigParser().parse(terminal["config"]),
            config_version=terminal["config_version"] or 1,
            name=terminal["name"] or "",
        )
