"""Readers for attempt exports and terminal documents on disk."""

from __future__ import annotations

import json
from pathlib import Path

import polars as pl

from capability_matrix.config.catalog import DEFAULT_CATALOG, DimensionCatalog
from capability_matrix.ingestion.models import TerminalSnapshot
from capability_matrix.ingestion.parser import AttemptParser, ConfigParser

ATTEMPT_FILE_SUFFIXES = (".csv", ".json", ".ndjson", ".jsonl")


class AttemptFileReader:
    """Reads attempt rows from a CSV, JSON array or NDJSON export."""

    def __init__(self, file_path: str) -> None:
        self.file_path = file_path
        p = Path(file_path)
        if not p.is_file():
            raise FileNotFoundError(f"Attempt file not found: {file_path}")
        self.suffix = p.suffix.lower()
        if self.suffix not in ATTEMPT_FILE_SUFFIXES:
            raise ValueError(
                f"Unsupported attempt file type {self.suffix!r} "
                f"(expected one of {', '.join(ATTEMPT_FILE_SUFFIXES)})"
            )

    def read_frame(self) -> pl.DataFrame:
        if self.suffix == ".csv":
            # Keep every column as text; the row parser does the typing
            return pl.read_csv(self.file_path, infer_schema_length=0)
        if self.suffix in (".ndjson", ".jsonl"):
            return pl.read_ndjson(self.file_path)
        return pl.read_json(self.file_path)

    def read(self) -> list[dict]:
        """Return raw attempt rows as dicts."""
        if Path(self.file_path).stat().st_size == 0:
            return []
        return self.read_frame().to_dicts()


class TerminalDocumentReader:
    """Reads a terminal document: identifier, configuration and optional attempts."""

    def __init__(self, file_path: str, catalog: DimensionCatalog = DEFAULT_CATALOG) -> None:
        self.file_path = file_path
        self._catalog = catalog
        if not Path(file_path).is_file():
            raise FileNotFoundError(f"Terminal document not found: {file_path}")

    def read(self) -> dict:
        with open(self.file_path, "r", encoding="utf-8") as f:
            document = json.load(f)
        if not isinstance(document, dict):
            raise ValueError(f"Terminal document must be a JSON object: {self.file_path}")
        return document

    def read_snapshot(self, terminal_id: str = "") -> TerminalSnapshot:
        """Build a snapshot straight from the document, bypassing the Record Store."""
        document = self.read()
        effective_id = terminal_id or document_terminal_id(document)
        if not effective_id:
            raise ValueError(f"Terminal document has no 'id' or 'terminal_id': {self.file_path}")
        rows = document.get("attempts") or []
        return TerminalSnapshot(
            terminal_id=effective_id,
            attempts=AttemptParser(self._catalog).parse_rows(
                [r for r in rows if isinstance(r, dict)]
            ),
            config=ConfigParser().parse(document),
            name=str(document.get("merchant_name") or document.get("name") or ""),
        )


def document_terminal_id(document: dict) -> str:
    return str(document.get("terminal_id") or document.get("id") or "").strip()
