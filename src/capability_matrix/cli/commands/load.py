"""Load command: import a terminal document and its attempts into the Record Store."""

from __future__ import annotations

import typer
from rich.console import Console

from capability_matrix.ingestion.file_reader import (
    AttemptFileReader,
    TerminalDocumentReader,
    document_terminal_id,
)
from capability_matrix.storage.database import Database, resolve_db_path
from capability_matrix.storage.repositories import AttemptRepo, TerminalRepo

console = Console()


def load(
    path: str = typer.Argument(help="Path to a terminal JSON document"),
    attempts: str = typer.Option("", help="Attempt export to load as well (.csv, .json, .ndjson)"),
    terminal_id: str = typer.Option("", help="Override the terminal identifier"),
    replace: bool = typer.Option(
        False, help="Delete the terminal's stored attempts first (restored if the load fails)"
    ),
    db_path: str = typer.Option(
        "", help="Database path (local file or md:name for MotherDuck). Env: CAPMATRIX_DB"
    ),
) -> None:
    """Load a terminal configuration document (and attempts) into the database."""
    try:
        document = TerminalDocumentReader(path).read()
        effective_id = terminal_id or document_terminal_id(document)
        if not effective_id:
            console.print(f"[red]No terminal id in {path}; pass --terminal-id[/red]")
            raise typer.Exit(1)

        rows = [r for r in (document.get("attempts") or []) if isinstance(r, dict)]
        if attempts:
            rows.extend(AttemptFileReader(attempts).read())

        effective_db = resolve_db_path(db_path)
        with Database(effective_db) as db:
            _load(db, effective_id, document, rows, replace)
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def _load(db: Database, terminal_id: str, document: dict, rows: list[dict], replace: bool) -> None:
    terminal_repo = TerminalRepo(db)
    attempt_repo = AttemptRepo(db)
    name = str(document.get("merchant_name") or document.get("name") or "")

    # DuckDB rejects re-inserting a key deleted in the same transaction, so the
    # delete commits on its own and the old rows are kept for restoring
    backup = attempt_repo.list_rows(terminal_id) if replace else []
    if replace:
        attempt_repo.delete_for_terminal(terminal_id)
    try:
        with db.transaction():
            version = terminal_repo.upsert(terminal_id, document, name=name)
            inserted = attempt_repo.insert_batch(terminal_id, rows)
    except Exception:
        if backup:
            restored = attempt_repo.insert_batch(terminal_id, backup)
            console.print(f"[yellow]Load failed; restored {restored} previously stored attempts[/yellow]")
        raise

    console.print(f"\n[bold]Loaded terminal {terminal_id}[/bold]" + (f" ({name})" if name else ""))
    console.print(f"  Config version: {version}")
    console.print(f"  Attempts: {inserted} new, {len(rows) - inserted} already stored")
    console.print(f"  Total stored attempts: {attempt_repo.count(terminal_id)}")
