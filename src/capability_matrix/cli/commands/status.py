"""Status command: show Record Store statistics."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from capability_matrix.storage.database import Database, resolve_db_path

console = Console()


def status(
    db_path: str = typer.Option(
        "", help="Database path (local file or md:name for MotherDuck). Env: CAPMATRIX_DB"
    ),
    detailed: bool = typer.Option(False, help="Show per-terminal statistics"),
) -> None:
    """Show database statistics."""
    try:
        effective_db = resolve_db_path(db_path)
        with Database(effective_db) as db:
            _show_status(db, detailed)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        console.print("[dim]Run 'load' first to create the database.[/dim]")
        raise typer.Exit(1)


def _show_status(db: Database, detailed: bool) -> None:
    terminal_count = db.conn.execute("SELECT COUNT(*) FROM terminals").fetchone()[0]
    attempt_stats = db.conn.execute(
        """SELECT
            COUNT(*),
            SUM(CASE WHEN result = 'success' THEN 1 ELSE 0 END),
            SUM(CASE WHEN result = 'failure' AND is_conclusive_failure THEN 1 ELSE 0 END)
        FROM pos_attempts"""
    ).fetchone()
    run_count = db.conn.execute("SELECT COUNT(*) FROM reconciliation_runs").fetchone()[0]

    attempt_total, successes, conclusive = attempt_stats
    successes = successes or 0
    conclusive = conclusive or 0

    table = Table(title="Capability Matrix Database Status")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Terminals", str(terminal_count))
    table.add_row("Stored attempts", f"{attempt_total:,}")
    table.add_row("Successful attempts", f"{successes:,}")
    table.add_row("Conclusive failures", f"{conclusive:,}")
    table.add_row("Reconciliation runs", str(run_count))

    results = db.conn.execute(
        "SELECT result, COUNT(*) FROM pos_attempts GROUP BY result ORDER BY result"
    ).fetchall()
    if results:
        table.add_section()
        for result, count in results:
            table.add_row(f"Attempts: {result}", str(count))

    console.print(table)

    if detailed and terminal_count > 0:
        console.print()
        detail_table = Table(title="Terminals")
        detail_table.add_column("Terminal", style="cyan")
        detail_table.add_column("Name")
        detail_table.add_column("Config v", justify="right")
        detail_table.add_column("Attempts", justify="right")
        detail_table.add_column("Last run")
        detail_table.add_column("Conflicts", justify="right")

        rows = db.conn.execute(
            """SELECT t.terminal_id, t.name, t.config_version,
                      (SELECT COUNT(*) FROM pos_attempts a WHERE a.terminal_id = t.terminal_id),
                      r.created_at, r.conflict_count
               FROM terminals t
               LEFT JOIN (
                   SELECT terminal_id, created_at, conflict_count,
                          ROW_NUMBER() OVER (PARTITION BY terminal_id ORDER BY created_at DESC) AS rn
                   FROM reconciliation_runs
               ) r ON r.terminal_id = t.terminal_id AND r.rn = 1
               ORDER BY t.terminal_id"""
        ).fetchall()
        for row in rows:
            conflicts = row[5]
            conflict_text = "" if conflicts is None else (
                f"[yellow]{conflicts}[/yellow]" if conflicts else "0"
            )
            detail_table.add_row(
                row[0], row[1] or "", str(row[2]), f"{row[3]:,}",
                str(row[4])[:19] if row[4] else "never", conflict_text,
            )
        console.print(detail_table)
