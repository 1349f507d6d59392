"""Evidence command: drill into the attempts behind one capability item."""

from __future__ import annotations

import json

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from capability_matrix.cli.commands.reconcile import build_matrix, load_snapshot, state_text
from capability_matrix.config.catalog import DEFAULT_CATALOG
from capability_matrix.config.settings import EngineSettings
from capability_matrix.engine.models import ThreeState
from capability_matrix.reporting.report_generator import ReportGenerator
from capability_matrix.storage.database import Database, resolve_db_path

console = Console()


def evidence(
    terminal_id: str = typer.Argument(help="Terminal ID in the database"),
    dimension: str = typer.Argument(help="Dimension key, e.g. card_network"),
    value: str = typer.Argument(help="Value key or alias, e.g. visa"),
    as_json: bool = typer.Option(False, "--json", help="Print the detail as JSON"),
    db_path: str = typer.Option(
        "", help="Database path (local file or md:name for MotherDuck). Env: CAPMATRIX_DB"
    ),
) -> None:
    """Show the verdict for one capability and every attempt tagged with it."""
    if not DEFAULT_CATALOG.has(dimension):
        known = ", ".join(d.key for d in DEFAULT_CATALOG)
        console.print(f"[red]Unknown dimension: {dimension}[/red]")
        console.print(f"[dim]Known dimensions: {known}[/dim]")
        raise typer.Exit(1)
    try:
        settings = EngineSettings.from_env()
        with Database(resolve_db_path(db_path)) as db:
            snapshot = load_snapshot(db, terminal_id)
        matrix = build_matrix(snapshot, settings)
        detail = ReportGenerator().evidence_detail(snapshot, matrix, dimension, value)
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps(detail, ensure_ascii=False, indent=2))
        return
    _show_detail(detail, dimension, value)


def _show_detail(detail: dict, dimension: str, value: str) -> None:
    item = detail["item"]
    if item is None:
        console.print(f"[yellow]{dimension}/{value} is not part of this terminal's matrix[/yellow]")
    else:
        lines = [
            f"Resolved: {state_text(ThreeState(item['resolved_state']))}"
            + (" [yellow](needs review)[/yellow]" if item["has_conflict"] else ""),
            f"Declared: {state_text(ThreeState(item['manual_state']))}",
            f"Attempts: {state_text(ThreeState(item['inferred_state']))}",
        ]
        if item["manual_note"]:
            lines.append(f"[dim]{item['manual_note']}[/dim]")
        if item["evidence_note"]:
            lines.append(f"[dim]{item['evidence_note']}[/dim]")
        console.print(Panel("\n".join(lines), title=f"{item['label']} ({dimension})"))

    attempts = detail["attempts"]
    if not attempts:
        console.print("[dim]No attempts recorded for this value.[/dim]")
        return

    table = Table(title=f"Attempts ({len(attempts)})")
    table.add_column("Time")
    table.add_column("Outcome")
    table.add_column("Conclusive", justify="center")
    table.add_column("Card")
    table.add_column("Notes", overflow="fold")
    for attempt in attempts:
        outcome = attempt["outcome"]
        style = "green" if outcome == "success" else "red" if outcome == "failure" else "yellow"
        table.add_row(
            (attempt["time"] or "")[:19].replace("T", " "),
            f"[{style}]{outcome}[/{style}]",
            "yes" if attempt["is_conclusive_failure"] else "",
            attempt["card_name"] or "",
            attempt["notes"] or "",
        )
    console.print(table)
