"""Reconcile command: build and render a terminal's capability matrix."""

from __future__ import annotations

import json

import typer
from rich.console import Console
from rich.table import Table

from capability_matrix.config.catalog import DEFAULT_CATALOG
from capability_matrix.config.settings import EngineSettings
from capability_matrix.engine.matrix import CapabilityMatrixBuilder, snapshot_key
from capability_matrix.engine.models import CapabilityMatrix, ResolvedCapabilityItem, Section, ThreeState
from capability_matrix.engine.summary import attempt_stats
from capability_matrix.ingestion.file_reader import TerminalDocumentReader
from capability_matrix.ingestion.models import TerminalSnapshot
from capability_matrix.reporting.notes import EvidenceNoteFormatter
from capability_matrix.reporting.report_generator import (
    ReportGenerator,
    matrix_to_dict,
    summary_to_dict,
)
from capability_matrix.storage.database import Database, resolve_db_path
from capability_matrix.storage.repositories import ReconciliationRunRepo, SnapshotReader

console = Console()

STATE_STYLES = {
    ThreeState.SUPPORTED: ("Supported", "green"),
    ThreeState.UNSUPPORTED: ("Unsupported", "red"),
    ThreeState.UNKNOWN: ("Unknown", "dim"),
}


def reconcile(
    terminal_id: str = typer.Argument("", help="Terminal ID in the database"),
    file: str = typer.Option("", help="Reconcile a terminal JSON document directly"),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON"),
    record: bool = typer.Option(False, help="Record the run in the database"),
    db_path: str = typer.Option(
        "", help="Database path (local file or md:name for MotherDuck). Env: CAPMATRIX_DB"
    ),
) -> None:
    """Resolve supported / unsupported / unknown per capability for one terminal."""
    if not terminal_id and not file:
        console.print("[red]Give a TERMINAL_ID or --file[/red]")
        raise typer.Exit(1)
    try:
        settings = EngineSettings.from_env()
        if file:
            snapshot = TerminalDocumentReader(file).read_snapshot(terminal_id)
            _reconcile(snapshot, settings, as_json)
            return
        with Database(resolve_db_path(db_path)) as db:
            snapshot = load_snapshot(db, terminal_id)
            matrix = _reconcile(snapshot, settings, as_json)
            if record:
                run_id = ReconciliationRunRepo(db).insert(
                    snapshot.terminal_id,
                    snapshot_key(snapshot.attempts, snapshot.config),
                    summary_to_dict(matrix.summary),
                    matrix_to_dict(matrix),
                    attempt_count=len(snapshot.attempts),
                    catalog_version=DEFAULT_CATALOG.version,
                )
                if not as_json:
                    console.print(f"[dim]Recorded run {run_id}[/dim]")
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def load_snapshot(db: Database, terminal_id: str) -> TerminalSnapshot:
    snapshot = SnapshotReader(db).read(terminal_id)
    if snapshot is None:
        console.print(f"[red]Unknown terminal: {terminal_id}[/red]")
        console.print("[dim]Run 'load' first to import it.[/dim]")
        raise typer.Exit(1)
    return snapshot


def build_matrix(snapshot: TerminalSnapshot, settings: EngineSettings) -> CapabilityMatrix:
    formatter = EvidenceNoteFormatter(
        max_examples=settings.evidence_examples,
        date_format=settings.date_format,
    )
    return CapabilityMatrixBuilder(note_formatter=formatter).build(snapshot.attempts, snapshot.config)


def _reconcile(snapshot: TerminalSnapshot, settings: EngineSettings, as_json: bool) -> CapabilityMatrix:
    matrix = build_matrix(snapshot, settings)
    if as_json:
        report = ReportGenerator().generate(snapshot, matrix)
        typer.echo(json.dumps(report, ensure_ascii=False, indent=2))
        return matrix

    title = snapshot.terminal_id + (f" - {snapshot.name}" if snapshot.name else "")
    console.print(f"\n[bold]Capability matrix: {title}[/bold]")
    if not snapshot.config.has_manual_data:
        console.print("[dim]No declared configuration; states come from attempts only.[/dim]")
    for section in matrix.sections:
        console.print()
        console.print(_section_table(section))
    console.print()
    console.print(_summary_table(snapshot, matrix))
    return matrix


def state_text(state: ThreeState) -> str:
    label, style = STATE_STYLES[state]
    return f"[{style}]{label}[/{style}]"


def _item_row(item: ResolvedCapabilityItem) -> list[str]:
    resolved = state_text(item.resolved_state)
    if item.has_conflict:
        resolved += " [yellow](review)[/yellow]"
    return [
        item.label,
        resolved,
        state_text(item.manual_state),
        state_text(item.inferred_state),
        item.display_note or "",
    ]


def _section_table(section: Section) -> Table:
    table = Table(title=f"{section.title} - {section.description}" if section.description else section.title)
    table.add_column("Value", style="cyan")
    table.add_column("Resolved")
    table.add_column("Declared")
    table.add_column("Attempts")
    table.add_column("Note", overflow="fold")

    if section.groups:
        for i, group in enumerate(section.groups):
            if i:
                table.add_section()
            table.add_row(f"[bold]{group.title}[/bold]", "", "", "", "")
            if not group.items:
                table.add_row("  [dim](none recorded)[/dim]", "", "", "", "")
            for item in group.items:
                row = _item_row(item)
                row[0] = f"  {row[0]}"
                table.add_row(*row)
        return table

    for item in section.items:
        table.add_row(*_item_row(item))
    return table


def _summary_table(snapshot: TerminalSnapshot, matrix: CapabilityMatrix) -> Table:
    summary = matrix.summary
    stats = attempt_stats(snapshot.attempts)

    table = Table(title="Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Supported", str(summary.supported_count))
    table.add_row("Unsupported", str(summary.unsupported_count))
    table.add_row("Unknown", str(summary.unknown_count))
    conflict_style = "yellow" if summary.conflict_count else "green"
    table.add_row("Needs review", f"[{conflict_style}]{summary.conflict_count}[/{conflict_style}]")
    table.add_section()
    table.add_row("Attempts", str(stats.total))
    table.add_row("Decisive attempts", str(stats.decisive))
    table.add_row("Success rate", f"{stats.success_rate:.1f}%" if stats.total else "N/A")
    return table
