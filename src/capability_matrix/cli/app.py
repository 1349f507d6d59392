"""Typer CLI application."""

import typer

from capability_matrix.cli.commands.evidence import evidence
from capability_matrix.cli.commands.load import load
from capability_matrix.cli.commands.reconcile import reconcile
from capability_matrix.cli.commands.status import status

app = typer.Typer(
    name="capability-matrix",
    help="Terminal capability evidence reconciliation",
    no_args_is_help=True,
)

app.command()(load)
app.command()(reconcile)
app.command()(evidence)
app.command()(status)
