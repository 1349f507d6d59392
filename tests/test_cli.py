"""Tests for the typer CLI."""

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from capability_matrix.cli.app import app
from capability_matrix.storage.database import Database
from capability_matrix.storage.repositories import AttemptRepo, ReconciliationRunRepo, TerminalRepo

runner = CliRunner()


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "cli.duckdb")


@pytest.fixture
def loaded(db_path, document_path):
    result = runner.invoke(app, ["load", document_path, "--db-path", db_path])
    assert result.exit_code == 0, result.output
    return db_path


class TestLoadCommand:
    """Test importing terminal documents."""

    def test_load_document(self, db_path, document_path):
        result = runner.invoke(app, ["load", document_path, "--db-path", db_path])
        assert result.exit_code == 0
        assert "Loaded terminal T-100" in result.output
        assert "3 new" in result.output

    def test_reload_is_idempotent(self, loaded, document_path):
        result = runner.invoke(app, ["load", document_path, "--db-path", loaded])
        assert result.exit_code == 0
        assert "0 new, 3 already stored" in result.output

    def test_replace(self, loaded, document_path):
        result = runner.invoke(app, ["load", document_path, "--replace", "--db-path", loaded])
        assert result.exit_code == 0
        assert "3 new" in result.output

    def test_replace_restores_attempts_when_load_fails(self, loaded, document_path, monkeypatch):
        def fail(*args, **kwargs):
            raise RuntimeError("disk full")

        monkeypatch.setattr(TerminalRepo, "upsert", fail)
        result = runner.invoke(app, ["load", document_path, "--replace", "--db-path", loaded])
        assert result.exit_code == 1
        assert "restored 3 previously stored attempts" in result.output
        assert "disk full" in result.output
        with Database(loaded) as db:
            assert AttemptRepo(db).count("T-100") == 3

    def test_attempts_file(self, db_path, document_path, tmp_path):
        csv_path = tmp_path / "more.csv"
        csv_path.write_text(
            "id,result,is_conclusive_failure,card_network\nc1,success,false,jcb\n",
            encoding="utf-8",
        )
        result = runner.invoke(
            app, ["load", document_path, "--attempts", str(csv_path), "--db-path", db_path]
        )
        assert result.exit_code == 0
        assert "4 new" in result.output

    def test_missing_file(self, db_path, tmp_path):
        result = runner.invoke(app, ["load", str(tmp_path / "nope.json"), "--db-path", db_path])
        assert result.exit_code == 1
        assert "Error" in result.output


class TestReconcileCommand:
    """Test matrix rendering and JSON output."""

    def test_json_from_store(self, loaded):
        result = runner.invoke(app, ["reconcile", "T-100", "--json", "--db-path", loaded])
        assert result.exit_code == 0
        report = json.loads(result.output)
        assert report["terminal"]["id"] == "T-100"
        assert report["terminal"]["name"] == "Harbour Cafe"
        assert [s["key"] for s in report["sections"]][-1] == "device-acquiring"

    def test_tables_from_file(self, document_path, db_path):
        result = runner.invoke(app, ["reconcile", "--file", document_path, "--db-path", db_path])
        assert result.exit_code == 0
        assert "Capability matrix: T-100" in result.output
        assert "Summary" in result.output

    def test_record_run(self, loaded):
        result = runner.invoke(app, ["reconcile", "T-100", "--record", "--db-path", loaded])
        assert result.exit_code == 0
        assert "Recorded run" in result.output
        with Database(loaded) as db:
            assert ReconciliationRunRepo(db).count() == 1

    def test_unknown_terminal(self, loaded):
        result = runner.invoke(app, ["reconcile", "T-404", "--db-path", loaded])
        assert result.exit_code == 1
        assert "Unknown terminal" in result.output

    def test_requires_terminal_or_file(self, db_path):
        result = runner.invoke(app, ["reconcile", "--db-path", db_path])
        assert result.exit_code == 1


class TestEvidenceCommand:
    """Test the drill-down command."""

    def test_json_detail(self, loaded):
        result = runner.invoke(
            app, ["evidence", "T-100", "card_network", "amex", "--json", "--db-path", loaded]
        )
        assert result.exit_code == 0
        detail = json.loads(result.output)
        assert detail["item"]["resolved_state"] == "unsupported"
        assert [a["id"] for a in detail["attempts"]] == ["att-2"]

    def test_table_detail(self, loaded):
        result = runner.invoke(app, ["evidence", "T-100", "card_network", "visa", "--db-path", loaded])
        assert result.exit_code == 0
        assert "Attempts (1)" in result.output

    def test_unknown_dimension(self, loaded):
        result = runner.invoke(app, ["evidence", "T-100", "colour", "red", "--db-path", loaded])
        assert result.exit_code == 1
        assert "Unknown dimension" in result.output


class TestStatusCommand:
    """Test database statistics."""

    def test_status(self, loaded):
        result = runner.invoke(app, ["status", "--detailed", "--db-path", loaded])
        assert result.exit_code == 0
        assert "Terminals" in result.output
        assert "T-100" in result.output
