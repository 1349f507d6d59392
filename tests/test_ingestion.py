"""Tests for attempt/config parsing and file readers."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest

from capability_matrix.ingestion.file_reader import (
    AttemptFileReader,
    TerminalDocumentReader,
    document_terminal_id,
)
from capability_matrix.ingestion.models import Outcome
from capability_matrix.ingestion.parser import (
    AttemptParser,
    ConfigParser,
    coerce_bool,
    coerce_declaration,
    parse_timestamp,
    row_fingerprint,
)

UTC = timezone.utc


class TestParseTimestamp:
    """Test tolerant timestamp parsing."""

    def test_iso_with_z(self):
        assert parse_timestamp("2025-03-02T10:15:00Z") == datetime(2025, 3, 2, 10, 15, tzinfo=UTC)

    def test_offset_converted_to_utc(self):
        ts = parse_timestamp("2025-03-02T18:15:00+08:00")
        assert ts == datetime(2025, 3, 2, 10, 15, tzinfo=UTC)
        assert ts.utcoffset() == timedelta(0)

    def test_naive_taken_as_utc(self):
        assert parse_timestamp(datetime(2025, 3, 2, 10, 15)) == datetime(2025, 3, 2, 10, 15, tzinfo=UTC)
        assert parse_timestamp("2025-03-02 10:15:00").tzinfo is not None

    def test_epoch_seconds_and_millis(self):
        expected = datetime(2025, 3, 2, 10, 15, tzinfo=UTC)
        assert parse_timestamp(1740910500) == expected
        assert parse_timestamp(1740910500000) == expected

    def test_fallback_format(self):
        assert parse_timestamp("2025/03/02 10:15") == datetime(2025, 3, 2, 10, 15, tzinfo=UTC)

    def test_unparseable(self):
        assert parse_timestamp("yesterday") is None
        assert parse_timestamp("") is None
        assert parse_timestamp(None) is None
        assert parse_timestamp(True) is None


class TestCoerceBool:
    """Test loose boolean flags."""

    @pytest.mark.parametrize("value", [True, "true", "YES", "1", 1, "t"])
    def test_truthy(self, value):
        assert coerce_bool(value) is True

    @pytest.mark.parametrize("value", [False, "false", "No", "0", 0])
    def test_falsy(self, value):
        assert coerce_bool(value) is False

    @pytest.mark.parametrize("value", [None, "maybe", [], {}])
    def test_no_meaning(self, value):
        assert coerce_bool(value) is None

    @pytest.mark.parametrize(
        "value,expected",
        [("supported", True), (" Unsupported ", False), ("unknown", None), ("yes", True), (False, False), (None, None)],
    )
    def test_three_state_declarations(self, value, expected):
        assert coerce_declaration(value) is expected


class TestAttemptParser:
    """Test Record Store row parsing."""

    def setup_method(self):
        self.parser = AttemptParser()

    def test_full_row(self, sample_rows):
        attempt = self.parser.parse_row(sample_rows[0])
        assert attempt.attempt_id == "att-1"
        assert attempt.outcome == Outcome.SUCCESS
        assert not attempt.is_conclusive_failure
        assert attempt.tags == {
            "card_network": "visa",
            "payment_method": "tap",
            "verification_mode": "no_pin",
            "acquiring_mode": "EDC",
            "checkout_location": "staffed",
            "acquiring_institution": "Acme Acquiring",
        }
        assert attempt.occurred_at == datetime(2025, 3, 2, 10, 15, tzinfo=UTC)
        assert attempt.author_id == "u-1"
        assert attempt.card_name == "Visa Platinum"

    def test_conclusive_failure(self, sample_rows):
        attempt = self.parser.parse_row(sample_rows[1])
        assert attempt.outcome == Outcome.FAILURE
        assert attempt.is_conclusive_failure
        assert attempt.is_refuting
        assert attempt.notes == "Declined: card not accepted"

    def test_effective_time_falls_back_to_created_at(self, sample_rows):
        attempt = self.parser.parse_row(sample_rows[2])
        assert attempt.occurred_at is None
        assert attempt.effective_time == datetime(2025, 3, 3, 8, 0, tzinfo=UTC)
        assert not attempt.is_decisive

    def test_unknown_outcome(self):
        attempt = self.parser.parse_row({"id": "x", "result": "pending"})
        assert attempt.outcome == Outcome.UNKNOWN
        assert attempt.tags == {}

    def test_string_flags_and_numbers(self):
        attempt = self.parser.parse_row({
            "id": "x",
            "result": "FAILURE",
            "is_conclusive_failure": "true",
            "attempt_number": "3",
            "card_network": "  ",
        })
        assert attempt.outcome == Outcome.FAILURE
        assert attempt.is_conclusive_failure
        assert attempt.attempt_number == 3
        assert "card_network" not in attempt.tags

    def test_missing_id_is_deterministic(self):
        row = {"result": "success", "card_network": "visa", "created_at": "2025-03-01T00:00:00Z"}
        first = self.parser.parse_row(row)
        second = self.parser.parse_row(dict(reversed(list(row.items()))))
        assert first.attempt_id == second.attempt_id == row_fingerprint(row)
        assert len(first.attempt_id) == 16

    def test_parse_rows(self, sample_rows):
        attempts = self.parser.parse_rows(sample_rows)
        assert [a.attempt_id for a in attempts] == ["att-1", "att-2", "att-3"]


class TestConfigParser:
    """Test the legacy configuration document shape."""

    def setup_method(self):
        self.parser = ConfigParser()

    def test_nested_document(self, sample_document):
        config = self.parser.parse(sample_document)
        assert config.supported_card_networks == ("visa", "mastercard")
        assert config.supports_contactless is True
        assert config.supports_apple_pay is False
        assert config.supports_google_pay is None
        assert config.min_amount_no_pin == 1000.0
        assert config.acquiring_modes == ("EDC",)
        assert config.checkout_location == "人工收银"
        assert config.acquiring_institution == "Acme Acquiring"
        assert config.has_manual_data

        modes = config.verification_modes
        assert modes["no_pin"].values == ("visa", "mastercard")
        assert modes["pin"].unsupported
        assert modes["pin"].values is None
        assert modes["signature"].uncertain
        assert not modes["signature"].unsupported

    def test_top_level_keys(self):
        config = self.parser.parse({
            "supports_dcc": "yes",
            "supported_card_networks": "unionpay",
            "requires_signature": ["all cards"],
        })
        assert config.supports_dcc is True
        assert config.supported_card_networks == ("unionpay",)
        assert config.verification_modes["signature"].values == ("all cards",)
        assert "pin" not in config.verification_modes

    def test_three_state_flags(self):
        config = self.parser.parse({
            "basic_info": {
                "supports_contactless": "supported",
                "supports_apple_pay": "unsupported",
                "supports_google_pay": "unknown",
            }
        })
        assert config.supports_contactless is True
        assert config.supports_apple_pay is False
        assert config.supports_google_pay is None

    def test_empty_and_malformed(self):
        assert not self.parser.parse(None).has_manual_data
        assert not self.parser.parse([]).has_manual_data
        config = self.parser.parse({"basic_info": "broken", "min_amount_no_pin": "n/a"})
        assert config.min_amount_no_pin is None
        assert not config.has_manual_data


class TestAttemptFileReader:
    """Test reading attempt exports through polars."""

    def test_csv(self, tmp_path):
        path = tmp_path / "attempts.csv"
        path.write_text(
            "id,result,is_conclusive_failure,card_network,attempted_at\n"
            "c1,success,false,visa,2025-03-02T10:15:00Z\n"
            "c2,failure,true,jcb,\n",
            encoding="utf-8",
        )
        rows = AttemptFileReader(str(path)).read()
        assert len(rows) == 2
        assert rows[0]["id"] == "c1"
        assert rows[1]["attempted_at"] is None

        attempts = AttemptParser().parse_rows(rows)
        assert attempts[1].is_refuting
        assert attempts[0].tags == {"card_network": "visa"}

    def test_ndjson(self, tmp_path, sample_rows):
        path = tmp_path / "attempts.ndjson"
        path.write_text("\n".join(json.dumps(r, ensure_ascii=False) for r in sample_rows) + "\n", encoding="utf-8")
        rows = AttemptFileReader(str(path)).read()
        assert [r["id"] for r in rows] == ["att-1", "att-2", "att-3"]

    def test_json_array(self, tmp_path, sample_rows):
        path = tmp_path / "attempts.json"
        path.write_text(json.dumps(sample_rows, ensure_ascii=False), encoding="utf-8")
        rows = AttemptFileReader(str(path)).read()
        assert len(rows) == 3
        assert rows[1]["card_network"] == "amex"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "attempts.csv"
        path.write_text("", encoding="utf-8")
        assert AttemptFileReader(str(path)).read() == []

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            AttemptFileReader(str(tmp_path / "nope.csv"))

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "attempts.xlsx"
        path.write_text("x", encoding="utf-8")
        with pytest.raises(ValueError):
            AttemptFileReader(str(path))


class TestTerminalDocumentReader:
    """Test terminal documents on disk."""

    def test_read_snapshot(self, document_path):
        snapshot = TerminalDocumentReader(document_path).read_snapshot()
        assert snapshot.terminal_id == "T-100"
        assert snapshot.name == "Harbour Cafe"
        assert len(snapshot.attempts) == 3
        assert snapshot.config.supports_contactless is True

    def test_terminal_id_override(self, document_path):
        assert TerminalDocumentReader(document_path).read_snapshot("T-9").terminal_id == "T-9"

    def test_not_an_object(self, tmp_path):
        path = tmp_path / "doc.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(ValueError):
            TerminalDocumentReader(str(path)).read()

    def test_missing_id(self, tmp_path):
        path = tmp_path / "doc.json"
        path.write_text(json.dumps({"basic_info": {}}), encoding="utf-8")
        with pytest.raises(ValueError):
            TerminalDocumentReader(str(path)).read_snapshot()

    def test_document_terminal_id(self):
        assert document_terminal_id({"terminal_id": " T-1 ", "id": "x"}) == "T-1"
        assert document_terminal_id({"id": 42}) == "42"
        assert document_terminal_id({}) == ""
