"""Shared test fixtures and sample terminal data."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from itertools import count
from typing import Optional

import pytest

from capability_matrix.ingestion.models import AttemptRecord, Outcome
from capability_matrix.storage.database import Database

_ids = count(1)


@pytest.fixture
def tmp_db(tmp_path):
    """Create a temporary DuckDB database for testing."""
    db_path = str(tmp_path / "test.duckdb")
    with Database(db_path) as db:
        yield db


def make_attempt(
    outcome: str = "success",
    conclusive: bool = False,
    day: Optional[int] = 1,
    attempt_id: str = "",
    naive: bool = False,
    **tags: str,
) -> AttemptRecord:
    """Build an AttemptRecord tagged with dimension keys, e.g. card_network="visa".

    ``day=None`` leaves the attempt undated; ``naive=True`` drops the timezone.
    """
    occurred_at = None
    if day is not None:
        occurred_at = datetime(2025, 3, day, 12, 0, tzinfo=None if naive else timezone.utc)
    return AttemptRecord(
        attempt_id=attempt_id or f"a{next(_ids):04d}",
        outcome=Outcome(outcome),
        is_conclusive_failure=conclusive,
        tags=dict(tags),
        occurred_at=occurred_at,
    )


@pytest.fixture
def attempt_factory():
    return make_attempt


# Record Store rows as exported from pos_attempts
SAMPLE_ATTEMPT_ROWS = [
    {
        "id": "att-1",
        "result": "success",
        "is_conclusive_failure": False,
        "card_network": "visa",
        "payment_method": "tap",
        "cvm": "no_pin",
        "acquiring_mode": "EDC",
        "checkout_location": "staffed",
        "acquiring_institution": "Acme Acquiring",
        "card_name": "Visa Platinum",
        "user_id": "u-1",
        "attempted_at": "2025-03-02T10:15:00Z",
        "created_at": "2025-03-02T10:20:00Z",
    },
    {
        "id": "att-2",
        "result": "failure",
        "is_conclusive_failure": True,
        "card_network": "amex",
        "payment_method": "insert",
        "cvm": "pin",
        "user_id": "u-2",
        "notes": "Declined: card not accepted",
        "attempted_at": "2025-03-01T09:00:00Z",
        "created_at": "2025-03-01T09:05:00Z",
    },
    {
        "id": "att-3",
        "result": "failure",
        "is_conclusive_failure": False,
        "card_network": "mastercard",
        "payment_method": "apple_pay",
        "notes": "Wrong PIN",
        "created_at": "2025-03-03T08:00:00Z",
    },
]

SAMPLE_DOCUMENT = {
    "id": "T-100",
    "merchant_name": "Harbour Cafe",
    "basic_info": {
        "supported_card_networks": ["visa", "mastercard"],
        "supports_contactless": True,
        "supports_apple_pay": False,
        "min_amount_no_pin": 1000,
        "acquiring_modes": ["EDC"],
        "checkout_location": "人工收银",
        "acquiring_institution": "Acme Acquiring",
    },
    "verification_modes": {
        "small_amount_no_pin": ["visa", "mastercard"],
        "requires_password_unsupported": True,
        "requires_signature_uncertain": True,
    },
}


@pytest.fixture
def sample_rows():
    return [dict(r) for r in SAMPLE_ATTEMPT_ROWS]


@pytest.fixture
def sample_document():
    return json.loads(json.dumps(SAMPLE_DOCUMENT))


@pytest.fixture
def document_path(tmp_path, sample_document):
    """Terminal document on disk with its attempts embedded."""
    document = dict(sample_document, attempts=[dict(r) for r in SAMPLE_ATTEMPT_ROWS])
    path = tmp_path / "terminal.json"
    path.write_text(json.dumps(document, ensure_ascii=False), encoding="utf-8")
    return str(path)
