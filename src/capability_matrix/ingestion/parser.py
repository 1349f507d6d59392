"""Row-level parsers for Record Store attempt rows and configuration documents."""

from __future__ import annotations

import hashlib
import json
import logging
from datetime import datetime, timezone
from typing import Optional

from capability_matrix.config.catalog import DEFAULT_CATALOG, DimensionCatalog
from capability_matrix.ingestion.models import (
    AttemptRecord,
    ManualConfiguration,
    Outcome,
    VerificationModeEntry,
)

logger = logging.getLogger(__name__)

# Formats seen in exported rows besides ISO-8601
FALLBACK_TIMESTAMP_FORMATS = (
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d %H:%M",
    "%Y/%m/%d",
    "%m/%d/%Y %H:%M",
)

TRUE_STRINGS = {"true", "t", "yes", "y", "1"}
FALSE_STRINGS = {"false", "f", "no", "n", "0"}

# Three-state declarations some terminal editors store instead of booleans
THREE_STATE_STRINGS = {"supported": True, "unsupported": False, "unknown": None}

# Verification mode -> legacy configuration key prefix
VERIFICATION_MODE_KEYS = {
    "no_pin": "small_amount_no_pin",
    "pin": "requires_password",
    "signature": "requires_signature",
}

BOOLEAN_FLAG_KEYS = (
    "supports_contactless",
    "supports_apple_pay",
    "supports_google_pay",
    "supports_hce_simulation",
    "supports_dcc",
    "supports_edc",
)


def parse_timestamp(value: object) -> Optional[datetime]:
    """Parse a timestamp into an aware UTC-normalized datetime, or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)):
        # Epoch milliseconds are common in exported rows
        seconds = value / 1000 if value > 1e11 else value
        try:
            dt = datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            logger.debug("Unparseable epoch timestamp: %r", value)
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        dt = _parse_timestamp_text(text)
        if dt is None:
            logger.debug("Unparseable timestamp: %r", value)
            return None
    else:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _parse_timestamp_text(text: str) -> Optional[datetime]:
    iso = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        return datetime.fromisoformat(iso)
    except ValueError:
        pass
    for fmt in FALLBACK_TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def coerce_bool(value: object) -> Optional[bool]:
    """Interpret a loosely-typed flag. None when it carries no boolean meaning."""
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in TRUE_STRINGS:
            return True
        if text in FALSE_STRINGS:
            return False
    return None


def coerce_declaration(value: object) -> Optional[bool]:
    """Interpret a capability flag that may be a boolean or a three-state string."""
    if isinstance(value, str):
        text = value.strip().lower()
        if text in THREE_STATE_STRINGS:
            return THREE_STATE_STRINGS[text]
    return coerce_bool(value)


def _clean_text(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _as_tuple(value: object) -> Optional[tuple[str, ...]]:
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        return (text,) if text else ()
    if isinstance(value, (list, tuple)):
        return tuple(t for t in (_clean_text(v) for v in value) if t)
    return None


def _as_number(value: object) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip())
    except ValueError:
        return None


def _as_int(value: object) -> Optional[int]:
    number = _as_number(value)
    return int(number) if number is not None else None


def row_fingerprint(row: dict) -> str:
    """Deterministic ID for rows that arrive without one."""
    raw = json.dumps(row, sort_keys=True, default=str, ensure_ascii=False)
    return hashlib.sha256(raw.encode()).hexdigest()[:16]


class AttemptParser:
    """Parses Record Store attempt rows into AttemptRecord objects."""

    def __init__(self, catalog: DimensionCatalog = DEFAULT_CATALOG) -> None:
        self._catalog = catalog

    def parse_row(self, row: dict) -> AttemptRecord:
        """Parse one attempt row. Never raises on malformed fields."""
        outcome_raw = _clean_text(row.get("result", row.get("outcome"))).lower()
        try:
            outcome = Outcome(outcome_raw)
        except ValueError:
            if outcome_raw:
                logger.debug("Unknown attempt outcome %r treated as unknown", outcome_raw)
            outcome = Outcome.UNKNOWN

        tags = {}
        for dim in self._catalog:
            raw = _clean_text(row.get(dim.source_field))
            if raw:
                tags[dim.key] = raw

        conclusive = coerce_bool(row.get("is_conclusive_failure")) or False

        return AttemptRecord(
            attempt_id=_clean_text(row.get("id", row.get("attempt_id"))) or row_fingerprint(row),
            outcome=outcome,
            is_conclusive_failure=conclusive,
            tags=tags,
            occurred_at=parse_timestamp(row.get("attempted_at")),
            recorded_at=parse_timestamp(row.get("created_at")),
            author_id=_clean_text(row.get("user_id", row.get("author_id"))),
            notes=_clean_text(row.get("notes")),
            card_name=_clean_text(row.get("card_name")),
            device_status=_clean_text(row.get("device_status")),
            attempt_number=_as_int(row.get("attempt_number")),
        )

    def parse_rows(self, rows: list[dict]) -> list[AttemptRecord]:
        return [self.parse_row(row) for row in rows]


class ConfigParser:
    """Parses the legacy terminal configuration document."""

    def parse(self, document: Optional[dict]) -> ManualConfiguration:
        if not isinstance(document, dict):
            return ManualConfiguration()

        basic = document.get("basic_info")
        if not isinstance(basic, dict):
            basic = document
        modes = document.get("verification_modes")
        if not isinstance(modes, dict):
            modes = document

        flags = {key: coerce_declaration(basic.get(key)) for key in BOOLEAN_FLAG_KEYS}

        return ManualConfiguration(
            supported_card_networks=_as_tuple(basic.get("supported_card_networks")),
            acquiring_modes=_as_tuple(basic.get("acquiring_modes")),
            min_amount_no_pin=_as_number(basic.get("min_amount_no_pin")),
            checkout_location=_clean_text(basic.get("checkout_location")) or None,
            acquiring_institution=_clean_text(basic.get("acquiring_institution")) or None,
            verification_modes=self._parse_verification_modes(modes),
            **flags,
        )

    def _parse_verification_modes(self, modes: dict) -> dict[str, VerificationModeEntry]:
        entries = {}
        for mode, prefix in VERIFICATION_MODE_KEYS.items():
            keys = (prefix, f"{prefix}_unsupported", f"{prefix}_uncertain")
            if not any(k in modes for k in keys):
                continue
            entries[mode] = VerificationModeEntry(
                values=_as_tuple(modes.get(prefix)),
                unsupported=coerce_bool(modes.get(f"{prefix}_unsupported")) or False,
                uncertain=coerce_bool(modes.get(f"{prefix}_uncertain")) or False,
            )
        return entries
