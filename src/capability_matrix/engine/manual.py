"""Manual state normalization.

A terminal's declared configuration uses a different shape per dimension:
single booleans (``supports_contactless``), value lists with independent
``unsupported``/``uncertain`` flags (verification modes, card networks,
acquiring modes) and exact single-select fields (checkout location,
acquiring institution). Each (dimension, value) pair is first mapped to one
of the encodings below, then every encoding is reduced to a ThreeState by
``normalize_encoding``. Nothing downstream looks at the original shape.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from capability_matrix.config.catalog import DEFAULT_CATALOG, NETWORK_CODES, DimensionCatalog
from capability_matrix.engine.models import ThreeState
from capability_matrix.ingestion.models import ManualConfiguration


@dataclass(frozen=True)
class NotDeclared:
    """The configuration says nothing about this value."""


@dataclass(frozen=True)
class BooleanFlag:
    value: Optional[bool]


@dataclass(frozen=True)
class FlaggedList:
    values: Optional[tuple[str, ...]]
    unsupported: bool = False
    uncertain: bool = False
    # True: the candidate must be in the list. False: any entry declares support.
    membership: bool = True


@dataclass(frozen=True)
class ExactValue:
    value: Optional[str]


ManualEncoding = Union[NotDeclared, BooleanFlag, FlaggedList, ExactValue]

NOT_DECLARED = NotDeclared()

PAYMENT_METHOD_FLAGS = {
    "tap": "supports_contactless",
    "apple_pay": "supports_apple_pay",
    "google_pay": "supports_google_pay",
    "hce": "supports_hce_simulation",
}

ACQUIRING_MODE_FLAGS = {
    "DCC": "supports_dcc",
    "EDC": "supports_edc",
}

PENDING_NOTE = "Configured: pending confirmation"


def normalize_encoding(encoding: ManualEncoding, candidate: str) -> ThreeState:
    """Reduce one declared encoding to a ThreeState for ``candidate``."""
    if isinstance(encoding, BooleanFlag):
        if encoding.value is None:
            return ThreeState.UNKNOWN
        return ThreeState.SUPPORTED if encoding.value else ThreeState.UNSUPPORTED

    if isinstance(encoding, FlaggedList):
        if encoding.unsupported:
            return ThreeState.UNSUPPORTED
        values = encoding.values or ()
        declared = candidate in values if encoding.membership else bool(values)
        if declared:
            return ThreeState.SUPPORTED
        # uncertain and silent lists both stay unknown
        return ThreeState.UNKNOWN

    if isinstance(encoding, ExactValue):
        # A different declared value does not rule this candidate out
        if encoding.value is not None and encoding.value == candidate:
            return ThreeState.SUPPORTED
        return ThreeState.UNKNOWN

    return ThreeState.UNKNOWN


def _format_amount(amount: float) -> str:
    return str(int(amount)) if float(amount).is_integer() else str(amount)


class ManualStateNormalizer:
    """Maps a ManualConfiguration onto per-value encodings, states and notes."""

    def __init__(
        self,
        config: Optional[ManualConfiguration],
        catalog: DimensionCatalog = DEFAULT_CATALOG,
    ) -> None:
        self._config = config or ManualConfiguration()
        self._catalog = catalog

    def encoding_for(self, dimension: str, value: str) -> ManualEncoding:
        cfg = self._config

        if dimension == "card_network":
            return FlaggedList(self._canonical_list(dimension, cfg.supported_card_networks))

        if dimension == "payment_method":
            flag = PAYMENT_METHOD_FLAGS.get(value)
            if flag is None:
                return NOT_DECLARED
            return BooleanFlag(getattr(cfg, flag))

        if dimension == "verification_mode":
            entry = cfg.verification_modes.get(value)
            if entry is None:
                return NOT_DECLARED
            return FlaggedList(
                entry.values,
                unsupported=entry.unsupported,
                uncertain=entry.uncertain,
                membership=False,
            )

        if dimension == "acquiring_mode":
            flag = ACQUIRING_MODE_FLAGS.get(value)
            if flag is not None and getattr(cfg, flag) is not None:
                return BooleanFlag(getattr(cfg, flag))
            return FlaggedList(self._canonical_list(dimension, cfg.acquiring_modes))

        if dimension == "checkout_location":
            return ExactValue(self._catalog.normalize(dimension, cfg.checkout_location))

        if dimension == "acquiring_institution":
            return ExactValue(self._catalog.normalize(dimension, cfg.acquiring_institution))

        return NOT_DECLARED

    def state(self, dimension: str, value: str) -> ThreeState:
        return normalize_encoding(self.encoding_for(dimension, value), value)

    def note(self, dimension: str, value: str) -> Optional[str]:
        """Human-readable configuration detail. Display only."""
        cfg = self._config

        if dimension == "payment_method" and value == "tap" and cfg.min_amount_no_pin:
            return f"Configured: no-PIN limit ¥{_format_amount(cfg.min_amount_no_pin)}"

        if dimension == "verification_mode":
            entry = cfg.verification_modes.get(value)
            if entry is None:
                return None
            if entry.values is not None:
                values = list(entry.values)
                if not values or all(v in NETWORK_CODES for v in values):
                    return None
                return f"Configured: {', '.join(values)}"
            if entry.uncertain:
                return PENDING_NOTE
            return None

        if dimension == "acquiring_mode":
            if value in self._canonical_list(dimension, cfg.acquiring_modes):
                return "Configured: acquiring modes include this mode"

        return None

    def declared_values(self, dimension: str) -> list[str]:
        """Values named by an exact-value field, for open-ended enumeration."""
        encoding = self.encoding_for(dimension, "")
        if isinstance(encoding, ExactValue) and encoding.value is not None:
            return [encoding.value]
        return []

    def _canonical_list(self, dimension: str, values: Optional[tuple[str, ...]]) -> tuple[str, ...]:
        if not values:
            return ()
        canonical = (self._catalog.normalize(dimension, v) for v in values)
        return tuple(v for v in canonical if v is not None)
