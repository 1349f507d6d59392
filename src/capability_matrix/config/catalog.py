"""Dimension catalog: the capability axes of a terminal and their recognized values."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

CATALOG_VERSION = "2025.1"


@dataclass(frozen=True)
class DimensionValue:
    key: str
    label: str
    aliases: tuple[str, ...] = ()


@dataclass(frozen=True)
class Dimension:
    key: str
    source_field: str  # column name on attempt rows
    title: str
    values: tuple[DimensionValue, ...] = ()
    open_ended: bool = False  # values are free text, not enumerated

    @property
    def value_keys(self) -> list[str]:
        return [v.key for v in self.values]

    def label_for(self, key: str) -> str:
        for value in self.values:
            if value.key == key:
                return value.label
        return key


@dataclass(frozen=True)
class DimensionCatalog:
    """Fixed set of dimensions, versioned with the application."""

    dimensions: tuple[Dimension, ...]
    version: str = CATALOG_VERSION
    _lookup: dict = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        for dim in self.dimensions:
            aliases = {}
            for value in dim.values:
                aliases[value.key.lower()] = value.key
                for alias in value.aliases:
                    aliases[alias.lower()] = value.key
            self._lookup[dim.key] = aliases

    def __iter__(self):
        return iter(self.dimensions)

    def get(self, key: str) -> Dimension:
        for dim in self.dimensions:
            if dim.key == key:
                return dim
        raise KeyError(f"Unknown dimension: {key}")

    def has(self, key: str) -> bool:
        return key in self._lookup

    def normalize(self, dimension: str, raw: object) -> Optional[str]:
        """Map a raw tag value to its canonical key.

        Returns None for blank values, unknown dimensions, and values
        outside an enumerated dimension.
        """
        if raw is None or dimension not in self._lookup:
            return None
        text = str(raw).strip()
        if not text:
            return None
        if self.get(dimension).open_ended:
            return text
        return self._lookup[dimension].get(text.lower())

    def label(self, dimension: str, key: str) -> str:
        if not self.has(dimension):
            return key
        return self.get(dimension).label_for(key)


CARD_NETWORK = Dimension(
    key="card_network",
    source_field="card_network",
    title="Card network",
    values=(
        DimensionValue("mastercard", "Mastercard"),
        DimensionValue("visa", "Visa"),
        DimensionValue("unionpay", "UnionPay"),
        DimensionValue("amex_cn", "American Express CN"),
        DimensionValue("amex", "American Express GL"),
        DimensionValue("mastercard_cn", "Mastercard CN"),
        DimensionValue("jcb", "JCB"),
        DimensionValue("discover", "Discover"),
        DimensionValue("diners", "Diners Club"),
    ),
)

PAYMENT_METHOD = Dimension(
    key="payment_method",
    source_field="payment_method",
    title="Payment method",
    values=(
        DimensionValue("tap", "Card tap"),
        DimensionValue("insert", "Card insert"),
        DimensionValue("swipe", "Card swipe"),
        DimensionValue("apple_pay", "Apple Pay"),
        DimensionValue("google_pay", "Google Pay"),
        DimensionValue("hce", "HCE"),
    ),
)

VERIFICATION_MODE = Dimension(
    key="verification_mode",
    source_field="cvm",
    title="Verification mode",
    values=(
        DimensionValue("no_pin", "No PIN"),
        DimensionValue("pin", "PIN"),
        DimensionValue("signature", "Signature"),
    ),
)

ACQUIRING_MODE = Dimension(
    key="acquiring_mode",
    source_field="acquiring_mode",
    title="Acquiring mode",
    values=(
        DimensionValue("DCC", "DCC"),
        DimensionValue("EDC", "EDC"),
    ),
)

CHECKOUT_LOCATION = Dimension(
    key="checkout_location",
    source_field="checkout_location",
    title="Checkout location",
    values=(
        DimensionValue("self_service", "Self-service checkout", aliases=("自助收银",)),
        DimensionValue("staffed", "Staffed checkout", aliases=("人工收银",)),
    ),
)

ACQUIRING_INSTITUTION = Dimension(
    key="acquiring_institution",
    source_field="acquiring_institution",
    title="Acquiring institution",
    open_ended=True,
)

DEFAULT_CATALOG = DimensionCatalog(
    dimensions=(
        CARD_NETWORK,
        PAYMENT_METHOD,
        VERIFICATION_MODE,
        ACQUIRING_MODE,
        CHECKOUT_LOCATION,
        ACQUIRING_INSTITUTION,
    ),
)

# Card network codes that may appear in verification-mode lists; such lists
# carry no human-readable configuration detail.
NETWORK_CODES = frozenset(CARD_NETWORK.value_keys) | {"maestro"}
