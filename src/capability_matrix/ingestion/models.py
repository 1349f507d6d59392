"""Data models for attempts and manual configuration read from the Record Store."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class Outcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class AttemptRecord:
    """One field observation of a terminal. Immutable snapshot."""

    attempt_id: str
    outcome: Outcome = Outcome.UNKNOWN
    is_conclusive_failure: bool = False
    # dimension key -> raw tag value, only for dimensions the attempt carries
    tags: dict[str, str] = field(default_factory=dict)
    occurred_at: Optional[datetime] = None
    recorded_at: Optional[datetime] = None
    author_id: str = ""
    notes: str = ""

    # Display-only details
    card_name: str = ""
    device_status: str = ""
    attempt_number: Optional[int] = None

    @property
    def effective_time(self) -> Optional[datetime]:
        return self.occurred_at or self.recorded_at

    @property
    def is_refuting(self) -> bool:
        return self.outcome == Outcome.FAILURE and self.is_conclusive_failure

    @property
    def is_decisive(self) -> bool:
        return self.outcome == Outcome.SUCCESS or self.is_refuting

    def tag(self, dimension: str) -> Optional[str]:
        return self.tags.get(dimension)


@dataclass(frozen=True)
class VerificationModeEntry:
    """List-style declaration: supported values plus independent flags."""

    values: Optional[tuple[str, ...]] = None  # None = list absent
    unsupported: bool = False
    uncertain: bool = False


@dataclass(frozen=True)
class ManualConfiguration:
    """Declared capabilities of a terminal, in their legacy per-dimension shapes."""

    supported_card_networks: Optional[tuple[str, ...]] = None

    # Boolean flags, None = not declared
    supports_contactless: Optional[bool] = None
    supports_apple_pay: Optional[bool] = None
    supports_google_pay: Optional[bool] = None
    supports_hce_simulation: Optional[bool] = None
    supports_dcc: Optional[bool] = None
    supports_edc: Optional[bool] = None

    acquiring_modes: Optional[tuple[str, ...]] = None
    min_amount_no_pin: Optional[float] = None

    # Exact-value fields
    checkout_location: Optional[str] = None
    acquiring_institution: Optional[str] = None

    # no_pin / pin / signature -> entry
    verification_modes: dict[str, VerificationModeEntry] = field(default_factory=dict)

    @property
    def has_manual_data(self) -> bool:
        if self.verification_modes:
            return True
        return any(
            getattr(self, name) is not None
            for name in (
                "supported_card_networks", "supports_contactless", "supports_apple_pay",
                "supports_google_pay", "supports_hce_simulation", "supports_dcc",
                "supports_edc", "acquiring_modes", "min_amount_no_pin",
                "checkout_location", "acquiring_institution",
            )
        )


@dataclass
class TerminalSnapshot:
    """A consistent read of one terminal's attempts and configuration."""

    terminal_id: str
    attempts: list[AttemptRecord] = field(default_factory=list)
    config: ManualConfiguration = field(default_factory=ManualConfiguration)
    config_version: int = 1
    name: str = ""
