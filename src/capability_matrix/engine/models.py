"""Data models for the reconciliation engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from capability_matrix.ingestion.models import AttemptRecord


class ThreeState(str, Enum):
    SUPPORTED = "supported"
    UNSUPPORTED = "unsupported"
    UNKNOWN = "unknown"


@dataclass
class EvidenceBucket:
    """Decisive attempts for one (dimension, value) pair."""

    supporting: list[AttemptRecord] = field(default_factory=list)
    refuting: list[AttemptRecord] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.supporting and not self.refuting


@dataclass(frozen=True)
class Verdict:
    """A three-state value with its conflict flag."""

    state: ThreeState
    has_conflict: bool = False


@dataclass(frozen=True)
class ResolvedCapabilityItem:
    dimension_key: str
    value_key: str
    label: str
    manual_state: ThreeState
    inferred_state: ThreeState
    resolved_state: ThreeState
    has_conflict: bool
    evidence_note: Optional[str] = None
    manual_note: Optional[str] = None

    @property
    def display_note(self) -> Optional[str]:
        return self.evidence_note or self.manual_note


@dataclass
class SectionGroup:
    key: str
    title: str
    items: list[ResolvedCapabilityItem] = field(default_factory=list)


@dataclass
class Section:
    key: str
    title: str
    description: str = ""
    items: list[ResolvedCapabilityItem] = field(default_factory=list)
    groups: list[SectionGroup] = field(default_factory=list)
    # Operational data, left out of the capability summary
    operational: bool = False


@dataclass(frozen=True)
class Summary:
    supported_count: int = 0
    unsupported_count: int = 0
    unknown_count: int = 0
    conflict_count: int = 0

    @property
    def total(self) -> int:
        return self.supported_count + self.unsupported_count + self.unknown_count


@dataclass
class CapabilityMatrix:
    sections: list[Section] = field(default_factory=list)
    summary: Summary = field(default_factory=Summary)

    def section(self, key: str) -> Optional[Section]:
        for section in self.sections:
            if section.key == key:
                return section
        return None

    def item(self, dimension_key: str, value_key: str) -> Optional[ResolvedCapabilityItem]:
        for section in self.sections:
            for item in section.items:
                if item.dimension_key == dimension_key and item.value_key == value_key:
                    return item
        return None

    @property
    def all_items(self) -> list[ResolvedCapabilityItem]:
        return [item for section in self.sections for item in section.items]

    @property
    def conflicts(self) -> list[ResolvedCapabilityItem]:
        return [item for item in self.all_items if item.has_conflict]
