"""Summary tallies over a resolved matrix."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Iterable

from capability_matrix.engine.models import Section, Summary, ThreeState
from capability_matrix.ingestion.models import AttemptRecord, Outcome


def summarize(sections: Iterable[Section]) -> Summary:
    """Count resolved states and conflicts, skipping operational sections."""
    states: Counter = Counter()
    conflicts = 0
    for section in sections:
        if section.operational:
            continue
        for item in section.items:
            states[item.resolved_state] += 1
            if item.has_conflict:
                conflicts += 1
    return Summary(
        supported_count=states[ThreeState.SUPPORTED],
        unsupported_count=states[ThreeState.UNSUPPORTED],
        unknown_count=states[ThreeState.UNKNOWN],
        conflict_count=conflicts,
    )


@dataclass(frozen=True)
class AttemptStats:
    total: int = 0
    decisive: int = 0
    successes: int = 0

    @property
    def success_rate(self) -> float:
        """Percentage of all attempts that succeeded."""
        return (self.successes / self.total * 100) if self.total else 0.0


def attempt_stats(attempts: Iterable[AttemptRecord]) -> AttemptStats:
    total = decisive = successes = 0
    for attempt in attempts:
        total += 1
        if attempt.is_decisive:
            decisive += 1
        if attempt.outcome == Outcome.SUCCESS:
            successes += 1
    return AttemptStats(total=total, decisive=decisive, successes=successes)
