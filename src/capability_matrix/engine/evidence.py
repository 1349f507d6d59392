"""Evidence aggregation: groups decisive attempts by (dimension, value)."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from capability_matrix.config.catalog import DEFAULT_CATALOG, DimensionCatalog
from capability_matrix.engine.models import EvidenceBucket
from capability_matrix.ingestion.models import AttemptRecord, Outcome

logger = logging.getLogger(__name__)

SUPPORTING = "supporting"
REFUTING = "refuting"

EvidenceIndex = dict[tuple[str, str], EvidenceBucket]

_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


def classify_attempt(attempt: AttemptRecord) -> Optional[str]:
    """Return the evidence kind an attempt contributes, or None if inconclusive.

    Failures without the conclusive flag (wrong PIN, cashier error, unrelated
    POS fault) and unknown outcomes are excluded.
    """
    if attempt.outcome == Outcome.SUCCESS:
        return SUPPORTING
    if attempt.outcome == Outcome.FAILURE and attempt.is_conclusive_failure:
        return REFUTING
    return None


def _sort_time(attempt: AttemptRecord) -> datetime:
    ts = attempt.effective_time
    if ts is None:
        return _EARLIEST
    # Naive times are UTC, matching what the parser and the store produce
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def newest_first(attempts: Iterable[AttemptRecord]) -> list[AttemptRecord]:
    """Order attempts by effective time (newest first), then ID, for stable output.

    Undated attempts sort last.
    """
    return sorted(
        attempts,
        key=lambda a: (_sort_time(a), a.attempt_id),
        reverse=True,
    )


class EvidenceAggregator:
    """Builds evidence buckets from a snapshot of attempts."""

    def __init__(self, catalog: DimensionCatalog = DEFAULT_CATALOG) -> None:
        self._catalog = catalog

    def aggregate(self, attempts: Iterable[AttemptRecord]) -> EvidenceIndex:
        """Group decisive attempts into buckets keyed by (dimension, value).

        Tags outside the catalog are ignored for that dimension only. The
        result does not depend on the order of the input.
        """
        index: EvidenceIndex = {}
        for attempt in attempts:
            kind = classify_attempt(attempt)
            if kind is None:
                continue
            for dimension, raw in attempt.tags.items():
                value = self._catalog.normalize(dimension, raw)
                if value is None:
                    logger.debug(
                        "Ignoring %s=%r on attempt %s (not in catalog)",
                        dimension, raw, attempt.attempt_id,
                    )
                    continue
                bucket = index.setdefault((dimension, value), EvidenceBucket())
                if kind == SUPPORTING:
                    bucket.supporting.append(attempt)
                else:
                    bucket.refuting.append(attempt)

        for bucket in index.values():
            bucket.supporting = newest_first(bucket.supporting)
            bucket.refuting = newest_first(bucket.refuting)
        return index

    def values_seen(self, index: EvidenceIndex, dimension: str) -> list[str]:
        """Values of a dimension that have evidence, sorted."""
        return sorted(value for dim, value in index if dim == dimension)
