"""Evidence notes: short human-readable summaries of the attempts behind a verdict."""

from __future__ import annotations

from typing import Optional

from capability_matrix.config.catalog import DEFAULT_CATALOG, DimensionCatalog
from capability_matrix.engine.models import EvidenceBucket, ThreeState, Verdict
from capability_matrix.ingestion.models import AttemptRecord


class EvidenceNoteFormatter:
    """Formats evidence buckets for display. Never feeds back into resolution."""

    def __init__(
        self,
        catalog: DimensionCatalog = DEFAULT_CATALOG,
        max_examples: int = 2,
        date_format: str = "%Y-%m-%d",
    ) -> None:
        self._catalog = catalog
        self._max_examples = max(1, max_examples)
        self._date_format = date_format

    def attempt_label(self, attempt: AttemptRecord) -> str:
        """``date · payment method · card network`` with missing parts dropped."""
        parts = []
        ts = attempt.effective_time
        if ts is not None:
            parts.append(ts.strftime(self._date_format))
        for dimension in ("payment_method", "card_network"):
            raw = attempt.tag(dimension)
            if not raw:
                continue
            key = self._catalog.normalize(dimension, raw)
            parts.append(self._catalog.label(dimension, key) if key else raw)
        return " · ".join(parts)

    def list_label(self, attempts: list[AttemptRecord]) -> str:
        if not attempts:
            return ""
        shown = [self.attempt_label(a) or a.attempt_id for a in attempts[: self._max_examples]]
        hidden = len(attempts) - len(shown)
        more = f" +{hidden} more" if hidden > 0 else ""
        return " / ".join(shown) + more

    def summarize(self, bucket: EvidenceBucket, inferred: Verdict) -> Optional[str]:
        supporting = self.list_label(bucket.supporting)
        refuting = self.list_label(bucket.refuting)

        if inferred.has_conflict:
            parts = []
            if supporting:
                parts.append(f"Supporting: {supporting}")
            if refuting:
                parts.append(f"Refuting: {refuting}")
            return "; ".join(parts) or None

        if inferred.state == ThreeState.SUPPORTED and supporting:
            return f"Attempts: {supporting}"
        if inferred.state == ThreeState.UNSUPPORTED and refuting:
            return f"Failures: {refuting}"
        return None
