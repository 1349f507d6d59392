"""Capability matrix builder: runs the full reconciliation pipeline for one terminal."""

from __future__ import annotations

import dataclasses
import hashlib
import json
from dataclasses import dataclass
from typing import Iterable, Optional

from capability_matrix.config.catalog import DEFAULT_CATALOG, DimensionCatalog
from capability_matrix.engine.evidence import EvidenceAggregator, EvidenceIndex, newest_first
from capability_matrix.engine.fusion import fuse
from capability_matrix.engine.inference import infer_state
from capability_matrix.engine.manual import ManualStateNormalizer
from capability_matrix.engine.models import (
    CapabilityMatrix,
    EvidenceBucket,
    ResolvedCapabilityItem,
    Section,
    SectionGroup,
)
from capability_matrix.engine.summary import summarize
from capability_matrix.ingestion.models import AttemptRecord, ManualConfiguration
from capability_matrix.reporting.notes import EvidenceNoteFormatter


@dataclass(frozen=True)
class SectionSpec:
    key: str
    title: str
    description: str
    # (group key, group title, dimension key)
    groups: tuple[tuple[str, str, str], ...]
    operational: bool = False
    grouped: bool = False


SECTION_LAYOUT: tuple[SectionSpec, ...] = (
    SectionSpec(
        "network", "Card networks", "Configuration combined with attempt records",
        (("network", "Card networks", "card_network"),),
    ),
    SectionSpec(
        "payment-method", "Payment methods", "NFC / wallets / card entry",
        (("payment-method", "Payment methods", "payment_method"),),
    ),
    SectionSpec(
        "cvm", "Verification modes (CVM)", "No PIN / PIN / signature",
        (("cvm", "Verification modes", "verification_mode"),),
    ),
    SectionSpec(
        "acquiring-mode", "Acquiring modes", "DCC / EDC support",
        (("acquiring-mode", "Acquiring modes", "acquiring_mode"),),
    ),
    SectionSpec(
        "device-acquiring", "Device & acquiring", "Checkout location / acquiring institution",
        (
            ("checkout-location", "Checkout location", "checkout_location"),
            ("institution", "Acquiring institution", "acquiring_institution"),
        ),
        operational=True,
        grouped=True,
    ),
)


class CapabilityMatrixBuilder:
    """Builds a CapabilityMatrix from attempts and manual configuration.

    Stateless between calls: each ``build`` aggregates evidence afresh.
    """

    def __init__(
        self,
        catalog: DimensionCatalog = DEFAULT_CATALOG,
        note_formatter: Optional[EvidenceNoteFormatter] = None,
        layout: tuple[SectionSpec, ...] = SECTION_LAYOUT,
    ) -> None:
        self._catalog = catalog
        self._notes = note_formatter or EvidenceNoteFormatter(catalog)
        self._layout = layout
        self._aggregator = EvidenceAggregator(catalog)

    def build(
        self,
        attempts: Iterable[AttemptRecord],
        config: Optional[ManualConfiguration],
    ) -> CapabilityMatrix:
        evidence = self._aggregator.aggregate(attempts)
        manual = ManualStateNormalizer(config, self._catalog)

        sections = []
        for spec in self._layout:
            groups = [
                SectionGroup(
                    key=group_key,
                    title=group_title,
                    items=[
                        self.resolve_item(dimension, value, evidence, manual)
                        for value in self.values_for(dimension, evidence, manual)
                    ],
                )
                for group_key, group_title, dimension in spec.groups
            ]
            sections.append(Section(
                key=spec.key,
                title=spec.title,
                description=spec.description,
                items=[item for group in groups for item in group.items],
                groups=groups if spec.grouped else [],
                operational=spec.operational,
            ))

        return CapabilityMatrix(sections=sections, summary=summarize(sections))

    def values_for(
        self,
        dimension: str,
        evidence: EvidenceIndex,
        manual: ManualStateNormalizer,
    ) -> list[str]:
        """Values to resolve for a dimension.

        Enumerated dimensions use the catalog order. Open-ended dimensions use
        the declared value followed by every value seen in evidence; nothing
        else is manufactured.
        """
        dim = self._catalog.get(dimension)
        if not dim.open_ended:
            return dim.value_keys
        values = manual.declared_values(dimension)
        for value in self._aggregator.values_seen(evidence, dimension):
            if value not in values:
                values.append(value)
        return values

    def resolve_item(
        self,
        dimension: str,
        value: str,
        evidence: EvidenceIndex,
        manual: ManualStateNormalizer,
    ) -> ResolvedCapabilityItem:
        bucket = evidence.get((dimension, value)) or EvidenceBucket()
        inferred = infer_state(bucket)
        manual_state = manual.state(dimension, value)
        resolved = fuse(manual_state, inferred.state, inferred.has_conflict)

        return ResolvedCapabilityItem(
            dimension_key=dimension,
            value_key=value,
            label=self._catalog.label(dimension, value),
            manual_state=manual_state,
            inferred_state=inferred.state,
            resolved_state=resolved.state,
            has_conflict=resolved.has_conflict,
            evidence_note=self._notes.summarize(bucket, inferred),
            manual_note=manual.note(dimension, value),
        )


def reconcile(
    attempts: Iterable[AttemptRecord],
    config: Optional[ManualConfiguration],
    catalog: DimensionCatalog = DEFAULT_CATALOG,
) -> CapabilityMatrix:
    """Compute the capability matrix for one terminal snapshot."""
    return CapabilityMatrixBuilder(catalog).build(attempts, config)


def related_attempts(
    attempts: Iterable[AttemptRecord],
    dimension: str,
    value: str,
    catalog: DimensionCatalog = DEFAULT_CATALOG,
) -> list[AttemptRecord]:
    """Every attempt tagged with a value, any outcome, newest first."""
    return newest_first(
        a for a in attempts
        if catalog.normalize(dimension, a.tag(dimension)) == value
    )


def _attempt_fingerprint(attempt: AttemptRecord) -> list:
    return [
        attempt.attempt_id,
        attempt.outcome.value,
        attempt.is_conclusive_failure,
        sorted(attempt.tags.items()),
        attempt.occurred_at.isoformat() if attempt.occurred_at else None,
        attempt.recorded_at.isoformat() if attempt.recorded_at else None,
        attempt.author_id,
        attempt.notes,
        attempt.card_name,
    ]


def snapshot_key(
    attempts: Iterable[AttemptRecord],
    config: Optional[ManualConfiguration],
    catalog: DimensionCatalog = DEFAULT_CATALOG,
) -> str:
    """Stable cache key over both inputs; attempt order does not matter."""
    payload = {
        "catalog": catalog.version,
        "attempts": sorted((_attempt_fingerprint(a) for a in attempts), key=json.dumps),
        "config": dataclasses.asdict(config or ManualConfiguration()),
    }
    raw = json.dumps(payload, sort_keys=True, default=str, ensure_ascii=False)
    return hashlib.sha256(raw.encode()).hexdigest()
