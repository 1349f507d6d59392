"""Report generation: JSON-ready views of a resolved capability matrix."""

from __future__ import annotations

from typing import Optional

from capability_matrix.config.catalog import DEFAULT_CATALOG, DimensionCatalog
from capability_matrix.engine.matrix import related_attempts, snapshot_key
from capability_matrix.engine.models import CapabilityMatrix, ResolvedCapabilityItem, Summary
from capability_matrix.engine.summary import attempt_stats
from capability_matrix.ingestion.models import AttemptRecord, TerminalSnapshot


def item_to_dict(item: ResolvedCapabilityItem) -> dict:
    return {
        "dimension": item.dimension_key,
        "value": item.value_key,
        "label": item.label,
        "manual_state": item.manual_state.value,
        "inferred_state": item.inferred_state.value,
        "resolved_state": item.resolved_state.value,
        "has_conflict": item.has_conflict,
        "evidence_note": item.evidence_note,
        "manual_note": item.manual_note,
    }


def summary_to_dict(summary: Summary) -> dict:
    return {
        "supported_count": summary.supported_count,
        "unsupported_count": summary.unsupported_count,
        "unknown_count": summary.unknown_count,
        "conflict_count": summary.conflict_count,
    }


def matrix_to_dict(matrix: CapabilityMatrix) -> dict:
    """Plain-dict form of a matrix, states as strings."""
    sections = []
    for section in matrix.sections:
        entry = {
            "key": section.key,
            "title": section.title,
            "description": section.description,
            "operational": section.operational,
            "items": [item_to_dict(i) for i in section.items],
        }
        if section.groups:
            entry["groups"] = [
                {
                    "key": group.key,
                    "title": group.title,
                    "values": [i.value_key for i in group.items],
                }
                for group in section.groups
            ]
        sections.append(entry)
    return {"sections": sections, "summary": summary_to_dict(matrix.summary)}


def attempt_to_dict(attempt: AttemptRecord) -> dict:
    ts = attempt.effective_time
    return {
        "id": attempt.attempt_id,
        "outcome": attempt.outcome.value,
        "is_conclusive_failure": attempt.is_conclusive_failure,
        "time": ts.isoformat() if ts else None,
        "tags": dict(sorted(attempt.tags.items())),
        "author_id": attempt.author_id,
        "card_name": attempt.card_name,
        "notes": attempt.notes,
    }


class ReportGenerator:
    """Generates terminal reports around a computed matrix."""

    def __init__(self, catalog: DimensionCatalog = DEFAULT_CATALOG) -> None:
        self._catalog = catalog

    def generate(
        self,
        snapshot: TerminalSnapshot,
        matrix: CapabilityMatrix,
        key: Optional[str] = None,
    ) -> dict:
        """Build a report: terminal, cache key, attempt stats and matrix."""
        stats = attempt_stats(snapshot.attempts)
        report = {
            "terminal": {
                "id": snapshot.terminal_id,
                "name": snapshot.name,
                "config_version": snapshot.config_version,
                "has_manual_data": snapshot.config.has_manual_data,
            },
            "catalog_version": self._catalog.version,
            "snapshot_key": key or snapshot_key(snapshot.attempts, snapshot.config, self._catalog),
            "attempts": {
                "total": stats.total,
                "decisive": stats.decisive,
                "successes": stats.successes,
                "success_rate": round(stats.success_rate, 1),
            },
            "conflicts": [
                {"dimension": i.dimension_key, "value": i.value_key, "label": i.label}
                for i in matrix.conflicts
            ],
        }
        report.update(matrix_to_dict(matrix))
        return report

    def evidence_detail(
        self,
        snapshot: TerminalSnapshot,
        matrix: CapabilityMatrix,
        dimension: str,
        value: str,
    ) -> dict:
        """Drill-down for one item: its verdict and every related attempt."""
        key = self._catalog.normalize(dimension, value) or value
        item = matrix.item(dimension, key)
        attempts = related_attempts(snapshot.attempts, dimension, key, self._catalog)
        return {
            "item": item_to_dict(item) if item else None,
            "attempts": [attempt_to_dict(a) for a in attempts],
        }
