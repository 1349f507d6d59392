"""Batch processor - reconciles terminals from the Record Store and logs each run."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from capability_matrix.config.catalog import DEFAULT_CATALOG, DimensionCatalog
from capability_matrix.config.settings import EngineSettings
from capability_matrix.engine.matrix import CapabilityMatrixBuilder, snapshot_key
from capability_matrix.reporting.notes import EvidenceNoteFormatter
from capability_matrix.reporting.report_generator import matrix_to_dict, summary_to_dict
from capability_matrix.storage.database import Database
from capability_matrix.storage.repositories import (
    ReconciliationRunRepo,
    SnapshotReader,
    TerminalRepo,
)

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    reconciled: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class BatchProcessor:
    """Runs reconciliation for many terminals.

    Each terminal is read as one snapshot before computing. Terminals whose
    snapshot key equals the key of their latest run are skipped.
    """

    def __init__(
        self,
        db: Database,
        settings: Optional[EngineSettings] = None,
        catalog: DimensionCatalog = DEFAULT_CATALOG,
    ) -> None:
        self._db = db
        self._settings = settings or EngineSettings()
        self._catalog = catalog
        self._reader = SnapshotReader(db, catalog)
        self._runs = ReconciliationRunRepo(db)
        self._builder = CapabilityMatrixBuilder(
            catalog,
            note_formatter=EvidenceNoteFormatter(
                catalog,
                max_examples=self._settings.evidence_examples,
                date_format=self._settings.date_format,
            ),
        )

    def run(self, terminal_ids: Optional[Iterable[str]] = None, force: bool = False) -> BatchResult:
        ids = list(terminal_ids) if terminal_ids else TerminalRepo(self._db).list_ids()
        result = BatchResult()
        for terminal_id in ids:
            try:
                outcome = self.process_terminal(terminal_id, force=force)
            except Exception as e:
                logger.error("Failed to reconcile terminal %s: %s", terminal_id, e, exc_info=True)
                result.failed.append(terminal_id)
                continue
            if outcome is None:
                result.skipped.append(terminal_id)
            else:
                result.reconciled.append(terminal_id)

        logger.info(
            "Batch complete: %d reconciled, %d unchanged, %d failed",
            len(result.reconciled), len(result.skipped), len(result.failed),
        )
        return result

    def process_terminal(self, terminal_id: str, force: bool = False) -> Optional[str]:
        """Reconcile one terminal. Returns the new run ID, or None if skipped."""
        snapshot = self._reader.read(terminal_id)
        if snapshot is None:
            raise LookupError(f"Unknown terminal: {terminal_id}")

        key = snapshot_key(snapshot.attempts, snapshot.config, self._catalog)
        latest = self._runs.latest(terminal_id)
        if not force and latest and latest["snapshot_key"] == key:
            logger.info("Skipping %s (snapshot unchanged, key=%s...)", terminal_id, key[:12])
            return None

        matrix = self._builder.build(snapshot.attempts, snapshot.config)
        run_id = self._runs.insert(
            terminal_id,
            key,
            summary_to_dict(matrix.summary),
            matrix_to_dict(matrix),
            attempt_count=len(snapshot.attempts),
            catalog_version=self._catalog.version,
        )
        summary = matrix.summary
        logger.info(
            "Reconciled %s: %d attempts -> %d supported, %d unsupported, %d unknown, %d conflicts",
            terminal_id,
            len(snapshot.attempts),
            summary.supported_count,
            summary.unsupported_count,
            summary.unknown_count,
            summary.conflict_count,
        )
        return run_id
