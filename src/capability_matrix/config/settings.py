"""Engine settings from environment variables."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

DEFAULT_DB_PATH = "./data/capability_matrix.duckdb"


@dataclass
class EngineSettings:
    """Configuration for reconciliation runs and their presentation."""

    # Record Store location (local DuckDB file or md:name for MotherDuck)
    db_path: str = DEFAULT_DB_PATH
    # Max attempts named in an evidence note before "+N more"
    evidence_examples: int = 2
    # strftime format for attempt dates in evidence notes
    date_format: str = "%Y-%m-%d"
    log_level: str = "INFO"
    # Seconds between batch passes; 0 runs a single pass
    poll_interval: int = 0

    @classmethod
    def from_env(cls) -> EngineSettings:
        """Load settings from environment variables."""
        return cls(
            db_path=os.environ.get("CAPMATRIX_DB", DEFAULT_DB_PATH),
            evidence_examples=int(os.environ.get("CAPMATRIX_EVIDENCE_EXAMPLES", "2")),
            date_format=os.environ.get("CAPMATRIX_DATE_FORMAT", "%Y-%m-%d"),
            log_level=os.environ.get("CAPMATRIX_LOG_LEVEL", "INFO").upper(),
            poll_interval=int(os.environ.get("CAPMATRIX_POLL_INTERVAL", "0")),
        )

    def validate(self) -> list[str]:
        """Return list of validation errors, empty if settings are valid."""
        errors = []
        if not self.db_path:
            errors.append("CAPMATRIX_DB must not be empty")
        if self.evidence_examples < 1:
            errors.append("CAPMATRIX_EVIDENCE_EXAMPLES must be at least 1")
        if self.poll_interval < 0:
            errors.append("CAPMATRIX_POLL_INTERVAL must not be negative")
        if not isinstance(logging.getLevelName(self.log_level), int):
            errors.append(f"CAPMATRIX_LOG_LEVEL is not a logging level: {self.log_level}")
        return errors
