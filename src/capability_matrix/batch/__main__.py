"""Batch reconciliation entry point.

Usage: python -m capability_matrix.batch [TERMINAL_ID ...]

Reconciles every terminal in the Record Store (or the given ones) and records
a run for each terminal whose snapshot changed since its last run.

Configure via environment variables:
    CAPMATRIX_DB                 - Database path (e.g., md:capability_matrix)
    MOTHERDUCK_TOKEN             - MotherDuck authentication token
    CAPMATRIX_EVIDENCE_EXAMPLES  - Attempts named per evidence note (default: 2)
    CAPMATRIX_POLL_INTERVAL      - Seconds between passes; 0 runs once (default: 0)
    CAPMATRIX_LOG_LEVEL          - Logging level (default: INFO)
"""

from __future__ import annotations

import logging
import signal
import sys
import time

from capability_matrix.batch.processor import BatchProcessor
from capability_matrix.config.settings import EngineSettings
from capability_matrix.storage.database import Database

settings = EngineSettings.from_env()

logging.basicConfig(
    level=settings.log_level if not settings.validate() else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger("capability_batch")


def main() -> None:
    errors = settings.validate()
    if errors:
        for err in errors:
            logger.error("Config error: %s", err)
        sys.exit(1)

    terminal_ids = sys.argv[1:]
    logger.info("Batch reconciliation starting")
    logger.info("  Database: %s", settings.db_path)
    if terminal_ids:
        logger.info("  Terminals: %s", ", ".join(terminal_ids))

    running = True

    def _handle_signal(signum, frame):
        nonlocal running
        logger.info("Shutting down...")
        running = False

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    with Database(settings.db_path) as db:
        processor = BatchProcessor(db, settings)
        result = processor.run(terminal_ids)
        while running and settings.poll_interval > 0:
            time.sleep(settings.poll_interval)
            if running:
                result = processor.run(terminal_ids)

    logger.info("Batch stopped.")
    if not result.ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
