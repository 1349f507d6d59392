"""DuckDB table definitions for the Record Store."""

SCHEMA_DDL = """
-- Terminals and their declared configuration document
CREATE TABLE IF NOT EXISTS terminals (
    terminal_id     TEXT PRIMARY KEY,
    name            TEXT,
    config_json     TEXT,
    config_version  INTEGER DEFAULT 1,
    updated_at      TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

-- Field observations, one row per attempt
CREATE TABLE IF NOT EXISTS pos_attempts (
    attempt_id            TEXT PRIMARY KEY,
    terminal_id           TEXT NOT NULL,
    result                TEXT NOT NULL,
    is_conclusive_failure BOOLEAN DEFAULT FALSE,
    card_network          TEXT,
    payment_method        TEXT,
    cvm                   TEXT,
    acquiring_mode        TEXT,
    checkout_location     TEXT,
    acquiring_institution TEXT,
    device_status         TEXT,
    card_name             TEXT,
    attempt_number        INTEGER,
    user_id               TEXT,
    notes                 TEXT,
    attempted_at          TIMESTAMP,
    created_at            TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_pos_attempts_terminal ON pos_attempts(terminal_id);

-- Log of computed matrices; never written back into terminals.config_json
CREATE TABLE IF NOT EXISTS reconciliation_runs (
    run_id            TEXT PRIMARY KEY,
    terminal_id       TEXT NOT NULL,
    snapshot_key      TEXT NOT NULL,
    catalog_version   TEXT,
    attempt_count     INTEGER,
    supported_count   INTEGER,
    unsupported_count INTEGER,
    unknown_count     INTEGER,
    conflict_count    INTEGER,
    matrix_json       TEXT,
    created_at        TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""

# Columns added to a released schema: (table, column, type). New columns go
# both here and in SCHEMA_DDL so fresh and existing databases end up alike.
MIGRATION_COLUMNS: list[tuple[str, str, str]] = []
