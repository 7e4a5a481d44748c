# SQL schema for the reprise card store

from reprise.domain.constants import SCHEMA_VERSION

# A NULL due_date (with review_count = 0) marks a card that was never reviewed.
SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS cards (
    card_hash TEXT PRIMARY KEY,
    added_at TEXT NOT NULL,
    last_reviewed_at TEXT,
    stability REAL,
    difficulty REAL,
    interval_raw REAL,
    interval_days INTEGER NOT NULL DEFAULT 0,
    due_date TEXT,
    review_count INTEGER NOT NULL DEFAULT 0 CHECK(review_count >= 0)
);
"""

INDEXES_SQL = """
CREATE INDEX IF NOT EXISTS idx_cards_due ON cards (due_date);
"""

__all__ = ["SCHEMA_SQL", "INDEXES_SQL", "SCHEMA_VERSION"]
