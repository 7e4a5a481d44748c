"""
SQLite Card Store: Infrastructure adapter for the CardStore port.

One row per card identity in a single database file. Reviewed-state columns
are NULL (and review_count is 0) until the first review.
"""

import logging
import sqlite3
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from reprise.domain.errors import CardNotFoundError, InvalidStateError, StoreUnavailableError
from reprise.domain.models import (
    MemoryState,
    NewState,
    ReviewedState,
    StoredCardRow,
    ensure_utc,
)
from reprise.domain.ports import CardStore

from .schema import INDEXES_SQL, SCHEMA_SQL, SCHEMA_VERSION

logger = logging.getLogger(__name__)

# Keeps IN (...) lists under SQLite's bound-parameter limit.
LOOKUP_CHUNK = 500

ROW_COLUMNS = (
    "card_hash, added_at, last_reviewed_at, stability, difficulty, "
    "interval_raw, interval_days, due_date, review_count"
)


def encode_ts(value: datetime) -> str:
    """Fixed-width UTC ISO-8601, so text order equals time order."""
    return ensure_utc(value).isoformat(timespec="microseconds")


def decode_ts(value: str) -> datetime:
    return ensure_utc(datetime.fromisoformat(value))


class SqliteCardStore(CardStore):
    """
    Card store backed by a single SQLite file.

    Creates the parent directory and the schema on first use. All access goes
    through one connection guarded by a re-entrant lock; `transaction()`
    takes SQLite's write lock up front (BEGIN IMMEDIATE).
    """

    def __init__(self, db_path: Path | str):
        self.db_path = db_path
        self._lock = threading.RLock()
        self._depth = 0
        self.conn = self._connect()

    def _connect(self) -> sqlite3.Connection:
        in_memory = str(self.db_path) == ":memory:"
        try:
            if not in_memory:
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(
                str(self.db_path), isolation_level=None, check_same_thread=False
            )
            conn.row_factory = sqlite3.Row
            self._init_schema(conn)
        except (OSError, sqlite3.Error) as e:
            raise StoreUnavailableError(f"Cannot open card store at {self.db_path}: {e}") from e
        return conn

    def _init_schema(self, conn: sqlite3.Connection) -> None:
        row = conn.execute(
            "SELECT COUNT(*) FROM sqlite_master WHERE type='table' AND name='cards'"
        ).fetchone()
        if row[0] == 0:
            logger.info(f"Creating card store schema in {self.db_path}")
        conn.executescript(SCHEMA_SQL)
        conn.executescript(INDEXES_SQL)
        current = conn.execute("PRAGMA user_version").fetchone()[0]
        if current != SCHEMA_VERSION:
            conn.execute(f"PRAGMA user_version = {int(SCHEMA_VERSION)}")

    def close(self) -> None:
        with self._lock:
            self.conn.close()

    def __enter__(self) -> "SqliteCardStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @contextmanager
    def _guard(self):
        """Hold the connection lock and surface SQLite failures as StoreUnavailableError."""
        with self._lock:
            try:
                yield self.conn
            except sqlite3.Error as e:
                raise StoreUnavailableError(f"Card store query failed: {e}") from e

    @contextmanager
    def transaction(self):
        """
        Run the enclosed operations as one SQLite transaction.

        Nested calls join the outer transaction. Any exception rolls the whole
        transaction back and propagates.
        """
        with self._guard() as conn:
            if self._depth > 0:
                self._depth += 1
                try:
                    yield
                finally:
                    self._depth -= 1
                return

            conn.execute("BEGIN IMMEDIATE")
            self._depth = 1
            try:
                yield
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise
            else:
                try:
                    conn.execute("COMMIT")
                except sqlite3.Error:
                    # A busy COMMIT leaves the transaction open.
                    if conn.in_transaction:
                        conn.execute("ROLLBACK")
                    raise
            finally:
                self._depth = 0

    def ensure(self, identity: str, now: datetime | None = None) -> None:
        added_at = encode_ts(now or datetime.now(timezone.utc))
        with self._guard() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO cards (card_hash, added_at) VALUES (?, ?)",
                (identity, added_at),
            )

    def ensure_batch(self, identities: Iterable[str], now: datetime | None = None) -> int:
        wanted = list(dict.fromkeys(identities))
        if not wanted:
            return 0
        added_at = encode_ts(now or datetime.now(timezone.utc))

        with self.transaction(), self._guard() as conn:
            existing = self._existing(conn, wanted)
            missing = [identity for identity in wanted if identity not in existing]
            conn.executemany(
                "INSERT OR IGNORE INTO cards (card_hash, added_at) VALUES (?, ?)",
                [(identity, added_at) for identity in missing],
            )

        if missing:
            logger.info(f"Registered {len(missing)} new cards ({len(existing)} already known)")
        return len(missing)

    def _existing(self, conn: sqlite3.Connection, identities: list[str]) -> set[str]:
        found: set[str] = set()
        for start in range(0, len(identities), LOOKUP_CHUNK):
            chunk = identities[start : start + LOOKUP_CHUNK]
            placeholders = ",".join("?" for _ in chunk)
            rows = conn.execute(
                f"SELECT card_hash FROM cards WHERE card_hash IN ({placeholders})", chunk
            )
            found.update(row["card_hash"] for row in rows)
        return found

    def get(self, identity: str) -> MemoryState:
        return self.get_row(identity).state

    def get_row(self, identity: str) -> StoredCardRow:
        with self._guard() as conn:
            row = conn.execute(
                f"SELECT {ROW_COLUMNS} FROM cards WHERE card_hash = ?", (identity,)
            ).fetchone()
        if row is None:
            raise CardNotFoundError(identity)
        return self._to_row(row)

    def apply_update(self, identity: str, state: ReviewedState) -> bool:
        if not isinstance(state, ReviewedState):
            raise InvalidStateError(f"Only reviewed states can be persisted, got {state!r}")
        with self._guard() as conn:
            cursor = conn.execute(
                """
                UPDATE cards
                SET
                    last_reviewed_at = ?,
                    stability = ?,
                    difficulty = ?,
                    interval_raw = ?,
                    interval_days = ?,
                    due_date = ?,
                    review_count = ?
                WHERE card_hash = ?
                """,
                (
                    encode_ts(state.last_reviewed_at),
                    state.stability,
                    state.difficulty,
                    state.interval_raw,
                    state.interval_days,
                    encode_ts(state.due_date),
                    state.review_count,
                    identity,
                ),
            )
        return cursor.rowcount > 0

    def scan_due(self, as_of: datetime) -> Iterator[tuple[str, int]]:
        # New cards come after reviewed ones; reviewed cards most overdue first.
        with self._guard() as conn:
            rows = conn.execute(
                """
                SELECT card_hash, review_count
                FROM cards
                WHERE review_count = 0 OR due_date IS NULL OR due_date <= ?
                ORDER BY due_date IS NULL, due_date, added_at, card_hash
                """,
                (encode_ts(as_of),),
            ).fetchall()
        for row in rows:
            yield row["card_hash"], row["review_count"]

    def scan_all(self) -> Iterator[StoredCardRow]:
        with self._guard() as conn:
            rows = conn.execute(
                f"SELECT {ROW_COLUMNS} FROM cards ORDER BY added_at, card_hash"
            ).fetchall()
        for row in rows:
            yield self._to_row(row)

    def count(self) -> int:
        with self._guard() as conn:
            return conn.execute("SELECT COUNT(*) FROM cards").fetchone()[0]

    @staticmethod
    def _to_row(row: sqlite3.Row) -> StoredCardRow:
        state: MemoryState
        if row["review_count"] == 0:
            state = NewState()
        else:
            if row["due_date"] is None or row["last_reviewed_at"] is None:
                raise InvalidStateError(
                    f"Reviewed card {row['card_hash']} is missing its review timestamps"
                )
            state = ReviewedState(
                stability=row["stability"],
                difficulty=row["difficulty"],
                interval_raw=row["interval_raw"],
                interval_days=row["interval_days"],
                due_date=decode_ts(row["due_date"]),
                review_count=row["review_count"],
                last_reviewed_at=decode_ts(row["last_reviewed_at"]),
            )
        return StoredCardRow(
            identity=row["card_hash"],
            added_at=decode_ts(row["added_at"]),
            state=state,
        )
