"""
Ports (interfaces) for card persistence.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from contextlib import AbstractContextManager
from datetime import datetime

from .models import MemoryState, ReviewedState, StoredCardRow


class CardStore(ABC):
    """
    Port for durable per-card memory state.

    Implementations:
        - SqliteCardStore: single-file SQLite database.
    """

    @abstractmethod
    def ensure(self, identity: str, now: datetime | None = None) -> None:
        """Register `identity` as a new card unless a row already exists."""

    @abstractmethod
    def ensure_batch(self, identities: Iterable[str], now: datetime | None = None) -> int:
        """
        Register every missing identity in one atomic unit.

        Returns:
            Number of rows actually inserted.
        """

    @abstractmethod
    def get(self, identity: str) -> MemoryState:
        """
        Point lookup of a card's memory state.

        Raises:
            CardNotFoundError: if the identity was never registered.
        """

    @abstractmethod
    def get_row(self, identity: str) -> StoredCardRow:
        """Like `get`, but returns the full stored row."""

    @abstractmethod
    def apply_update(self, identity: str, state: ReviewedState) -> bool:
        """
        Persist a reviewed state.

        Returns:
            False if no row matched the identity.
        """

    @abstractmethod
    def scan_due(self, as_of: datetime) -> Iterator[tuple[str, int]]:
        """Yield (identity, review_count) for every new card or card due at `as_of`."""

    @abstractmethod
    def scan_all(self) -> Iterator[StoredCardRow]:
        """Yield every stored row."""

    @abstractmethod
    def count(self) -> int:
        """Total number of stored rows."""

    @abstractmethod
    def transaction(self) -> AbstractContextManager[None]:
        """Serialize a read-modify-write sequence against the store."""
