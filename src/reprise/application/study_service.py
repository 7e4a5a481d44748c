"""
Study Service: Application layer orchestrator.

Coordinates the card store, the scheduler, the queue builder and the
statistics aggregator.
"""

import logging
from collections.abc import Callable, Mapping
from datetime import datetime, timezone, tzinfo

from reprise.domain.errors import CardNotFoundError
from reprise.domain.models import Card, ReviewedState, ReviewGrade
from reprise.domain.ports import CardStore
from reprise.domain.stats.models import CollectionStats

from .queue_builder import select_due
from .scheduler import Scheduler
from .stats.aggregator import aggregate

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class StudyService:
    """
    Application service for registering cards, building sessions and
    recording reviews.

    Follows Dependency Inversion: depends on the CardStore abstraction,
    not the SQLite adapter.
    """

    def __init__(
        self,
        store: CardStore,
        scheduler: Scheduler | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Args:
            store: The repository (port) holding memory states.
            scheduler: Optional custom scheduler; uses default parameters if not provided.
            clock: Source of "now"; injectable for tests.
        """
        self._store = store
        self._scheduler = scheduler or Scheduler()
        self._clock = clock

    @property
    def store(self) -> CardStore:
        return self._store

    def register(self, known: Mapping[str, Card]) -> int:
        """Ensure a row exists for every known card. Returns the number of new rows."""
        return self._store.ensure_batch(known.keys(), now=self._clock())

    def due_session(
        self,
        known: Mapping[str, Card],
        card_limit: int | None = None,
        new_card_limit: int | None = None,
        as_of: datetime | None = None,
    ) -> list[Card]:
        return select_due(
            self._store,
            known,
            card_limit=card_limit,
            new_card_limit=new_card_limit,
            as_of=as_of or self._clock(),
        )

    def record_review(
        self,
        identity: str,
        grade: ReviewGrade,
        now: datetime | None = None,
    ) -> ReviewedState:
        """
        Apply a review and persist the new state as one transaction.

        Raises:
            CardNotFoundError: if the card was never registered.
        """
        now = now or self._clock()
        with self._store.transaction():
            current = self._store.get(identity)
            new_state = self._scheduler.update(current, grade, now)
            if not self._store.apply_update(identity, new_state):
                raise CardNotFoundError(identity)

        logger.debug(
            f"Reviewed {identity[:12]} as {grade.name}: next due "
            f"{new_state.due_date.isoformat()} ({new_state.interval_days}d)"
        )
        return new_state

    def collection_stats(
        self,
        known: Mapping[str, Card],
        as_of: datetime | None = None,
        tz: tzinfo | None = None,
    ) -> CollectionStats:
        return aggregate(
            known,
            self._store.scan_all(),
            as_of or self._clock(),
            tz=tz,
            params=self._scheduler.params,
        )


def find_card(known: Mapping[str, Card], identity_prefix: str) -> Card:
    """
    Resolve a full identity or an unambiguous prefix of one.

    Raises:
        CardNotFoundError: if nothing or more than one card matches.
    """
    if identity_prefix in known:
        return known[identity_prefix]
    if not identity_prefix:
        raise CardNotFoundError(identity_prefix)
    matches = [card for identity, card in known.items() if identity.startswith(identity_prefix)]
    if len(matches) != 1:
        raise CardNotFoundError(identity_prefix)
    return matches[0]
