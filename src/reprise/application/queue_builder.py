"""
Queue builder for study sessions.

Builds a bounded session by walking the store's due set:
1. Dropping identities that no longer exist in the user's files
2. Counting new (never reviewed) cards separately
3. Stopping as soon as either the total or the new-card limit is reached
"""

import logging
from collections.abc import Mapping
from datetime import datetime, timezone

from reprise.domain.models import Card, ensure_utc
from reprise.domain.ports import CardStore

logger = logging.getLogger(__name__)


def select_due(
    store: CardStore,
    known: Mapping[str, Card],
    card_limit: int | None = None,
    new_card_limit: int | None = None,
    as_of: datetime | None = None,
) -> list[Card]:
    """
    Select the cards to study in one session.

    Args:
        store: Card store providing the due set.
        known: Cards currently present in source files, by identity.
        card_limit: Maximum total cards (None = unbounded).
        new_card_limit: Maximum never-reviewed cards (None = unbounded).
        as_of: Instant used for the due check (default: now).

    Returns:
        Cards in the store's scan order.
    """
    as_of = ensure_utc(as_of or datetime.now(timezone.utc))
    cards: list[Card] = []
    if not known or _reached(0, card_limit) or _reached(0, new_card_limit):
        return cards

    new_count = 0
    stale = 0
    for identity, review_count in store.scan_due(as_of):
        card = known.get(identity)
        if card is None:
            stale += 1
            continue

        cards.append(card)
        if review_count == 0:
            new_count += 1

        if _reached(len(cards), card_limit) or _reached(new_count, new_card_limit):
            break

    logger.debug(f"Selected {len(cards)} cards ({new_count} new, {stale} stale rows skipped)")
    return cards


def _reached(count: int, limit: int | None) -> bool:
    return limit is not None and count >= limit
