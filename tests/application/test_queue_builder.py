from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from reprise.application.queue_builder import select_due
from reprise.application.scheduler import Scheduler
from reprise.domain.models import NewState, ReviewGrade


@pytest.fixture
def cards(make_card):
    return [make_card(f"question {i}") for i in range(6)]


def _fake_store(scan):
    store = MagicMock()
    store.scan_due.return_value = iter(scan)
    return store


def _review(store, identity, when, grade=ReviewGrade.GOOD):
    store.apply_update(identity, Scheduler().update(NewState(), grade, when))


def test_empty_known_set_returns_nothing(store, cards, t0):
    """Test that no session is built when no cards are known."""
    store.ensure_batch([c.identity for c in cards], now=t0)
    assert select_due(store, {}, as_of=t0) == []


def test_all_new_cards_are_due(store, cards, known_set, t0):
    known = known_set(*cards)
    store.ensure_batch(known, now=t0)

    session = select_due(store, known, as_of=t0)

    assert sorted(c.identity for c in session) == sorted(known)


def test_stale_rows_are_skipped(store, cards, known_set, t0):
    """Test that rows for cards removed from files are skipped."""
    store.ensure_batch([c.identity for c in cards], now=t0)
    known = known_set(*cards[:2])

    session = select_due(store, known, as_of=t0)

    assert {c.identity for c in session} == set(known)


def test_future_cards_are_not_selected(store, cards, known_set, t0):
    """Test that cards due later than as_of are left out."""
    known = known_set(*cards[:3])
    store.ensure_batch(known, now=t0)
    _review(store, cards[0].identity, t0, ReviewGrade.EASY)

    session = select_due(store, known, as_of=t0 + timedelta(days=1))

    assert cards[0] not in session
    assert len(session) == 2


def test_card_limit(store, cards, known_set, t0):
    known = known_set(*cards)
    store.ensure_batch(known, now=t0)

    assert len(select_due(store, known, card_limit=4, as_of=t0)) == 4


def test_new_card_limit_counts_only_new_cards(store, cards, known_set, t0):
    """Test that reviewed cards do not use up the new-card limit."""
    known = known_set(*cards)
    store.ensure_batch(known, now=t0)
    for card in cards[:2]:
        _review(store, card.identity, t0 - timedelta(days=30))

    session = select_due(store, known, new_card_limit=1, as_of=t0)

    # Reviewed cards come first, then a single new card stops the scan.
    assert len(session) == 3
    assert set(session[:2]) == set(cards[:2])


@pytest.mark.parametrize("card_limit, new_card_limit", [(0, None), (None, 0), (0, 0)])
def test_zero_limits_give_empty_session(store, cards, known_set, t0, card_limit, new_card_limit):
    """Test that a limit of 0 produces an empty session."""
    known = known_set(*cards)
    store.ensure_batch(known, now=t0)
    assert select_due(store, known, card_limit, new_card_limit, as_of=t0) == []


def test_scan_stops_at_first_limit_reached(cards, known_set, t0):
    """Test that the scan stops once the new-card limit is hit."""
    known = known_set(*cards)
    a, b, c, d, e, _ = cards
    store = _fake_store(
        [(a.identity, 0), (b.identity, 3), (c.identity, 0), (d.identity, 2), (e.identity, 0)]
    )

    session = select_due(store, known, card_limit=10, new_card_limit=2, as_of=t0)

    assert session == [a, b, c]


def test_card_limit_wins_when_reached_first(cards, known_set, t0):
    """Test that the scan stops once the total limit is hit."""
    known = known_set(*cards)
    a, b, c, *_ = cards
    store = _fake_store([(a.identity, 1), (b.identity, 1), (c.identity, 0)])

    session = select_due(store, known, card_limit=2, new_card_limit=5, as_of=t0)

    assert session == [a, b]


def test_stale_rows_do_not_count_towards_limits(cards, known_set, t0):
    """Test that skipped rows are not counted against either limit."""
    known = known_set(*cards[:2])
    stale = cards[5]
    store = _fake_store(
        [
            (stale.identity, 0),
            (cards[0].identity, 0),
            (stale.identity + "x", 0),
            (cards[1].identity, 0),
        ]
    )

    session = select_due(store, known, new_card_limit=2, as_of=t0)

    assert session == cards[:2]


@pytest.mark.parametrize("card_limit", [1, 2, 3, None])
@pytest.mark.parametrize("new_card_limit", [1, 2, None])
def test_limits_are_never_exceeded(store, cards, known_set, t0, card_limit, new_card_limit):
    """Test that no combination of limits is exceeded."""
    known = known_set(*cards)
    store.ensure_batch(known, now=t0)
    for card in cards[:3]:
        _review(store, card.identity, t0 - timedelta(days=20))

    session = select_due(store, known, card_limit, new_card_limit, as_of=t0)
    new_in_session = [c for c in session if store.get(c.identity) == NewState()]

    if card_limit is not None:
        assert len(session) <= card_limit
    if new_card_limit is not None:
        assert len(new_in_session) <= new_card_limit
    assert all(c.identity in known for c in session)
