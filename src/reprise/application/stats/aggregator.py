"""
Collection statistics over the card store.

This is a pure computation module with no I/O.
"""

from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta, tzinfo

from reprise.application.config import SchedulerParameters
from reprise.application.scheduler import DEFAULT_PARAMETERS, elapsed_days_between, recall
from reprise.domain.constants import UPCOMING_MONTH_DAYS, UPCOMING_WEEK_DAYS
from reprise.domain.models import Card, StoredCardRow, ensure_utc
from reprise.domain.stats.models import CardLifecycle, CollectionStats, Histogram


def classify(row: StoredCardRow, params: SchedulerParameters = DEFAULT_PARAMETERS) -> CardLifecycle:
    if row.is_new:
        return CardLifecycle.NEW
    if row.interval_raw > params.mature_interval_days:
        return CardLifecycle.MATURE
    return CardLifecycle.YOUNG


def aggregate(
    known: Mapping[str, Card],
    rows: Iterable[StoredCardRow],
    as_of: datetime,
    tz: tzinfo | None = None,
    params: SchedulerParameters = DEFAULT_PARAMETERS,
) -> CollectionStats:
    """
    Tally lifecycle, due forecasts and histograms for rows present in `known`.

    Rows for identities outside `known` only count towards `total_rows`.
    Per-day buckets use the calendar date in `tz` (system local zone if None).
    """
    as_of = ensure_utc(as_of)
    week_horizon = as_of + timedelta(days=UPCOMING_WEEK_DAYS)
    month_horizon = as_of + timedelta(days=UPCOMING_MONTH_DAYS)

    stats = CollectionStats(
        difficulty_histogram=Histogram(params.histogram_bins),
        retrievability_histogram=Histogram(params.histogram_bins),
    )

    for row in rows:
        stats.total_rows += 1
        card = known.get(row.identity)
        if card is None:
            continue

        stats.num_cards += 1
        stats.file_paths[card.origin] = stats.file_paths.get(card.origin, 0) + 1

        lifecycle = classify(row, params)
        stats.lifecycles[lifecycle] = stats.lifecycles.get(lifecycle, 0) + 1

        due_date = row.due_date
        if due_date is None or due_date <= as_of:
            stats.due_now += 1
            if due_date is not None and due_date < as_of:
                stats.overdue += 1
        else:
            if due_date <= week_horizon:
                day = due_date.astimezone(tz).date()
                stats.upcoming_week[day] = stats.upcoming_week.get(day, 0) + 1
            if due_date <= month_horizon:
                stats.upcoming_month += 1

        # New cards count as difficulty 0.
        stats.difficulty_histogram.update((row.difficulty or 0.0) / params.difficulty_scale)
        if row.is_new:
            continue

        elapsed = elapsed_days_between(row.last_reviewed_at, as_of)
        stats.retrievability_histogram.update(recall(elapsed, row.stability, params))

    stats.upcoming_week = dict(sorted(stats.upcoming_week.items()))
    return stats
