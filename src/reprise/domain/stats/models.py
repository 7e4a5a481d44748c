"""
Domain models for collection statistics.

These are pure data structures with no I/O or external dependencies.
"""

import math
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from pathlib import Path

from ..constants import HISTOGRAM_BINS


class CardLifecycle(str, Enum):
    NEW = "new"
    YOUNG = "young"
    MATURE = "mature"


class Histogram:
    """
    Fixed number of equal-width buckets over [0, 1].

    Values are clamped into range before bucketing; the running sum uses
    the raw value.
    """

    def __init__(self, bins: int = HISTOGRAM_BINS):
        if bins < 1:
            raise ValueError(f"Histogram needs at least one bin, got {bins}")
        self.bins = [0] * bins
        self.count = 0
        self.sum = 0.0

    def update(self, value: float) -> None:
        n = len(self.bins)
        clamped = min(1.0, max(0.0, value))
        idx = min(n - 1, math.floor(clamped * n))
        self.bins[idx] += 1
        self.count += 1
        self.sum += value

    def mean(self) -> float:
        """Mean of all recorded values. Raises ZeroDivisionError when empty."""
        return self.sum / self.count

    def __repr__(self) -> str:
        return f"Histogram(bins={self.bins}, count={self.count})"


@dataclass
class CollectionStats:
    """
    Aggregate view of the card store restricted to the known-card set.

    Attributes:
        total_rows: Every row in the store, stale ones included.
        num_cards: Rows whose identity is currently known.
        lifecycles: Count per CardLifecycle.
        due_now: Cards with no due date or due at or before as_of.
        overdue: Reviewed cards whose due date is strictly before as_of.
        upcoming_week: Cards due within 7 days, per local calendar date (ascending).
        upcoming_month: Cards due within 30 days.
        file_paths: Cards per source file.
    """

    total_rows: int = 0
    num_cards: int = 0
    lifecycles: dict[CardLifecycle, int] = field(default_factory=dict)
    due_now: int = 0
    overdue: int = 0
    upcoming_week: dict[date, int] = field(default_factory=dict)
    upcoming_month: int = 0
    file_paths: dict[Path, int] = field(default_factory=dict)
    difficulty_histogram: Histogram = field(default_factory=Histogram)
    retrievability_histogram: Histogram = field(default_factory=Histogram)

    @property
    def new_cards(self) -> int:
        return self.lifecycles.get(CardLifecycle.NEW, 0)

    @property
    def reviewed_cards(self) -> int:
        return self.num_cards - self.new_cards
