"""
Domain models for the scheduling engine.

These are pure data structures with no I/O or external dependencies.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import IntEnum
from pathlib import Path

from .constants import DIFFICULTY_MAX, DIFFICULTY_MIN
from .errors import InvalidStateError


def ensure_utc(value: datetime) -> datetime:
    """Return `value` as an aware UTC datetime. Naive values are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ReviewGrade(IntEnum):
    """Outcome the user assigns after seeing a card's answer."""

    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4

    @classmethod
    def parse(cls, value: "str | int | ReviewGrade") -> "ReviewGrade":
        """Accept a grade name (any case) or its number 1-4."""
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        if text.isdigit():
            try:
                return cls(int(text))
            except ValueError as e:
                raise InvalidStateError(f"Grade must be 1-4, got {text}") from e
        try:
            return cls[text.upper()]
        except KeyError as e:
            names = ", ".join(g.name.lower() for g in cls)
            raise InvalidStateError(f"Unknown grade {value!r} (expected one of {names})") from e


@dataclass(frozen=True)
class Card:
    """
    A flashcard as currently found in the user's files.

    Attributes:
        identity: Content hash; primary key of the card store.
        card_type: "basic" or "cloze".
        origin: File the card was read from.
        front: Prompt side.
        back: Answer side (may be empty for cloze cards).
    """

    identity: str
    card_type: str
    origin: Path
    front: str
    back: str = ""


@dataclass(frozen=True)
class NewState:
    """A card that has never been reviewed."""

    @property
    def review_count(self) -> int:
        return 0


@dataclass(frozen=True)
class ReviewedState:
    """
    Memory state of a card reviewed at least once.

    Attributes:
        stability: Days for recall probability to fall to the target retention.
        difficulty: Intrinsic hardness on a 1-10 scale.
        interval_raw: Unrounded interval (days) chosen at the last review.
        interval_days: Rounded interval, at least 1.
        due_date: last_reviewed_at + interval_days.
        review_count: Number of reviews so far, at least 1.
        last_reviewed_at: Time of the last review (UTC).
    """

    stability: float
    difficulty: float
    interval_raw: float
    interval_days: int
    due_date: datetime
    review_count: int
    last_reviewed_at: datetime

    def __post_init__(self):
        for name in ("stability", "difficulty", "interval_raw"):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or not math.isfinite(value):
                raise InvalidStateError(f"{name} must be finite, got {value!r}")
        if self.stability <= 0:
            raise InvalidStateError(f"stability must be positive, got {self.stability}")
        if self.interval_raw <= 0:
            raise InvalidStateError(f"interval_raw must be positive, got {self.interval_raw}")
        if not DIFFICULTY_MIN <= self.difficulty <= DIFFICULTY_MAX:
            raise InvalidStateError(
                f"difficulty must be within [{DIFFICULTY_MIN}, {DIFFICULTY_MAX}], "
                f"got {self.difficulty}"
            )
        if self.interval_days < 1:
            raise InvalidStateError(f"interval_days must be >= 1, got {self.interval_days}")
        if self.review_count < 1:
            raise InvalidStateError(f"review_count must be >= 1, got {self.review_count}")
        object.__setattr__(self, "due_date", ensure_utc(self.due_date))
        object.__setattr__(self, "last_reviewed_at", ensure_utc(self.last_reviewed_at))


MemoryState = NewState | ReviewedState


@dataclass(frozen=True)
class StoredCardRow:
    """Persisted form of a card's schedule, keyed by identity."""

    identity: str
    added_at: datetime
    state: MemoryState

    @property
    def review_count(self) -> int:
        return self.state.review_count

    @property
    def is_new(self) -> bool:
        return isinstance(self.state, NewState)

    @property
    def due_date(self) -> datetime | None:
        return None if self.is_new else self.state.due_date

    @property
    def last_reviewed_at(self) -> datetime | None:
        return None if self.is_new else self.state.last_reviewed_at

    @property
    def stability(self) -> float | None:
        return None if self.is_new else self.state.stability

    @property
    def difficulty(self) -> float | None:
        return None if self.is_new else self.state.difficulty

    @property
    def interval_raw(self) -> float | None:
        return None if self.is_new else self.state.interval_raw
