"""
Memory model and review update algorithm.

This is a pure computation module with no I/O. The forgetting curve is

    R(t, S) = (1 + F * t / S) ** C

with F > 0 and C < 0, so R(0, S) == 1 and R decays towards 0. Stability and
difficulty evolve with the DSR update rules used by FSRS.
"""

import logging
import math
from datetime import datetime, timedelta

from reprise.application.config import SchedulerParameters
from reprise.domain.constants import DIFFICULTY_MAX, DIFFICULTY_MIN, SECONDS_PER_DAY
from reprise.domain.errors import InvalidStateError
from reprise.domain.models import (
    MemoryState,
    NewState,
    ReviewedState,
    ReviewGrade,
    ensure_utc,
)

logger = logging.getLogger(__name__)

DEFAULT_PARAMETERS = SchedulerParameters()


def _check_finite(name: str, value: float) -> None:
    if not math.isfinite(value):
        raise InvalidStateError(f"{name} must be finite, got {value!r}")


def recall(
    elapsed_days: float,
    stability: float,
    params: SchedulerParameters = DEFAULT_PARAMETERS,
) -> float:
    """
    Probability of recalling a card `elapsed_days` after its last review.

    Negative elapsed time counts as zero. The result is clamped to [0, 1].

    Raises:
        InvalidStateError: if stability is not a finite positive number or
            elapsed_days is not finite.
    """
    _check_finite("elapsed_days", elapsed_days)
    _check_finite("stability", stability)
    if stability <= 0:
        raise InvalidStateError(f"stability must be positive, got {stability}")

    elapsed = max(0.0, elapsed_days)
    r = (1.0 + params.decay_factor * elapsed / stability) ** params.decay_exponent
    return min(1.0, max(0.0, r))


def interval_for_retention(
    stability: float,
    target_retention: float,
    params: SchedulerParameters = DEFAULT_PARAMETERS,
) -> float:
    """Days until recall probability falls to `target_retention` (inverse of `recall`)."""
    if not 0.0 < target_retention < 1.0:
        raise InvalidStateError(f"target_retention must be in (0, 1), got {target_retention}")
    factor = (target_retention ** (1.0 / params.decay_exponent) - 1.0) / params.decay_factor
    return stability * factor


def elapsed_days_between(earlier: datetime, later: datetime) -> float:
    """Fractional days from `earlier` to `later`, never negative."""
    seconds = (ensure_utc(later) - ensure_utc(earlier)).total_seconds()
    return max(0.0, seconds / SECONDS_PER_DAY)


class Scheduler:
    """
    Computes the next memory state after a review.

    Stateless apart from its parameters; `update` is deterministic.
    """

    def __init__(self, params: SchedulerParameters | None = None):
        self.params = params or DEFAULT_PARAMETERS

    def recall(self, elapsed_days: float, stability: float) -> float:
        return recall(elapsed_days, stability, self.params)

    def retrievability(self, state: MemoryState, now: datetime) -> float | None:
        """Current recall probability of a reviewed card, None for a new one."""
        if isinstance(state, NewState):
            return None
        return self.recall(elapsed_days_between(state.last_reviewed_at, now), state.stability)

    def update(self, current: MemoryState, grade: ReviewGrade, now: datetime) -> ReviewedState:
        """
        Apply one review with `grade` at `now` to `current`.

        Raises:
            InvalidStateError: for an unknown grade or a state with non-finite or
                non-positive numbers.
        """
        grade = self._check_grade(grade)
        now = ensure_utc(now)

        if isinstance(current, NewState):
            stability = self.params.initial_stability[grade - 1]
            difficulty = self.params.initial_difficulty[grade - 1]
            review_count = 1
        elif isinstance(current, ReviewedState):
            self._check_state(current)
            elapsed = elapsed_days_between(current.last_reviewed_at, now)
            r = self.recall(elapsed, current.stability)
            difficulty = self.next_difficulty(current.difficulty, grade)
            if grade == ReviewGrade.AGAIN:
                stability = self.stability_after_lapse(current.stability, difficulty, r)
            else:
                stability = self.stability_after_success(current.stability, difficulty, r, grade)
            review_count = current.review_count + 1
        else:
            raise InvalidStateError(f"Unknown memory state {current!r}")

        interval_raw = interval_for_retention(stability, self.params.target_retention, self.params)
        interval_days = min(self.params.maximum_interval_days, max(1, round(interval_raw)))

        logger.debug(
            f"grade={grade.name} S={stability:.4f} D={difficulty:.4f} "
            f"interval={interval_raw:.2f}d -> {interval_days}d"
        )
        return ReviewedState(
            stability=stability,
            difficulty=difficulty,
            interval_raw=interval_raw,
            interval_days=interval_days,
            due_date=now + timedelta(days=interval_days),
            review_count=review_count,
            last_reviewed_at=now,
        )

    def next_difficulty(self, difficulty: float, grade: ReviewGrade) -> float:
        """
        Shift difficulty by grade (AGAIN up, EASY down) and mean-revert it
        slightly towards the initial difficulty of a GOOD first review.
        """
        p = self.params
        shifted = difficulty - p.difficulty_step * (int(grade) - int(ReviewGrade.GOOD))
        baseline = p.initial_difficulty[ReviewGrade.GOOD - 1]
        reverted = p.mean_reversion * baseline + (1.0 - p.mean_reversion) * shifted
        return min(DIFFICULTY_MAX, max(DIFFICULTY_MIN, reverted))

    def stability_after_success(
        self,
        stability: float,
        difficulty: float,
        r: float,
        grade: ReviewGrade,
    ) -> float:
        """
        Grow stability after a successful recall.

        Growth shrinks as stability rises and as r approaches 1; HARD is
        damped and EASY boosted. Never returns less than `stability`.
        """
        p = self.params
        if grade == ReviewGrade.HARD:
            multiplier = p.hard_penalty
        elif grade == ReviewGrade.EASY:
            multiplier = p.easy_bonus
        else:
            multiplier = 1.0

        growth = (
            math.exp(p.success_base)
            * (11.0 - difficulty)
            * stability ** (-p.success_stability_exp)
            * (math.exp(p.success_retrievability_factor * (1.0 - r)) - 1.0)
            * multiplier
        )
        return stability * (1.0 + growth)

    def stability_after_lapse(self, stability: float, difficulty: float, r: float) -> float:
        """
        Shrink stability after a lapse.

        The drop is larger when r was high and when difficulty is high. The
        result never exceeds the previous stability.
        """
        p = self.params
        lapsed = (
            p.lapse_base
            * difficulty ** (-p.lapse_difficulty_exp)
            * ((stability + 1.0) ** p.lapse_stability_exp - 1.0)
            * math.exp(p.lapse_retrievability_factor * (1.0 - r))
        )
        return min(stability, max(p.min_stability, lapsed))

    def _check_grade(self, grade: ReviewGrade) -> ReviewGrade:
        try:
            return ReviewGrade(grade)
        except ValueError as e:
            raise InvalidStateError(f"Invalid grade {grade!r}") from e

    def _check_state(self, state: ReviewedState) -> None:
        _check_finite("stability", state.stability)
        _check_finite("difficulty", state.difficulty)
        if state.stability <= 0:
            raise InvalidStateError(f"stability must be positive, got {state.stability}")
