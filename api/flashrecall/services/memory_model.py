"""
Card memory model implementing an FSRS-5 style scheduler.

Given a card's scheduling state, a rating and the review time, the model
computes the card's next state. All four ratings are always computed together
(``MemoryModel.repeat``) so that previews and the committed outcome come from
the same calculation.

Key quantities:
- Stability (S): days until retrievability drops to 90%
- Difficulty (D): how hard the card is, on a 1-10 scale
- Retrievability (R): probability of recall after t days, R = (1 + FACTOR*t/S)^DECAY

The functions here are pure: no storage access, no clock reads, no mutation.
"""
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional, Tuple

from flashrecall.models.enums import CardState, Rating
from flashrecall.utils.time_utils import as_naive_utc


# ---- Forgetting curve ----

DECAY = -0.5
FACTOR = 0.9 ** (1 / DECAY) - 1  # 19/81, makes R(t=S) == 0.9

# FSRS-5 default weights (w0..w18)
DEFAULT_WEIGHTS: Tuple[float, ...] = (
    0.40255, 1.18385, 3.173, 15.69105,  # w0-w3: initial stability per rating
    7.1949, 0.5345,                     # w4-w5: initial difficulty
    1.4604, 0.0046,                     # w6-w7: difficulty step, mean reversion
    1.54575, 0.1192, 1.01925,           # w8-w10: recall stability
    1.9395, 0.11, 0.29605, 2.2698,      # w11-w14: forget stability
    0.2315, 2.9898,                     # w15-w16: hard penalty, easy bonus
    0.51655, 0.6621,                    # w17-w18: short-term stability
)

S_MIN = 0.01
D_MIN = 1.0
D_MAX = 10.0


# ---- Short-term steps (minutes) ----

NEW_CARD_STEPS = {
    Rating.AGAIN: 1,
    Rating.HARD: 5,
    Rating.GOOD: 10,
}
LEARNING_STEPS = {
    Rating.AGAIN: 5,
    Rating.HARD: 10,
}
LAPSE_STEP_MINUTES = 5


class InvalidCardStateError(ValueError):
    """Raised when a card's scheduling state or a rating cannot be scheduled."""
    pass


@dataclass(frozen=True)
class FSRSParameters:
    """Scheduler configuration."""
    weights: Tuple[float, ...] = DEFAULT_WEIGHTS
    request_retention: float = 0.9
    maximum_interval: int = 36500

    def __post_init__(self):
        if len(self.weights) != len(DEFAULT_WEIGHTS):
            raise ValueError(f"Expected {len(DEFAULT_WEIGHTS)} weights, got {len(self.weights)}")
        if not 0 < self.request_retention < 1:
            raise ValueError(f"request_retention must be in (0, 1), got {self.request_retention}")
        if self.maximum_interval < 1:
            raise ValueError(f"maximum_interval must be at least 1 day, got {self.maximum_interval}")


@dataclass(frozen=True)
class CardMemory:
    """
    Immutable scheduling state of one card.

    ``state`` accepts a CardState or its integer value. Construction fails with
    InvalidCardStateError for negative parameters or an unknown state.
    """
    stability: float = 0.0
    difficulty: float = 0.0
    elapsed_days: int = 0
    scheduled_days: int = 0
    reps: int = 0
    lapses: int = 0
    state: CardState = CardState.NEW
    last_review: Optional[datetime] = None
    next_review: Optional[datetime] = None

    def __post_init__(self):
        for name in ("stability", "difficulty", "elapsed_days", "scheduled_days", "reps", "lapses"):
            value = getattr(self, name)
            # NaN fails this comparison as well
            if value is None or not value >= 0:
                raise InvalidCardStateError(f"{name} must be non-negative, got {value!r}")
        try:
            state = CardState(self.state)
        except ValueError:
            raise InvalidCardStateError(f"Unknown card state: {self.state!r}")
        object.__setattr__(self, "state", state)
        if self.last_review is not None:
            object.__setattr__(self, "last_review", as_naive_utc(self.last_review))
        if self.next_review is not None:
            object.__setattr__(self, "next_review", as_naive_utc(self.next_review))

    @classmethod
    def new(cls, now: datetime) -> "CardMemory":
        """A never-reviewed card, due immediately."""
        return cls(next_review=as_naive_utc(now))

    @property
    def has_memory(self) -> bool:
        """True once stability and difficulty have been initialised by a review."""
        return self.stability > 0 and self.difficulty > 0


@dataclass(frozen=True)
class SchedulingInfo:
    """Outcome of reviewing a card with one rating."""
    rating: Rating
    card: CardMemory
    review_time: datetime

    @property
    def interval(self) -> timedelta:
        """Time from the review until the card is due again."""
        return self.card.next_review - self.review_time


def coerce_rating(rating) -> Rating:
    """Convert an int (1-4) or Rating to Rating, rejecting anything else."""
    if isinstance(rating, bool):
        raise InvalidCardStateError(f"Invalid rating: {rating!r}")
    try:
        return Rating(rating)
    except ValueError:
        raise InvalidCardStateError(f"Rating must be 1 (Again), 2 (Hard), 3 (Good) or 4 (Easy), got {rating!r}")


def format_interval(interval: timedelta) -> str:
    """
    Format an interval for display on rating buttons.

    Examples: "10m", "5h", "1d", "14d".
    """
    seconds = interval.total_seconds()
    minutes = max(1, round(seconds / 60))
    if minutes < 60:
        return f"{minutes}m"
    hours = round(seconds / 3600)
    if hours < 24:
        return f"{hours}h"
    return f"{round(seconds / 86400)}d"


class MemoryModel:
    """
    FSRS scheduler.

    State machine:
    - New -> Learning (Again/Hard/Good, minute steps) or Review (Easy)
    - Learning/Relearning -> same state (Again/Hard) or Review (Good/Easy)
    - Review -> Relearning (Again, counts a lapse) or Review (Hard/Good/Easy)

    For every card the resulting intervals satisfy Again <= Hard <= Good <= Easy,
    and every outcome is due strictly after the review time.
    """

    def __init__(self, params: Optional[FSRSParameters] = None):
        self.params = params or FSRSParameters()
        self.w = self.params.weights
        # Scales stability (the 90% point) to the requested retention
        self._interval_modifier = (self.params.request_retention ** (1 / DECAY) - 1) / FACTOR

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def repeat(self, card: CardMemory, now: datetime) -> Dict[Rating, SchedulingInfo]:
        """
        Compute the outcome of every rating for ``card`` reviewed at ``now``.

        Args:
            card: Current (pre-review) scheduling state
            now: Review time; must not be earlier than card.last_review

        Returns:
            Dict mapping each Rating to its SchedulingInfo

        Raises:
            InvalidCardStateError: If now precedes the last review
        """
        now = as_naive_utc(now)
        if card.last_review is not None and now < card.last_review:
            raise InvalidCardStateError(
                f"Review time {now.isoformat()} is before last review {card.last_review.isoformat()}"
            )

        elapsed_days = (now - card.last_review).days if card.last_review is not None else 0

        if card.state == CardState.NEW:
            return self._schedule_new(card, now)
        if card.state in (CardState.LEARNING, CardState.RELEARNING):
            return self._schedule_learning(card, now, elapsed_days)
        return self._schedule_review(card, now, elapsed_days)

    def review(self, card: CardMemory, rating, now: datetime) -> SchedulingInfo:
        """Outcome of reviewing ``card`` with ``rating`` at ``now``."""
        rating = coerce_rating(rating)
        return self.repeat(card, now)[rating]

    def retrievability(self, elapsed_days: float, stability: float) -> float:
        """Probability of recall ``elapsed_days`` after a review."""
        if stability <= 0:
            return 0.0
        return (1 + FACTOR * elapsed_days / stability) ** DECAY

    def next_interval(self, stability: float) -> int:
        """Days until retrievability falls to the requested retention."""
        interval = round(stability * self._interval_modifier)
        return min(max(1, interval), self.params.maximum_interval)

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------
    def _schedule_new(self, card: CardMemory, now: datetime) -> Dict[Rating, SchedulingInfo]:
        outcomes = {}
        for rating in Rating:
            stability = self._init_stability(rating)
            difficulty = self._init_difficulty(rating)
            if rating == Rating.EASY:
                outcomes[rating] = self._on_days(
                    card, rating, now, stability, difficulty, CardState.REVIEW,
                    self.next_interval(stability), elapsed_days=0,
                )
            else:
                outcomes[rating] = self._on_minutes(
                    card, rating, now, stability, difficulty, CardState.LEARNING,
                    NEW_CARD_STEPS[rating], elapsed_days=0,
                )
        return outcomes

    def _schedule_learning(self, card: CardMemory, now: datetime, elapsed_days: int) -> Dict[Rating, SchedulingInfo]:
        memory = {rating: self._short_term_memory(card, rating) for rating in Rating}

        good_interval = self.next_interval(memory[Rating.GOOD][0])
        easy_interval = max(self.next_interval(memory[Rating.EASY][0]), good_interval + 1)
        easy_interval = min(easy_interval, self.params.maximum_interval)

        outcomes = {}
        for rating in (Rating.AGAIN, Rating.HARD):
            stability, difficulty = memory[rating]
            outcomes[rating] = self._on_minutes(
                card, rating, now, stability, difficulty, card.state,
                LEARNING_STEPS[rating], elapsed_days,
            )
        for rating, interval in ((Rating.GOOD, good_interval), (Rating.EASY, easy_interval)):
            stability, difficulty = memory[rating]
            outcomes[rating] = self._on_days(
                card, rating, now, stability, difficulty, CardState.REVIEW, interval, elapsed_days,
            )
        return outcomes

    def _schedule_review(self, card: CardMemory, now: datetime, elapsed_days: int) -> Dict[Rating, SchedulingInfo]:
        memory = {rating: self._long_term_memory(card, rating, elapsed_days) for rating in Rating}

        hard_interval = self.next_interval(memory[Rating.HARD][0])
        good_interval = self.next_interval(memory[Rating.GOOD][0])
        easy_interval = self.next_interval(memory[Rating.EASY][0])
        hard_interval = min(hard_interval, good_interval)
        good_interval = max(good_interval, hard_interval + 1)
        easy_interval = max(easy_interval, good_interval + 1)
        maximum = self.params.maximum_interval
        intervals = {
            Rating.HARD: min(hard_interval, maximum),
            Rating.GOOD: min(good_interval, maximum),
            Rating.EASY: min(easy_interval, maximum),
        }

        stability, difficulty = memory[Rating.AGAIN]
        outcomes = {
            Rating.AGAIN: self._on_minutes(
                card, Rating.AGAIN, now, stability, difficulty, CardState.RELEARNING,
                LAPSE_STEP_MINUTES, elapsed_days, lapse=True,
            )
        }
        for rating, interval in intervals.items():
            stability, difficulty = memory[rating]
            outcomes[rating] = self._on_days(
                card, rating, now, stability, difficulty, CardState.REVIEW, interval, elapsed_days,
            )
        return outcomes

    def _on_minutes(self, card, rating, now, stability, difficulty, state, minutes, elapsed_days, lapse=False):
        next_card = CardMemory(
            stability=stability,
            difficulty=difficulty,
            elapsed_days=elapsed_days,
            scheduled_days=0,
            reps=card.reps + 1,
            lapses=card.lapses + 1 if lapse else card.lapses,
            state=state,
            last_review=now,
            next_review=now + timedelta(minutes=minutes),
        )
        return SchedulingInfo(rating=rating, card=next_card, review_time=now)

    def _on_days(self, card, rating, now, stability, difficulty, state, days, elapsed_days):
        next_card = CardMemory(
            stability=stability,
            difficulty=difficulty,
            elapsed_days=elapsed_days,
            scheduled_days=days,
            reps=card.reps + 1,
            lapses=card.lapses,
            state=state,
            last_review=now,
            next_review=now + timedelta(days=days),
        )
        return SchedulingInfo(rating=rating, card=next_card, review_time=now)

    # ------------------------------------------------------------------
    # Stability and difficulty
    # ------------------------------------------------------------------
    def _short_term_memory(self, card: CardMemory, rating: Rating) -> Tuple[float, float]:
        """(stability, difficulty) after a same-day learning step."""
        if not card.has_memory:
            return self._init_stability(rating), self._init_difficulty(rating)
        difficulty = self._bounded_difficulty(card.difficulty)
        return self._short_term_stability(card.stability, rating), self._next_difficulty(difficulty, rating)

    def _long_term_memory(self, card: CardMemory, rating: Rating, elapsed_days: int) -> Tuple[float, float]:
        """(stability, difficulty) after a scheduled review."""
        if not card.has_memory:
            return self._init_stability(rating), self._init_difficulty(rating)
        difficulty = self._bounded_difficulty(card.difficulty)
        retrievability = self.retrievability(elapsed_days, card.stability)
        if rating == Rating.AGAIN:
            stability = self._forget_stability(difficulty, card.stability, retrievability)
        else:
            stability = self._recall_stability(difficulty, card.stability, retrievability, rating)
        return stability, self._next_difficulty(difficulty, rating)

    def _init_stability(self, rating: Rating) -> float:
        return max(self.w[rating - 1], S_MIN)

    def _init_difficulty(self, rating: Rating) -> float:
        difficulty = self.w[4] - math.exp(self.w[5] * (rating - 1)) + 1
        return self._bounded_difficulty(difficulty)

    def _next_difficulty(self, difficulty: float, rating: Rating) -> float:
        delta = -self.w[6] * (rating - 3)
        # Linear damping: steps shrink as difficulty approaches the maximum
        damped = difficulty + delta * (D_MAX - difficulty) / 9
        reverted = self.w[7] * self._init_difficulty(Rating.EASY) + (1 - self.w[7]) * damped
        return self._bounded_difficulty(reverted)

    def _recall_stability(self, difficulty: float, stability: float, retrievability: float, rating: Rating) -> float:
        hard_penalty = self.w[15] if rating == Rating.HARD else 1.0
        easy_bonus = self.w[16] if rating == Rating.EASY else 1.0
        growth = (
            math.exp(self.w[8])
            * (11 - difficulty)
            * math.pow(stability, -self.w[9])
            * (math.exp((1 - retrievability) * self.w[10]) - 1)
            * hard_penalty
            * easy_bonus
        )
        return max(stability * (1 + growth), S_MIN)

    def _forget_stability(self, difficulty: float, stability: float, retrievability: float) -> float:
        long_term = (
            self.w[11]
            * math.pow(difficulty, -self.w[12])
            * (math.pow(stability + 1, self.w[13]) - 1)
            * math.exp((1 - retrievability) * self.w[14])
        )
        # A lapse never leaves the card more stable than a same-day relearn would
        short_term_cap = stability / math.exp(self.w[17] * self.w[18])
        return max(min(long_term, short_term_cap), S_MIN)

    def _short_term_stability(self, stability: float, rating: Rating) -> float:
        next_stability = stability * math.exp(self.w[17] * (rating - 3 + self.w[18]))
        if rating >= Rating.GOOD:
            next_stability = max(next_stability, stability)
        return max(next_stability, S_MIN)

    @staticmethod
    def _bounded_difficulty(difficulty: float) -> float:
        return min(max(difficulty, D_MIN), D_MAX)
