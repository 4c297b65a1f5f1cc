"""
Tests for the FSRS card memory model.
"""
import itertools
from datetime import datetime, timedelta

import pytest

from flashrecall.models.enums import CardState, Rating
from flashrecall.services.memory_model import (
    CardMemory,
    FSRSParameters,
    InvalidCardStateError,
    MemoryModel,
    coerce_rating,
    format_interval,
)

NOW = datetime(2024, 6, 15, 12, 0, 0)


@pytest.fixture
def model():
    return MemoryModel()


def review_card(stability=10.0, difficulty=5.0, elapsed=10, reps=5, lapses=0):
    return CardMemory(
        stability=stability,
        difficulty=difficulty,
        elapsed_days=0,
        scheduled_days=elapsed,
        reps=reps,
        lapses=lapses,
        state=CardState.REVIEW,
        last_review=NOW - timedelta(days=elapsed),
        next_review=NOW,
    )


class TestTransitions:
    def test_new_card_good_enters_learning(self, model):
        card = CardMemory.new(NOW)

        result = model.review(card, Rating.GOOD, NOW)

        assert result.card.state == CardState.LEARNING
        assert result.card.reps == 1
        assert result.card.lapses == 0
        assert result.card.last_review == NOW
        assert result.card.next_review == NOW + timedelta(minutes=10)
        assert result.card.stability > 0
        assert 1 <= result.card.difficulty <= 10

    def test_new_card_easy_graduates(self, model):
        result = model.review(CardMemory.new(NOW), Rating.EASY, NOW)

        assert result.card.state == CardState.REVIEW
        assert result.card.scheduled_days >= 1
        assert result.card.next_review == NOW + timedelta(days=result.card.scheduled_days)

    def test_review_again_is_a_lapse(self, model):
        card = review_card(lapses=2)

        result = model.review(card, Rating.AGAIN, NOW)

        assert result.card.state == CardState.RELEARNING
        assert result.card.lapses == 3
        assert result.card.reps == card.reps + 1
        assert result.card.next_review == NOW + timedelta(minutes=5)
        assert result.card.stability < card.stability

    def test_review_good_stays_in_review_and_grows_stability(self, model):
        card = review_card()

        result = model.review(card, Rating.GOOD, NOW)

        assert result.card.state == CardState.REVIEW
        assert result.card.lapses == 0
        assert result.card.stability > card.stability
        assert result.card.elapsed_days == 10

    @pytest.mark.parametrize("state", [CardState.LEARNING, CardState.RELEARNING])
    def test_learning_steps(self, model, state):
        card = CardMemory(
            stability=2.0, difficulty=5.0, reps=1, state=state,
            last_review=NOW - timedelta(minutes=10), next_review=NOW,
        )

        outcomes = model.repeat(card, NOW)

        assert outcomes[Rating.AGAIN].card.state == state
        assert outcomes[Rating.AGAIN].interval == timedelta(minutes=5)
        assert outcomes[Rating.HARD].card.state == state
        assert outcomes[Rating.HARD].interval == timedelta(minutes=10)
        assert outcomes[Rating.GOOD].card.state == CardState.REVIEW
        assert outcomes[Rating.EASY].card.state == CardState.REVIEW
        assert outcomes[Rating.EASY].card.scheduled_days > outcomes[Rating.GOOD].card.scheduled_days

    def test_card_without_memory_in_review_uses_initial_values(self, model):
        card = CardMemory(state=CardState.REVIEW, reps=3, last_review=NOW - timedelta(days=3), next_review=NOW)

        result = model.review(card, Rating.GOOD, NOW)

        assert result.card.stability == pytest.approx(model.params.weights[2])
        assert result.card.state == CardState.REVIEW


class TestOrderingProperties:
    STABILITIES = [0.0, 0.5, 3.0, 20.0, 200.0, 5000.0]
    DIFFICULTIES = [0.0, 1.0, 5.0, 10.0]
    ELAPSED_DAYS = [0, 1, 10, 400]

    def cards(self):
        yield CardMemory.new(NOW)
        for state, stability, difficulty, elapsed in itertools.product(
            [CardState.LEARNING, CardState.REVIEW, CardState.RELEARNING],
            self.STABILITIES, self.DIFFICULTIES, self.ELAPSED_DAYS,
        ):
            yield CardMemory(
                stability=stability,
                difficulty=difficulty,
                scheduled_days=elapsed,
                reps=4,
                lapses=1,
                state=state,
                last_review=NOW - timedelta(days=elapsed),
                next_review=NOW,
            )

    def test_intervals_are_monotonic_in_rating(self, model):
        for card in self.cards():
            outcomes = model.repeat(card, NOW)
            intervals = [outcomes[rating].interval for rating in Rating]
            assert intervals == sorted(intervals), card

    def test_every_outcome_is_due_after_the_review(self, model):
        for card in self.cards():
            for info in model.repeat(card, NOW).values():
                assert info.card.next_review > NOW, card

    def test_maximum_interval_is_respected(self):
        model = MemoryModel(FSRSParameters(maximum_interval=30))
        card = review_card(stability=1000.0, elapsed=900)

        outcomes = model.repeat(card, NOW)

        for rating in (Rating.HARD, Rating.GOOD, Rating.EASY):
            assert outcomes[rating].interval <= timedelta(days=30)
        intervals = [outcomes[rating].interval for rating in Rating]
        assert intervals == sorted(intervals)

    def test_preview_is_idempotent(self, model):
        card = review_card()

        first = model.repeat(card, NOW)
        second = model.repeat(card, NOW)

        assert first == second
        assert card == review_card()


class TestValidation:
    @pytest.mark.parametrize("field", ["stability", "difficulty", "elapsed_days", "scheduled_days", "reps", "lapses"])
    def test_negative_fields_are_rejected(self, field):
        with pytest.raises(InvalidCardStateError):
            CardMemory(**{field: -1})

    def test_nan_stability_is_rejected(self):
        with pytest.raises(InvalidCardStateError):
            CardMemory(stability=float("nan"))

    def test_unknown_state_is_rejected(self):
        with pytest.raises(InvalidCardStateError):
            CardMemory(state=7)

    def test_integer_state_is_accepted(self):
        assert CardMemory(state=2).state is CardState.REVIEW

    @pytest.mark.parametrize("rating", [0, 5, -1, True, "3", None])
    def test_invalid_ratings_are_rejected(self, rating):
        with pytest.raises(InvalidCardStateError):
            coerce_rating(rating)

    def test_review_time_before_last_review_is_rejected(self, model):
        card = review_card()

        with pytest.raises(InvalidCardStateError):
            model.repeat(card, card.last_review - timedelta(seconds=1))

    def test_invalid_parameters(self):
        with pytest.raises(ValueError):
            FSRSParameters(request_retention=1.0)
        with pytest.raises(ValueError):
            FSRSParameters(maximum_interval=0)
        with pytest.raises(ValueError):
            FSRSParameters(weights=(1.0, 2.0))


class TestCurve:
    def test_retrievability_is_ninety_percent_at_stability(self, model):
        assert model.retrievability(12.0, 12.0) == pytest.approx(0.9)
        assert model.retrievability(0, 12.0) == pytest.approx(1.0)

    def test_next_interval_matches_stability_at_default_retention(self, model):
        assert model.next_interval(10.0) == 10
        assert model.next_interval(0.01) == 1

    def test_higher_retention_means_shorter_intervals(self):
        strict = MemoryModel(FSRSParameters(request_retention=0.95))
        assert strict.next_interval(100.0) < MemoryModel().next_interval(100.0)


@pytest.mark.parametrize("interval, expected", [
    (timedelta(seconds=20), "1m"),
    (timedelta(minutes=10), "10m"),
    (timedelta(minutes=59, seconds=20), "59m"),
    (timedelta(minutes=59, seconds=40), "1h"),
    (timedelta(hours=23, minutes=40), "1d"),
    (timedelta(hours=5), "5h"),
    (timedelta(days=1), "1d"),
    (timedelta(days=14), "14d"),
    (timedelta(days=30), "30d"),
])
def test_format_interval(interval, expected):
    assert format_interval(interval) == expected
