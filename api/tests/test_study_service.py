"""
Tests for due-card selection and the study summary.
"""
import uuid
from datetime import timedelta

import pytest

from conftest import NOW
from flashrecall.core.exceptions import DeckNotFoundError, ValidationError
from flashrecall.models.models import Flashcard
from flashrecall.services.dashboard_service import build_study_summary
from flashrecall.services.study_service import (
    get_due_cards,
    get_due_summary,
    resolve_deck_owner,
    verify_deck_ownership,
)


@pytest.fixture
def owner(make_profile):
    return make_profile()


@pytest.fixture
def deck(make_deck, owner):
    return make_deck(owner, name="Biology")


class TestDueCards:
    def test_due_boundary(self, session, owner, deck, make_flashcard):
        past = make_flashcard(deck, front="past", next_review=NOW - timedelta(seconds=1))
        exact = make_flashcard(deck, front="exact", next_review=NOW)
        make_flashcard(deck, front="future", next_review=NOW + timedelta(seconds=1))

        result = get_due_cards(session, owner.user_id, now=NOW)

        ids = {flashcard.id for flashcard, _ in result.cards}
        assert ids == {past.id, exact.id}
        assert result.total_due == 2

    def test_ordered_by_next_review(self, session, owner, deck, make_flashcard):
        middle = make_flashcard(deck, next_review=NOW - timedelta(days=2))
        newest = make_flashcard(deck, next_review=NOW - timedelta(hours=1))
        oldest = make_flashcard(deck, next_review=NOW - timedelta(days=3))

        result = get_due_cards(session, owner.user_id, now=NOW)

        assert [flashcard.id for flashcard, _ in result.cards] == [oldest.id, middle.id, newest.id]
        assert all(deck_name == "Biology" for _, deck_name in result.cards)

    def test_limit(self, session, owner, deck, make_flashcard):
        for i in range(5):
            make_flashcard(deck, next_review=NOW - timedelta(minutes=i + 1))

        result = get_due_cards(session, owner.user_id, limit=2, now=NOW)

        assert result.returned_count == 2
        assert result.total_due == 5
        assert len(result.cards) == 2

    @pytest.mark.parametrize("limit", [0, 201, -5])
    def test_limit_out_of_range(self, session, owner, limit):
        with pytest.raises(ValidationError):
            get_due_cards(session, owner.user_id, limit=limit, now=NOW)

    def test_deck_filter(self, session, owner, deck, make_deck, make_flashcard):
        other_deck = make_deck(owner, name="Chemistry")
        in_deck = make_flashcard(deck, next_review=NOW - timedelta(days=1))
        make_flashcard(other_deck, next_review=NOW - timedelta(days=1))

        result = get_due_cards(session, owner.user_id, deck_id=deck.id, now=NOW)

        assert [flashcard.id for flashcard, _ in result.cards] == [in_deck.id]
        assert result.total_due == 1

    def test_other_users_cards_are_invisible(self, session, owner, deck, make_profile, make_deck, make_flashcard):
        stranger = make_profile()
        make_flashcard(make_deck(stranger), next_review=NOW - timedelta(days=1))
        mine = make_flashcard(deck, next_review=NOW - timedelta(days=1))

        result = get_due_cards(session, owner.user_id, now=NOW)

        assert [flashcard.id for flashcard, _ in result.cards] == [mine.id]

    def test_foreign_and_missing_decks_are_not_found(self, session, owner, make_profile, make_deck):
        foreign_deck = make_deck(make_profile())

        with pytest.raises(DeckNotFoundError):
            get_due_cards(session, owner.user_id, deck_id=foreign_deck.id, now=NOW)
        with pytest.raises(DeckNotFoundError):
            get_due_cards(session, owner.user_id, deck_id=uuid.uuid4(), now=NOW)

    def test_no_due_cards(self, session, owner, deck, make_flashcard):
        make_flashcard(deck, next_review=NOW + timedelta(days=1))

        result = get_due_cards(session, owner.user_id, now=NOW)

        assert result.cards == []
        assert result.total_due == 0
        assert result.returned_count == 0


class TestDeckOwnership:
    def test_resolve_deck_owner(self, session, owner, deck):
        assert resolve_deck_owner(session, deck.id) == owner.user_id
        assert resolve_deck_owner(session, uuid.uuid4()) is None

    def test_verify_deck_ownership(self, session, owner, deck, make_profile):
        verify_deck_ownership(session, owner.user_id, deck.id)
        with pytest.raises(DeckNotFoundError):
            verify_deck_ownership(session, make_profile().user_id, deck.id)


class TestDueSummary:
    def test_summary_omits_decks_without_due_cards(self, session, owner, make_deck, make_flashcard):
        biology = make_deck(owner, name="Biology")
        chemistry = make_deck(owner, name="Chemistry")
        make_flashcard(biology, next_review=NOW - timedelta(days=1))
        make_flashcard(biology, next_review=NOW - timedelta(hours=2))
        upcoming = NOW + timedelta(days=2)
        make_flashcard(chemistry, next_review=upcoming)
        make_flashcard(chemistry, next_review=NOW + timedelta(days=5))

        summary = get_due_summary(session, owner.user_id, now=NOW)

        assert summary.total_due == 2
        assert summary.next_review_date == upcoming
        assert [(deck.deck_id, deck.due_count) for deck in summary.per_deck] == [(biology.id, 2)]

    def test_summary_sorted_by_deck_name(self, session, owner, make_deck, make_flashcard):
        zoology = make_deck(owner, name="Zoology")
        anatomy = make_deck(owner, name="Anatomy")
        make_flashcard(zoology, next_review=NOW - timedelta(days=1))
        make_flashcard(anatomy, next_review=NOW - timedelta(days=1))

        summary = get_due_summary(session, owner.user_id, now=NOW)

        assert [deck.deck_name for deck in summary.per_deck] == ["Anatomy", "Zoology"]
        assert summary.next_review_date is None

    def test_empty_summary(self, session, owner):
        summary = get_due_summary(session, owner.user_id, now=NOW)

        assert summary.total_due == 0
        assert summary.next_review_date is None
        assert summary.per_deck == []

    def test_build_study_summary(self, session, owner, deck, make_flashcard):
        make_flashcard(deck, next_review=NOW - timedelta(minutes=5))

        response = build_study_summary(session, owner.user_id, now=NOW)

        assert response.total_due == 1
        assert response.decks[0].id == deck.id
        assert response.decks[0].name == "Biology"
        assert response.decks[0].due_count == 1


def test_due_date_indexes_match_migration():
    index_names = {index.name for index in Flashcard.__table__.indexes}

    assert {"idx_flashcards_next_review", "idx_flashcards_deck_next_review"} <= index_names
    assert "ix_flashcards_next_review" not in index_names
