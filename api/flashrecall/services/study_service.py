"""
Study service: selects flashcards that are due for review.

A card is due when ``next_review <= now``. Cards are always scoped to decks
owned by the requesting user; a deck that is missing and a deck that belongs to
someone else produce the same DeckNotFoundError.
"""
# pyright: reportAttributeAccessIssue=false
# pyright: reportArgumentType=false
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

from sqlmodel import Session, select, func

from flashrecall.core.exceptions import DeckNotFoundError, ValidationError
from flashrecall.models.models import Deck, Flashcard
from flashrecall.utils.time_utils import utcnow, as_naive_utc

logger = logging.getLogger(__name__)

DEFAULT_STUDY_LIMIT = 50
MIN_STUDY_LIMIT = 1
MAX_STUDY_LIMIT = 200


@dataclass
class StudyCardsResult:
    """Due cards for a study session, oldest due first."""
    cards: List[Tuple[Flashcard, str]]  # (flashcard, deck name)
    total_due: int
    returned_count: int


@dataclass
class DeckDueCount:
    """Number of due cards in one deck."""
    deck_id: uuid.UUID
    deck_name: str
    due_count: int


@dataclass
class DueSummary:
    """Due work across all of a user's decks."""
    total_due: int
    next_review_date: Optional[datetime]
    per_deck: List[DeckDueCount] = field(default_factory=list)


def resolve_deck_owner(session: Session, deck_id: uuid.UUID) -> Optional[uuid.UUID]:
    """Return the id of the user owning ``deck_id``, or None if the deck does not exist."""
    return session.exec(select(Deck.user_id).where(Deck.id == deck_id)).first()


def verify_deck_ownership(session: Session, user_id: uuid.UUID, deck_id: uuid.UUID) -> None:
    """
    Ensure ``deck_id`` exists and belongs to ``user_id``.

    Raises:
        DeckNotFoundError: If the deck is missing or owned by another user
    """
    owner_id = resolve_deck_owner(session, deck_id)
    if owner_id is None or owner_id != user_id:
        raise DeckNotFoundError("Deck not found")


def _due_conditions(user_id: uuid.UUID, now: datetime, deck_id: Optional[uuid.UUID] = None) -> list:
    conditions = [
        Deck.user_id == user_id,
        Flashcard.next_review <= now,
    ]
    if deck_id is not None:
        conditions.append(Flashcard.deck_id == deck_id)
    return conditions


def get_due_cards(
    session: Session,
    user_id: uuid.UUID,
    deck_id: Optional[uuid.UUID] = None,
    limit: int = DEFAULT_STUDY_LIMIT,
    now: Optional[datetime] = None
) -> StudyCardsResult:
    """
    Get flashcards due for review, oldest due first.

    Ordering by next_review puts the most overdue cards first, so a session cut
    short by ``limit`` still covers the cards most at risk of being forgotten.

    Args:
        session: Database session
        user_id: Requesting user
        deck_id: Optional deck to restrict the session to
        limit: Maximum number of cards to return (1-200)
        now: Reference time (defaults to current UTC time)

    Returns:
        StudyCardsResult with the cards, the total number of due cards
        (ignoring limit) and the number of cards returned

    Raises:
        ValidationError: If limit is out of range
        DeckNotFoundError: If deck_id is given and not owned by the user
    """
    if not MIN_STUDY_LIMIT <= limit <= MAX_STUDY_LIMIT:
        raise ValidationError(f"limit must be between {MIN_STUDY_LIMIT} and {MAX_STUDY_LIMIT}")

    now = as_naive_utc(now) if now is not None else utcnow()

    if deck_id is not None:
        verify_deck_ownership(session, user_id, deck_id)

    conditions = _due_conditions(user_id, now, deck_id)

    rows = session.exec(
        select(Flashcard, Deck.name)
        .join(Deck, Flashcard.deck_id == Deck.id)
        .where(*conditions)
        .order_by(Flashcard.next_review.asc(), Flashcard.id)
        .limit(limit)
    ).all()

    total_due = session.exec(
        select(func.count(Flashcard.id))
        .select_from(Flashcard)
        .join(Deck, Flashcard.deck_id == Deck.id)
        .where(*conditions)
    ).one()

    cards = [(flashcard, deck_name) for flashcard, deck_name in rows]

    logger.info(
        f"Study cards for user {user_id}: {len(cards)} returned of {total_due} due"
        + (f" (deck {deck_id})" if deck_id is not None else "")
    )

    return StudyCardsResult(
        cards=cards,
        total_due=total_due,
        returned_count=len(cards),
    )


def get_due_summary(
    session: Session,
    user_id: uuid.UUID,
    now: Optional[datetime] = None
) -> DueSummary:
    """
    Summarise due cards across all of the user's decks.

    Only decks with at least one due card are listed, sorted by deck name.
    ``next_review_date`` is the earliest review strictly in the future, or None.
    """
    now = as_naive_utc(now) if now is not None else utcnow()

    rows = session.exec(
        select(Deck.id, Deck.name, func.count(Flashcard.id))
        .join(Flashcard, Flashcard.deck_id == Deck.id)
        .where(*_due_conditions(user_id, now))
        .group_by(Deck.id, Deck.name)
        .order_by(Deck.name, Deck.id)
    ).all()

    per_deck = [
        DeckDueCount(deck_id=deck_id, deck_name=deck_name, due_count=due_count)
        for deck_id, deck_name, due_count in rows
        if due_count > 0
    ]

    next_review_date = session.exec(
        select(func.min(Flashcard.next_review))
        .select_from(Flashcard)
        .join(Deck, Flashcard.deck_id == Deck.id)
        .where(
            Deck.user_id == user_id,
            Flashcard.next_review > now
        )
    ).one()

    return DueSummary(
        total_due=sum(deck.due_count for deck in per_deck),
        next_review_date=next_review_date,
        per_deck=per_deck,
    )
