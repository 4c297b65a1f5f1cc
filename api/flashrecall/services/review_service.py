"""
Review service: applies one review to a flashcard.

Flow:
1. Validate the rating
2. Load the flashcard through its deck, filtered by the requesting user
3. Compute the outcome of all four ratings from the current state
4. Pick the outcome for the submitted rating
5. Write every scheduling field in a single UPDATE and commit
6. Return the saved flashcard plus the interval preview of each rating
"""
# pyright: reportAttributeAccessIssue=false
# pyright: reportArgumentType=false
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from typing import Dict, Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from flashrecall.core.config import settings
from flashrecall.core.exceptions import FlashcardNotFoundError, PersistenceError, ValidationError
from flashrecall.models.models import Deck, Flashcard, Rating
from flashrecall.services.memory_model import (
    CardMemory,
    FSRSParameters,
    InvalidCardStateError,
    MemoryModel,
    coerce_rating,
    format_interval,
)
from flashrecall.utils.time_utils import utcnow, as_naive_utc

logger = logging.getLogger(__name__)


@dataclass
class ReviewResult:
    """Saved flashcard and the preview of every rating's interval."""
    flashcard: Flashcard
    next_intervals: Dict[str, str]


@lru_cache(maxsize=1)
def get_memory_model() -> MemoryModel:
    """Scheduler configured from settings."""
    return MemoryModel(
        FSRSParameters(
            request_retention=settings.fsrs_request_retention,
            maximum_interval=settings.fsrs_maximum_interval,
        )
    )


def memory_from_flashcard(flashcard: Flashcard) -> CardMemory:
    """Scheduling state of a stored flashcard."""
    return CardMemory(
        stability=flashcard.stability,
        difficulty=flashcard.difficulty,
        elapsed_days=flashcard.elapsed_days,
        scheduled_days=flashcard.scheduled_days,
        reps=flashcard.reps,
        lapses=flashcard.lapses,
        state=flashcard.state,
        last_review=flashcard.last_review,
        next_review=flashcard.next_review,
    )


def scheduling_values(card: CardMemory) -> Dict[str, object]:
    """Column values that persist ``card``; always the complete set."""
    return {
        "stability": card.stability,
        "difficulty": card.difficulty,
        "elapsed_days": card.elapsed_days,
        "scheduled_days": card.scheduled_days,
        "reps": card.reps,
        "lapses": card.lapses,
        "state": int(card.state),
        "last_review": card.last_review,
        "next_review": card.next_review,
    }


def load_owned_flashcard(session: Session, user_id: uuid.UUID, flashcard_id: uuid.UUID) -> Flashcard:
    """
    Load a flashcard that belongs to one of the user's decks.

    Raises:
        FlashcardNotFoundError: If the flashcard is missing or owned by another user
    """
    flashcard = session.exec(
        select(Flashcard)
        .join(Deck, Flashcard.deck_id == Deck.id)
        .where(
            Flashcard.id == flashcard_id,
            Deck.user_id == user_id
        )
    ).first()
    if not flashcard:
        raise FlashcardNotFoundError("Flashcard not found")
    return flashcard


def submit_review(
    session: Session,
    user_id: uuid.UUID,
    flashcard_id: uuid.UUID,
    rating,
    now: Optional[datetime] = None,
    model: Optional[MemoryModel] = None
) -> ReviewResult:
    """
    Submit a review rating for a flashcard and reschedule it.

    The scheduling fields are written with one UPDATE statement, so a
    concurrent review of the same card either sees all of this review's fields
    or none of them (last committed write wins).

    Args:
        session: Database session
        user_id: Requesting user
        flashcard_id: Flashcard being reviewed
        rating: 1 (Again), 2 (Hard), 3 (Good) or 4 (Easy)
        now: Review time (defaults to current UTC time)
        model: Scheduler to use (defaults to the configured one)

    Returns:
        ReviewResult with the saved flashcard and next_intervals
        {"again", "hard", "good", "easy"}

    Raises:
        ValidationError: If rating is not 1-4
        FlashcardNotFoundError: If the flashcard is missing or not owned by the user
        PersistenceError: If saving failed; the review was not recorded and may be retried
    """
    try:
        rating = coerce_rating(rating)
    except InvalidCardStateError as e:
        raise ValidationError(str(e))

    now = as_naive_utc(now) if now is not None else utcnow()
    model = model or get_memory_model()

    flashcard = load_owned_flashcard(session, user_id, flashcard_id)
    current = memory_from_flashcard(flashcard)

    if current.last_review is not None and current.last_review > now:
        # A concurrent review (or a skewed clock elsewhere) committed a later review time
        logger.warning(
            f"Review of flashcard {flashcard_id} at {now.isoformat()} precedes stored last review "
            f"{current.last_review.isoformat()}; reviewing at the stored time"
        )
        now = current.last_review

    outcomes = model.repeat(current, now)
    chosen = outcomes[rating].card
    next_intervals = {r.name.lower(): format_interval(outcomes[r].interval) for r in Rating}

    owned_deck_ids = select(Deck.id).where(Deck.user_id == user_id)
    statement = (
        update(Flashcard)
        .where(
            Flashcard.id == flashcard_id,
            Flashcard.deck_id.in_(owned_deck_ids)
        )
        .values(updated_at=now, **scheduling_values(chosen))
        .execution_options(synchronize_session=False)
    )

    try:
        result = session.exec(statement)  # type: ignore
        updated_rows = result.rowcount
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Failed to save review for flashcard {flashcard_id} (user {user_id})", exc_info=e)
        raise PersistenceError() from e

    if updated_rows == 0:
        # Deleted (or moved) between load and update
        raise FlashcardNotFoundError("Flashcard not found")

    session.refresh(flashcard)

    logger.info(
        f"Review saved for flashcard {flashcard_id}: rating={rating.name}, "
        f"state {current.state.name} -> {chosen.state.name}, next_review={chosen.next_review.isoformat()}"
    )

    return ReviewResult(flashcard=flashcard, next_intervals=next_intervals)
