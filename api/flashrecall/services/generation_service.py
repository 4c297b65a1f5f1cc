"""
Generation service: AI flashcard drafting guarded by the monthly quota.

Flow:
1. Verify deck ownership
2. Reserve quota (lazy reset applied first)
3. Call the drafting client
4. Release whatever part of the reservation was not used
5. Log generation events for analytics
6. Return the drafts with the remaining limit
"""
# pyright: reportAttributeAccessIssue=false
import logging
import uuid
from dataclasses import dataclass
from typing import List, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from flashrecall.core.config import settings
from flashrecall.core.exceptions import (
    DraftingError,
    GenerationNotFoundError,
    PersistenceError,
    QuotaExceededError,
)
from flashrecall.models.models import GenerationEvent, GenerationEventType
from flashrecall.services.drafting_service import FlashcardDraft
from flashrecall.services.quota_service import QuotaReservation, check_and_reserve, get_usage, release
from flashrecall.services.study_service import verify_deck_ownership

logger = logging.getLogger(__name__)


class DraftingClient(Protocol):
    def generate(self, source_text: str, max_cards: int) -> List[FlashcardDraft]:
        ...


@dataclass
class GenerationResult:
    """Drafts from one generation session."""
    generation_id: uuid.UUID
    drafts: List[FlashcardDraft]
    generated_count: int
    remaining_ai_limit: int


def _release_unused(session: Session, user_id: uuid.UUID, reservation: QuotaReservation, used: int) -> None:
    unused = reservation.reserved - used
    if unused <= 0:
        return
    try:
        release(session, user_id, unused, reservation.reset_date)
    except PersistenceError:
        # Counter stays charged for the full reservation
        logger.error(f"Could not release {unused} unused AI quota for user {user_id}")


def log_generation_events(
    session: Session,
    user_id: uuid.UUID,
    generation_id: uuid.UUID,
    drafts: List[FlashcardDraft]
) -> None:
    """
    Log one GENERATED event per draft.

    Analytics only: a failure is logged and does not fail the generation.
    """
    if not drafts:
        return
    try:
        for _ in drafts:
            session.add(GenerationEvent(
                user_id=user_id,
                flashcard_id=None,
                generation_id=generation_id,
                event_type=GenerationEventType.GENERATED,
            ))
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Failed to log generation events for generation {generation_id}", exc_info=e)


def generate_flashcards(
    session: Session,
    user_id: uuid.UUID,
    deck_id: uuid.UUID,
    source_text: str,
    drafting_client: DraftingClient,
    max_cards: Optional[int] = None
) -> GenerationResult:
    """
    Generate flashcard drafts from source text.

    Quota is reserved before the AI call, so concurrent generations cannot
    overshoot the monthly limit. The reservation is ``min(max_cards, remaining)``;
    drafts beyond what was reserved are never returned.

    Args:
        session: Database session
        user_id: Requesting user
        deck_id: Deck the drafts are meant for
        source_text: Text to draft flashcards from
        drafting_client: Client producing the drafts
        max_cards: Upper bound on drafts (defaults to settings.generation_max_cards)

    Returns:
        GenerationResult with generation_id, drafts, generated_count and remaining_ai_limit

    Raises:
        DeckNotFoundError: If the deck is missing or not owned by the user
        ProfileNotFoundError: If the user has no profile
        QuotaExceededError: If the monthly limit is used up
        DraftingError: If the AI service failed; the reservation is returned
        PersistenceError: If the quota counter could not be updated
    """
    max_cards = max_cards or settings.generation_max_cards

    verify_deck_ownership(session, user_id, deck_id)

    usage = get_usage(session, user_id)
    if usage.remaining <= 0:
        logger.warning(f"AI generation refused for user {user_id}: limit {usage.limit} reached")
        raise QuotaExceededError(current_count=usage.count, limit=usage.limit, reset_date=usage.reset_date)

    reservation = check_and_reserve(session, user_id, min(max_cards, usage.remaining), limit=usage.limit)

    try:
        drafts = drafting_client.generate(source_text, reservation.reserved)
    except Exception as e:
        _release_unused(session, user_id, reservation, used=0)
        if isinstance(e, DraftingError):
            raise
        logger.error(f"Drafting client failed for user {user_id}", exc_info=e)
        raise DraftingError("AI service failed to generate flashcards") from e

    drafts = drafts[:reservation.reserved]
    _release_unused(session, user_id, reservation, used=len(drafts))

    generation_id = uuid.uuid4()
    log_generation_events(session, user_id, generation_id, drafts)

    remaining = get_usage(session, user_id, limit=usage.limit).remaining

    logger.info(
        f"Generation {generation_id} for user {user_id}: {len(drafts)} drafts, "
        f"{remaining} remaining this month"
    )

    return GenerationResult(
        generation_id=generation_id,
        drafts=drafts,
        generated_count=len(drafts),
        remaining_ai_limit=remaining,
    )


def reject_draft(
    session: Session,
    user_id: uuid.UUID,
    generation_id: uuid.UUID,
    draft_index: int
) -> GenerationEvent:
    """
    Record that the user rejected one draft of a generation.

    ``draft_index`` identifies the draft on the client only; it is not stored.

    Raises:
        GenerationNotFoundError: If the generation does not exist or belongs to another user
        PersistenceError: If the event could not be saved
    """
    existing = session.exec(
        select(GenerationEvent.id)
        .where(
            GenerationEvent.generation_id == generation_id,
            GenerationEvent.user_id == user_id
        )
        .limit(1)
    ).first()
    if existing is None:
        raise GenerationNotFoundError("Generation not found")

    event = GenerationEvent(
        user_id=user_id,
        flashcard_id=None,
        generation_id=generation_id,
        event_type=GenerationEventType.REJECTED,
    )
    try:
        session.add(event)
        session.commit()
        session.refresh(event)
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Failed to insert rejection event for generation {generation_id}", exc_info=e)
        raise PersistenceError() from e

    logger.info(f"Draft {draft_index} of generation {generation_id} rejected by user {user_id}")
    return event
