"""
Study session endpoints.
"""
# pyright: reportAttributeAccessIssue=false
# pyright: reportCallIssue=false
# pyright: reportArgumentType=false
from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session
from typing import Optional
import uuid

from flashrecall.core.database import get_session
from flashrecall.core.security import get_current_user_id
from flashrecall.schemas.study import (
    FlashcardResponse,
    NextIntervalsResponse,
    ReviewResponse,
    StudyCardResponse,
    StudyCardsResponse,
    StudySummaryResponse,
    SubmitReviewRequest,
)
from flashrecall.services.dashboard_service import build_study_summary
from flashrecall.services.review_service import submit_review
from flashrecall.services.study_service import DEFAULT_STUDY_LIMIT, get_due_cards

router = APIRouter(prefix="/study", tags=["study"])


@router.get("/cards", response_model=StudyCardsResponse, status_code=status.HTTP_200_OK)
def get_study_cards(
    deck_id: Optional[uuid.UUID] = Query(None, description="Restrict the session to one deck"),
    limit: int = Query(DEFAULT_STUDY_LIMIT, description="Maximum number of cards (1-200)"),
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: Session = Depends(get_session)
):
    """
    Get flashcards due for review, most overdue first.

    Args:
        deck_id: Optional deck filter
        limit: Maximum number of cards to return (1-200, default 50)

    Returns:
        StudyCardsResponse with the due cards, total_due and returned_count
    """
    result = get_due_cards(session, user_id, deck_id=deck_id, limit=limit)

    data = [
        StudyCardResponse(
            id=flashcard.id,
            deck_id=flashcard.deck_id,
            deck_name=deck_name,
            front=flashcard.front,
            back=flashcard.back,
            source=flashcard.source,
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
        for flashcard, deck_name in result.cards
    ]

    return StudyCardsResponse(
        data=data,
        total_due=result.total_due,
        returned_count=result.returned_count
    )


@router.get("/summary", response_model=StudySummaryResponse, status_code=status.HTTP_200_OK)
def get_study_summary(
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: Session = Depends(get_session)
):
    """Due-card overview: total due, next review date and per-deck due counts."""
    return build_study_summary(session, user_id)


@router.post("/review", response_model=ReviewResponse, status_code=status.HTTP_200_OK)
def review_flashcard(
    request: SubmitReviewRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: Session = Depends(get_session)
):
    """
    Submit a rating for a flashcard and reschedule it.

    Returns:
        ReviewResponse with the updated flashcard and the interval each rating
        would have produced
    """
    result = submit_review(session, user_id, request.flashcard_id, request.rating)
    return ReviewResponse(
        flashcard=FlashcardResponse.model_validate(result.flashcard),
        next_intervals=NextIntervalsResponse(**result.next_intervals)
    )
