"""
Study session schemas.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
import uuid

from flashrecall.models.enums import FlashcardSource


class FlashcardResponse(BaseModel):
    """Flashcard with its scheduling state."""
    id: uuid.UUID
    deck_id: uuid.UUID
    front: str
    back: str
    source: FlashcardSource
    stability: float
    difficulty: float
    elapsed_days: int
    scheduled_days: int
    reps: int
    lapses: int
    state: int = Field(..., description="0=New, 1=Learning, 2=Review, 3=Relearning")
    last_review: Optional[datetime] = None
    next_review: datetime
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class StudyCardResponse(BaseModel):
    """Due flashcard with its deck name, for a study session."""
    id: uuid.UUID
    deck_id: uuid.UUID
    deck_name: str
    front: str
    back: str
    source: FlashcardSource
    stability: float
    difficulty: float
    elapsed_days: int
    scheduled_days: int
    reps: int
    lapses: int
    state: int
    last_review: Optional[datetime] = None
    next_review: datetime


class StudyCardsResponse(BaseModel):
    """
    Flashcards due for review.

    Not paginated: a session returns due cards up to ``limit``. ``total_due`` and
    ``returned_count`` let the UI show progress ("Reviewing 50 of 120 due cards").
    """
    data: List[StudyCardResponse]
    total_due: int
    returned_count: int


class DeckSummaryResponse(BaseModel):
    """Due count for one deck."""
    id: uuid.UUID
    name: str
    due_count: int


class StudySummaryResponse(BaseModel):
    """Study summary for the dashboard."""
    total_due: int
    next_review_date: Optional[datetime] = None
    decks: List[DeckSummaryResponse]


class SubmitReviewRequest(BaseModel):
    """Review rating for a flashcard."""
    flashcard_id: uuid.UUID = Field(..., description="Flashcard ID")
    rating: int = Field(..., ge=1, le=4, description="1=Again, 2=Hard, 3=Good, 4=Easy")

    class Config:
        json_schema_extra = {
            "example": {
                "flashcard_id": "7b1c2f4e-5d1a-4a53-9c55-0f3f7f0f6a10",
                "rating": 3
            }
        }


class NextIntervalsResponse(BaseModel):
    """Time until the card would be due again for each rating."""
    again: str
    hard: str
    good: str
    easy: str


class ReviewResponse(BaseModel):
    """Updated flashcard and interval preview for each rating."""
    flashcard: FlashcardResponse
    next_intervals: NextIntervalsResponse

    class Config:
        json_schema_extra = {
            "example": {
                "flashcard": {"id": "7b1c2f4e-5d1a-4a53-9c55-0f3f7f0f6a10", "reps": 1, "state": 1},
                "next_intervals": {"again": "1m", "hard": "5m", "good": "10m", "easy": "16d"}
            }
        }
