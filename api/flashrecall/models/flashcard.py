"""
Flashcard model.
"""
from sqlalchemy import Index
from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, TYPE_CHECKING
from datetime import datetime
import uuid

from flashrecall.models.enums import CardState, FlashcardSource
from flashrecall.utils.time_utils import utcnow

if TYPE_CHECKING:
    from flashrecall.models.deck import Deck


class Flashcard(SQLModel, table=True):
    """Flashcard table - study content plus its spaced-repetition state."""
    __tablename__ = "flashcards"
    __table_args__ = (
        # Due-card queries filter and sort on next_review
        Index("idx_flashcards_next_review", "next_review"),
        Index("idx_flashcards_deck_next_review", "deck_id", "next_review"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    deck_id: uuid.UUID = Field(foreign_key="decks.id", index=True)
    front: str
    back: str
    source: FlashcardSource = Field(default=FlashcardSource.MANUAL)

    # Scheduling state, written only by the review pipeline
    stability: float = Field(default=0.0)
    difficulty: float = Field(default=0.0)
    elapsed_days: int = Field(default=0)
    scheduled_days: int = Field(default=0)
    reps: int = Field(default=0)
    lapses: int = Field(default=0)
    state: int = Field(default=int(CardState.NEW))  # CardState value
    last_review: Optional[datetime] = None
    next_review: datetime = Field(default_factory=utcnow)  # New cards are due immediately

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    # Relationships
    deck: "Deck" = Relationship(back_populates="flashcards")
