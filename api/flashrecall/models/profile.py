"""
Profile model.
"""
from sqlmodel import SQLModel, Field, Relationship
from typing import List, TYPE_CHECKING
from datetime import date, datetime
import uuid

from flashrecall.utils.time_utils import utcnow, first_of_month

if TYPE_CHECKING:
    from flashrecall.models.deck import Deck


def _current_month_start() -> date:
    return first_of_month(utcnow().date())


class Profile(SQLModel, table=True):
    """Profile table - one row per user, holds the monthly AI usage counter."""
    __tablename__ = "profiles"

    user_id: uuid.UUID = Field(primary_key=True)
    monthly_ai_flashcards_count: int = Field(default=0)
    ai_limit_reset_date: date = Field(default_factory=_current_month_start)  # Always the 1st of a month
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    # Relationships
    decks: List["Deck"] = Relationship(back_populates="profile")
