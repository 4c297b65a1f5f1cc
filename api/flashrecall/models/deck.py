"""
Deck model.
"""
from sqlmodel import SQLModel, Field, Relationship
from typing import List, TYPE_CHECKING
from datetime import datetime
import uuid

from flashrecall.utils.time_utils import utcnow

if TYPE_CHECKING:
    from flashrecall.models.profile import Profile
    from flashrecall.models.flashcard import Flashcard


class Deck(SQLModel, table=True):
    """Deck table - a named collection of flashcards owned by one user."""
    __tablename__ = "decks"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="profiles.user_id", index=True)
    name: str
    created_at: datetime = Field(default_factory=utcnow)

    # Relationships
    profile: "Profile" = Relationship(back_populates="decks")
    flashcards: List["Flashcard"] = Relationship(back_populates="deck")
