"""
GenerationEvent model.
"""
from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
import uuid

from flashrecall.models.enums import GenerationEventType
from flashrecall.utils.time_utils import utcnow


class GenerationEvent(SQLModel, table=True):
    """GenerationEvent table - raw log of AI draft lifecycle events."""
    __tablename__ = "generation_events"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="profiles.user_id", index=True)
    flashcard_id: Optional[uuid.UUID] = Field(default=None, foreign_key="flashcards.id")
    generation_id: uuid.UUID = Field(index=True)
    event_type: GenerationEventType
    created_at: datetime = Field(default_factory=utcnow)
