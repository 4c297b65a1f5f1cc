"""
AI generation schemas.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
import uuid

from flashrecall.models.enums import GenerationEventType


class CreateGenerationRequest(BaseModel):
    """Source text to draft flashcards from, and the target deck."""
    source_text: str = Field(..., min_length=1, max_length=5000, description="Text to generate flashcards from")
    deck_id: uuid.UUID = Field(..., description="Deck the drafts are meant for")

    class Config:
        json_schema_extra = {
            "example": {
                "source_text": "Photosynthesis converts light energy into chemical energy stored in glucose.",
                "deck_id": "3f0d8c6e-1b7a-4f2e-9a7d-6c1e2b3a4d5f"
            }
        }


class FlashcardDraftResponse(BaseModel):
    """Proposed flashcard."""
    front: str
    back: str

    class Config:
        from_attributes = True


class GenerationResponse(BaseModel):
    """Drafts from one generation session."""
    generation_id: uuid.UUID
    drafts: List[FlashcardDraftResponse]
    generated_count: int
    remaining_ai_limit: int


class RejectDraftRequest(BaseModel):
    """Index of the rejected draft within its generation."""
    draft_index: int = Field(..., ge=0, description="Zero-based draft index")


class GenerationEventResponse(BaseModel):
    """Logged generation event."""
    id: uuid.UUID
    generation_id: uuid.UUID
    flashcard_id: Optional[uuid.UUID] = None
    event_type: GenerationEventType
    created_at: datetime

    class Config:
        from_attributes = True
