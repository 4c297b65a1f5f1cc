"""
Profile schemas.
"""
from pydantic import BaseModel
from datetime import date
import uuid


class ProfileResponse(BaseModel):
    """Profile with this month's AI generation usage."""
    user_id: uuid.UUID
    monthly_ai_flashcards_count: int
    ai_limit_reset_date: date
    monthly_ai_limit: int
    remaining_ai_limit: int
