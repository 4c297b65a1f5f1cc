"""
Profile endpoints.
"""
from fastapi import APIRouter, Depends, status
from sqlmodel import Session
import uuid

from flashrecall.core.database import get_session
from flashrecall.core.security import get_current_user_id
from flashrecall.schemas.profile import ProfileResponse
from flashrecall.services.quota_service import get_usage

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("", response_model=ProfileResponse, status_code=status.HTTP_200_OK)
def get_profile(
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: Session = Depends(get_session)
):
    """Current user's AI generation usage for this month."""
    usage = get_usage(session, user_id)
    return ProfileResponse(
        user_id=user_id,
        monthly_ai_flashcards_count=usage.count,
        ai_limit_reset_date=usage.reset_date,
        monthly_ai_limit=usage.limit,
        remaining_ai_limit=usage.remaining
    )
