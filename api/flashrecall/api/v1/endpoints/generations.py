"""
AI generation endpoints.
"""
# pyright: reportAttributeAccessIssue=false
# pyright: reportCallIssue=false
from fastapi import APIRouter, Depends, status
from sqlmodel import Session
import uuid

from flashrecall.core.database import get_session
from flashrecall.core.security import get_current_user_id
from flashrecall.schemas.generation import (
    CreateGenerationRequest,
    FlashcardDraftResponse,
    GenerationEventResponse,
    GenerationResponse,
    RejectDraftRequest,
)
from flashrecall.services.drafting_service import GeminiDraftingClient, get_drafting_client
from flashrecall.services.generation_service import generate_flashcards, reject_draft

router = APIRouter(prefix="/generations", tags=["generations"])


@router.post("", response_model=GenerationResponse, status_code=status.HTTP_200_OK)
def create_generation(
    request: CreateGenerationRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: Session = Depends(get_session),
    drafting_client: GeminiDraftingClient = Depends(get_drafting_client)
):
    """
    Draft flashcards from source text with AI.

    Drafts are not saved; the client accepts, edits or rejects them.
    Each draft counts against the monthly AI limit.
    """
    result = generate_flashcards(
        session,
        user_id,
        request.deck_id,
        request.source_text,
        drafting_client
    )
    return GenerationResponse(
        generation_id=result.generation_id,
        drafts=[FlashcardDraftResponse(front=d.front, back=d.back) for d in result.drafts],
        generated_count=result.generated_count,
        remaining_ai_limit=result.remaining_ai_limit
    )


@router.post(
    "/{generation_id}/reject",
    response_model=GenerationEventResponse,
    status_code=status.HTTP_201_CREATED
)
def reject_generation_draft(
    generation_id: uuid.UUID,
    request: RejectDraftRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: Session = Depends(get_session)
):
    """Record that a draft of this generation was rejected."""
    event = reject_draft(session, user_id, generation_id, request.draft_index)
    return GenerationEventResponse.model_validate(event)
