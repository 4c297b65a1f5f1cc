"""
Dashboard service: shapes the due summary for display.
"""
import uuid
from datetime import datetime
from typing import Optional

from sqlmodel import Session

from flashrecall.schemas.study import StudySummaryResponse, DeckSummaryResponse
from flashrecall.services.study_service import get_due_summary


def build_study_summary(
    session: Session,
    user_id: uuid.UUID,
    now: Optional[datetime] = None
) -> StudySummaryResponse:
    """Due-card overview for the dashboard: totals, next review date and per-deck counts."""
    summary = get_due_summary(session, user_id, now=now)
    return StudySummaryResponse(
        total_due=summary.total_due,
        next_review_date=summary.next_review_date,
        decks=[
            DeckSummaryResponse(id=deck.deck_id, name=deck.deck_name, due_count=deck.due_count)
            for deck in summary.per_deck
        ],
    )
