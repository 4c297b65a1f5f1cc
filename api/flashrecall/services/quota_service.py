"""
Quota service: monthly AI flashcard generation counter.

Each profile carries ``monthly_ai_flashcards_count`` and ``ai_limit_reset_date``
(the first day of the month the count belongs to). The counter is reset lazily:
whenever it is accessed in a later month it is first rewritten to
``{0, first day of the current month}``.

Every write is a single conditional UPDATE, so two concurrent reservations can
never both pass the ceiling check.
"""
# pyright: reportAttributeAccessIssue=false
# pyright: reportArgumentType=false
import logging
import uuid
from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy import case, update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from flashrecall.core.config import settings
from flashrecall.core.exceptions import (
    PersistenceError,
    ProfileNotFoundError,
    QuotaExceededError,
    ValidationError,
)
from flashrecall.models.models import Profile
from flashrecall.utils.time_utils import utcnow, first_of_month

logger = logging.getLogger(__name__)


@dataclass
class QuotaReservation:
    """Result of an approved reservation."""
    approved: bool
    reserved: int
    remaining: int
    reset_date: date


@dataclass
class QuotaUsage:
    """Current month's usage for a profile."""
    count: int
    limit: int
    remaining: int
    reset_date: date


def _apply_lazy_reset(session: Session, user_id: uuid.UUID, today: date) -> bool:
    """
    Reset a counter left over from an earlier month. Commits.

    Returns:
        True if the counter was reset
    """
    month_start = first_of_month(today)
    statement = (
        update(Profile)
        .where(
            Profile.user_id == user_id,
            Profile.ai_limit_reset_date < month_start
        )
        .values(
            monthly_ai_flashcards_count=0,
            ai_limit_reset_date=month_start,
            updated_at=utcnow()
        )
        .execution_options(synchronize_session=False)
    )
    result = session.exec(statement)  # type: ignore
    was_reset = result.rowcount > 0
    session.commit()
    if was_reset:
        logger.info(f"AI quota reset for user {user_id}: new period starts {month_start.isoformat()}")
    return was_reset


def _read_counter(session: Session, user_id: uuid.UUID):
    """Fresh (count, reset_date) row for the profile, or None."""
    return session.exec(
        select(Profile.monthly_ai_flashcards_count, Profile.ai_limit_reset_date)
        .where(Profile.user_id == user_id)
    ).first()


def check_and_reserve(
    session: Session,
    user_id: uuid.UUID,
    requested_count: int,
    today: Optional[date] = None,
    limit: Optional[int] = None
) -> QuotaReservation:
    """
    Reserve ``requested_count`` generations against the monthly limit.

    The reservation is all-or-nothing: the counter advances by exactly
    ``requested_count`` or not at all.

    Args:
        session: Database session
        user_id: Profile owner
        requested_count: Number of flashcards to reserve (>= 1)
        today: Current date (defaults to today in UTC)
        limit: Monthly limit (defaults to settings.monthly_ai_limit)

    Returns:
        QuotaReservation with approved=True, the remaining allowance and the
        reset date of the period the reservation was charged to

    Raises:
        ValidationError: If requested_count < 1
        ProfileNotFoundError: If the user has no profile
        QuotaExceededError: If the reservation would exceed the limit
        PersistenceError: If the counter could not be updated
    """
    if requested_count < 1:
        raise ValidationError("requested_count must be at least 1")

    limit = settings.monthly_ai_limit if limit is None else limit
    today = today or utcnow().date()

    try:
        _apply_lazy_reset(session, user_id, today)

        statement = (
            update(Profile)
            .where(
                Profile.user_id == user_id,
                Profile.monthly_ai_flashcards_count + requested_count <= limit
            )
            .values(
                monthly_ai_flashcards_count=Profile.monthly_ai_flashcards_count + requested_count,
                updated_at=utcnow()
            )
            .execution_options(synchronize_session=False)
        )
        result = session.exec(statement)  # type: ignore
        approved = result.rowcount == 1
        session.commit()

        row = _read_counter(session, user_id)
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Failed to reserve AI quota for user {user_id}", exc_info=e)
        raise PersistenceError() from e

    if row is None:
        raise ProfileNotFoundError("Profile not found")

    current_count, reset_date = row
    if not approved:
        logger.warning(
            f"AI quota exceeded for user {user_id}: requested {requested_count}, "
            f"used {current_count}/{limit}"
        )
        raise QuotaExceededError(current_count=current_count, limit=limit, reset_date=reset_date)

    logger.info(f"AI quota reserved for user {user_id}: {requested_count} (used {current_count}/{limit})")
    return QuotaReservation(
        approved=True,
        reserved=requested_count,
        remaining=max(0, limit - current_count),
        reset_date=reset_date,
    )


def release(session: Session, user_id: uuid.UUID, count: int, reset_date: date) -> bool:
    """
    Hand back ``count`` reserved generations.

    The counter never drops below zero, and nothing is released once the
    counter has moved on to a later period than ``reset_date``.

    Returns:
        True if the counter was decremented

    Raises:
        PersistenceError: If the counter could not be updated
    """
    if count <= 0:
        return False

    current = Profile.monthly_ai_flashcards_count
    statement = (
        update(Profile)
        .where(
            Profile.user_id == user_id,
            Profile.ai_limit_reset_date == reset_date
        )
        .values(
            monthly_ai_flashcards_count=case((current >= count, current - count), else_=0),
            updated_at=utcnow()
        )
        .execution_options(synchronize_session=False)
    )
    try:
        result = session.exec(statement)  # type: ignore
        released = result.rowcount > 0
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Failed to release {count} AI quota for user {user_id}", exc_info=e)
        raise PersistenceError() from e

    if released:
        logger.info(f"AI quota released for user {user_id}: {count}")
    return released


def get_usage(
    session: Session,
    user_id: uuid.UUID,
    today: Optional[date] = None,
    limit: Optional[int] = None
) -> QuotaUsage:
    """
    Current month's AI usage, applying the lazy reset first.

    Raises:
        ProfileNotFoundError: If the user has no profile
        PersistenceError: If the reset could not be saved
    """
    limit = settings.monthly_ai_limit if limit is None else limit
    today = today or utcnow().date()

    try:
        _apply_lazy_reset(session, user_id, today)
        row = _read_counter(session, user_id)
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Failed to read AI quota for user {user_id}", exc_info=e)
        raise PersistenceError() from e

    if row is None:
        raise ProfileNotFoundError("Profile not found")

    count, reset_date = row
    return QuotaUsage(
        count=count,
        limit=limit,
        remaining=max(0, limit - count),
        reset_date=reset_date,
    )
