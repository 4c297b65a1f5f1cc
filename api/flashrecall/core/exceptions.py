"""
Custom exceptions for the application.

Every exception carries a machine-readable ``code`` and optional ``details``
that the HTTP layer copies into the error body.
"""
from datetime import date
from typing import Any, Dict, Optional


class FlashRecallException(Exception):
    """Base exception for all FlashRecall application exceptions."""
    code = "INTERNAL_ERROR"

    def __init__(self, message: str = "", details: Optional[Dict[str, Any]] = None):
        super().__init__(message or self.__class__.__doc__)
        self.details: Dict[str, Any] = details or {}


class ValidationError(FlashRecallException):
    """Raised when validation fails."""
    code = "INVALID_REQUEST"


class NotFoundError(FlashRecallException):
    """Raised when a requested resource is not found."""
    code = "NOT_FOUND"


class DeckNotFoundError(NotFoundError):
    """Deck not found."""
    code = "DECK_NOT_FOUND"


class FlashcardNotFoundError(NotFoundError):
    """Flashcard not found."""
    code = "FLASHCARD_NOT_FOUND"


class ProfileNotFoundError(NotFoundError):
    """User profile not found."""
    code = "PROFILE_NOT_FOUND"


class GenerationNotFoundError(NotFoundError):
    """Generation not found."""
    code = "GENERATION_NOT_FOUND"


class AuthenticationError(FlashRecallException):
    """Authentication required."""
    code = "UNAUTHORIZED"


class QuotaExceededError(FlashRecallException):
    """Monthly AI generation limit exceeded."""
    code = "AI_LIMIT_EXCEEDED"

    def __init__(self, current_count: int, limit: int, reset_date: date):
        self.current_count = current_count
        self.limit = limit
        self.reset_date = reset_date
        super().__init__(
            "Monthly AI generation limit exceeded",
            details={
                "current_count": current_count,
                "limit": limit,
                "reset_date": reset_date.isoformat(),
            },
        )


class PersistenceError(FlashRecallException):
    """Raised when a storage round-trip fails after the result was computed."""
    code = "PERSISTENCE_FAILURE"
    retryable = True

    def __init__(self, message: str = "Failed to save changes, please retry"):
        super().__init__(message, details={"retryable": True})


class DraftingError(FlashRecallException):
    """Raised when the AI drafting service fails or returns unusable output."""
    code = "AI_SERVICE_ERROR"
