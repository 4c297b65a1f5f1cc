"""
Model enums.
"""
from enum import Enum, IntEnum


class CardState(IntEnum):
    """Scheduling state of a flashcard (stored as an integer)."""
    NEW = 0
    LEARNING = 1
    REVIEW = 2
    RELEARNING = 3


class Rating(IntEnum):
    """Review grade chosen by the user. Order matters: Again < Hard < Good < Easy."""
    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4


class FlashcardSource(str, Enum):
    """How a flashcard was created."""
    AI = "ai"
    MANUAL = "manual"


class GenerationEventType(str, Enum):
    """
    Analytics events recorded for AI generation sessions.

    This service writes GENERATED and REJECTED. ACCEPTED and EDITED are written
    by flashcard CRUD when a draft is saved; they stay here so the enum matches
    the generation_events column domain.
    """
    GENERATED = "GENERATED"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    EDITED = "EDITED"
