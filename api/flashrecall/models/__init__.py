"""
Models package - imports all models so they register with SQLModel metadata.
"""
from flashrecall.models.enums import CardState, Rating, FlashcardSource, GenerationEventType
from flashrecall.models.profile import Profile
from flashrecall.models.deck import Deck
from flashrecall.models.flashcard import Flashcard
from flashrecall.models.generation_event import GenerationEvent

__all__ = [
    'CardState',
    'Rating',
    'FlashcardSource',
    'GenerationEventType',
    'Profile',
    'Deck',
    'Flashcard',
    'GenerationEvent',
]
