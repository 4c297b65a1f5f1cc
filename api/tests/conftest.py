import os
import uuid
from datetime import datetime

import pytest

os.environ.setdefault("DATABASE_URL", "sqlite://")

from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session

from flashrecall.core.database import build_engine, get_session
from flashrecall.main import app
from flashrecall.models.models import Deck, Flashcard, Profile
from flashrecall.services.drafting_service import FlashcardDraft, get_drafting_client
from flashrecall.utils.time_utils import utcnow

NOW = datetime(2024, 6, 15, 12, 0, 0)
TODAY = NOW.date()


class FakeDraftingClient:
    """Drafting client returning canned drafts, or raising ``error``."""

    def __init__(self, drafts=None, error=None):
        self.drafts = drafts if drafts is not None else [
            FlashcardDraft(front=f"Question {i}", back=f"Answer {i}") for i in range(3)
        ]
        self.error = error
        self.calls = []

    def generate(self, source_text, max_cards):
        self.calls.append((source_text, max_cards))
        if self.error is not None:
            raise self.error
        return list(self.drafts)


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def make_profile(session):
    def _make_profile(user_id=None, count=0, reset_date=None):
        profile = Profile(
            user_id=user_id or uuid.uuid4(),
            monthly_ai_flashcards_count=count,
            ai_limit_reset_date=reset_date or utcnow().date().replace(day=1),
        )
        session.add(profile)
        session.commit()
        session.refresh(profile)
        return profile
    return _make_profile


@pytest.fixture
def make_deck(session):
    def _make_deck(profile, name="Deck"):
        deck = Deck(user_id=profile.user_id, name=name)
        session.add(deck)
        session.commit()
        session.refresh(deck)
        return deck
    return _make_deck


@pytest.fixture
def make_flashcard(session):
    def _make_flashcard(deck, front="Front", back="Back", **fields):
        flashcard = Flashcard(deck_id=deck.id, front=front, back=back, **fields)
        session.add(flashcard)
        session.commit()
        session.refresh(flashcard)
        return flashcard
    return _make_flashcard


@pytest.fixture
def drafting_client():
    return FakeDraftingClient()


@pytest.fixture
def client(engine, drafting_client):
    def override_get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_drafting_client] = lambda: drafting_client
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(user_id) -> dict:
    return {"X-User-Id": str(user_id)}
