"""Test configuration."""
import os
import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Dict

import pytest
from dotenv import load_dotenv
from faker import Faker

# Set test environment before any imports
os.environ["ENV"] = "test"

# Load test environment variables
test_env_path = Path(__file__).parent.parent.parent.parent / ".env.test"
load_dotenv(test_env_path)
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="vocabreview-test-"))
os.environ.setdefault("AUDIO_ENABLED", "false")

# Import after environment setup
from fsrs import Rating

from vocabreview.config import ensure_directories
from vocabreview.models.review_models import (
    CardState,
    DefinitionEntry,
    MemoryState,
    VocabularyWord,
)
from vocabreview.services.scheduling import SchedulingEngine

fake = Faker()


class FakeEngine(SchedulingEngine):
    """Schedules each rating its own number of days ahead."""

    def __init__(self):
        self.calls = []

    def compute_schedule(self, memory: MemoryState, now: datetime) -> Dict[Rating, MemoryState]:
        self.calls.append((memory, now))
        return {
            rating: MemoryState(
                due=now + timedelta(days=int(rating)),
                stability=float(rating),
                difficulty=5.0,
                scheduled_days=int(rating),
                reps=memory.reps + 1,
                lapses=memory.lapses + (1 if rating == Rating.Again else 0),
                state=CardState.REVIEW,
                last_review=now,
            )
            for rating in (Rating.Again, Rating.Hard, Rating.Good, Rating.Easy)
        }


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Set up test environment before each test."""
    ensure_directories()
    yield


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def make_word() -> Callable[..., VocabularyWord]:
    """Factory for vocabulary words."""
    counter = {"n": 0}

    def _make_word(
        word: str = None,
        due: datetime = None,
        proficiency_score: int = 0,
        folder_ids=("default",),
        example: str = "",
        translation: str = None,
        **kwargs,
    ) -> VocabularyWord:
        counter["n"] += 1
        text = word or f"{fake.word()}{counter['n']}"
        return VocabularyWord(
            id=f"w{counter['n']}",
            word=text,
            entries=[DefinitionEntry(
                definition=fake.sentence(),
                translation=translation or fake.word(),
                example=example,
            )],
            folder_ids=set(folder_ids),
            library_id=counter["n"],
            memory=MemoryState(due=due),
            proficiency_score=proficiency_score,
            **kwargs,
        )

    return _make_word
