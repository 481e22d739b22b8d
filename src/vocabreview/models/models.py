"""Database models for the reference progress store."""
from sqlalchemy import JSON, Column, DateTime, Float, Integer, String

from vocabreview.models.base import Base, TimestampMixin


class LibraryEntry(Base, TimestampMixin):
    """A word in the user's library together with its review progress."""

    __tablename__ = "user_library"

    id = Column(Integer, primary_key=True)
    word_id = Column(String, nullable=False, index=True)
    word = Column(String, nullable=False)
    part_of_speech = Column(String, default="")
    entries = Column(JSON, default=list)
    selected_definitions = Column(JSON, default=list)
    folder_ids = Column(JSON, default=list)
    audio_url = Column(String, nullable=True)
    us_audio_url = Column(String, nullable=True)
    uk_audio_url = Column(String, nullable=True)

    # Memory state written back after each graded card
    due = Column(DateTime(timezone=True), nullable=True)
    next_review = Column(DateTime(timezone=True), nullable=True)
    stability = Column(Float, nullable=True)
    difficulty = Column(Float, nullable=True)
    elapsed_days = Column(Integer, default=0)
    scheduled_days = Column(Integer, default=0)
    reps = Column(Integer, default=0)
    lapses = Column(Integer, default=0)
    state = Column(Integer, default=0)
    last_review = Column(DateTime(timezone=True), nullable=True)
    learning_step = Column(Integer, nullable=True)
    proficiency_score = Column(Integer, default=0)
