"""Models for review-related data structures."""
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum, IntEnum
from typing import Any, Dict, List, Mapping, Optional, Set

logger = logging.getLogger(__name__)


class CardState(IntEnum):
    """Scheduling phase of a card, as stored alongside the word."""
    NEW = 0
    LEARNING = 1
    REVIEW = 2
    RELEARNING = 3


class ReviewMode(Enum):
    """Available quiz modes."""
    FLASHCARD = "flashcard"  # Reveal, then self-grade 1-4
    SPELLING = "spelling"  # Type the word from its translation
    CLOZE = "cloze"  # Type the word blanked out of an example
    DICTATION = "dictation"  # Type the word from its pronunciation

    @property
    def is_strict(self) -> bool:
        """Typed modes are graded automatically."""
        return self is not ReviewMode.FLASHCARD


class Feedback(Enum):
    """Classification of a typed answer."""
    CORRECT = "correct"
    TYPO = "typo"
    INCORRECT = "incorrect"
    EXACT = "exact"  # Cloze answer matched the form used in the sentence
    ROOT_MATCH = "root_match"  # Cloze answer was the base form of an inflected usage

    @property
    def display(self) -> "Feedback":
        """Feedback as shown to the user; cloze variants count as correct."""
        if self in (Feedback.EXACT, Feedback.ROOT_MATCH):
            return Feedback.CORRECT
        return self


class SessionPhase(Enum):
    """States of the review session machine."""
    IDLE = "idle"
    PROMPTING = "prompting"
    REVEALED = "revealed"
    AWAITING_NEXT = "awaiting_next"
    COMPLETE = "complete"


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_review_date(value: Any) -> Optional[datetime]:
    """Parse a stored timestamp, returning None when absent or unparsable."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, UTC)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        try:
            return ensure_utc(datetime.fromisoformat(value.strip()))
        except ValueError:
            return None
    return None


def coerce_timestamp(value: Any, now: datetime) -> Optional[datetime]:
    """Missing timestamps stay None; unparsable ones fall back to now."""
    if value is None or value == "":
        return None
    parsed = parse_review_date(value)
    if parsed is None:
        logger.warning(f"Unparsable timestamp {value!r}, using {now.isoformat()}")
        return now
    return parsed


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass
class MemoryState:
    """Memory parameters owned by the scheduling engine round trip."""
    due: Optional[datetime] = None
    stability: Optional[float] = None
    difficulty: Optional[float] = None
    elapsed_days: int = 0
    scheduled_days: int = 0
    reps: int = 0
    lapses: int = 0
    state: CardState = CardState.NEW
    last_review: Optional[datetime] = None
    learning_step: Optional[int] = None

    def __post_init__(self):
        if self.due is not None:
            self.due = ensure_utc(self.due)
        if self.last_review is not None:
            self.last_review = ensure_utc(self.last_review)

    @classmethod
    def from_fields(cls, fields: Mapping[str, Any], now: Optional[datetime] = None) -> "MemoryState":
        """Build a memory state from stored fields, tolerating gaps and bad data."""
        now = ensure_utc(now) if now is not None else datetime.now(UTC)
        due = fields.get("due")
        if due in (None, ""):
            due = fields.get("next_review")
        try:
            state = CardState(_optional_int(fields.get("state")) or 0)
        except ValueError:
            state = CardState.NEW
        return cls(
            due=coerce_timestamp(due, now),
            stability=_optional_float(fields.get("stability")),
            difficulty=_optional_float(fields.get("difficulty")),
            elapsed_days=_optional_int(fields.get("elapsed_days")) or 0,
            scheduled_days=_optional_int(fields.get("scheduled_days")) or 0,
            reps=_optional_int(fields.get("reps")) or 0,
            lapses=_optional_int(fields.get("lapses")) or 0,
            state=state,
            last_review=coerce_timestamp(fields.get("last_review"), now),
            learning_step=_optional_int(fields.get("learning_step")),
        )

    def to_fields(self) -> Dict[str, Any]:
        """Serialize for the persistence collaborator."""
        return {
            "due": _isoformat(self.due),
            "stability": self.stability,
            "difficulty": self.difficulty,
            "elapsed_days": self.elapsed_days,
            "scheduled_days": self.scheduled_days,
            "reps": self.reps,
            "lapses": self.lapses,
            "state": int(self.state),
            "last_review": _isoformat(self.last_review),
            "learning_step": self.learning_step,
        }


def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _optional_int(value: Any) -> Optional[int]:
    number = _optional_float(value)
    if number is None:
        return None
    try:
        return int(number)
    except (OverflowError, ValueError):
        return None


@dataclass
class DefinitionEntry:
    """One sense of a word."""
    definition: str = ""
    translation: str = ""
    example: str = ""
    examples: List[str] = field(default_factory=list)


@dataclass
class VocabularyWord:
    """A learned item with its review progress."""
    id: str
    word: str
    part_of_speech: str = ""
    entries: List[DefinitionEntry] = field(default_factory=list)
    selected_definitions: List[DefinitionEntry] = field(default_factory=list)
    folder_ids: Set[str] = field(default_factory=set)
    library_id: Optional[Any] = None
    audio_url: Optional[str] = None
    us_audio_url: Optional[str] = None
    uk_audio_url: Optional[str] = None
    memory: MemoryState = field(default_factory=MemoryState)
    proficiency_score: int = 0


@dataclass
class AnswerResult:
    """Outcome of grading one typed answer."""
    grade: int
    feedback: Feedback
    allow_retry: bool
    correct_context_word: Optional[str] = None


@dataclass
class ClozeAnswers:
    """Accepted answers and the masked prompt for a cloze card."""
    valid_answers: Set[str]
    context_matches: List[str]
    masked_sentence: str


@dataclass
class CardPrompt:
    """What the caller needs to render the current card."""
    word: VocabularyWord
    mode: ReviewMode
    index: int
    total: int
    entry: DefinitionEntry
    sentence: str = ""
    masked_sentence: str = ""
    translation: str = ""


@dataclass
class SessionSummary:
    """Reported once the last card has been graded."""
    mode: ReviewMode
    total: int
    grades: Dict[str, int] = field(default_factory=dict)
    mistakes: int = 0
