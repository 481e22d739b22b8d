"""Scheduling engine wrapper: rating mapping, due-date fuzzing, serialization."""
import copy
import logging
import random
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import Dict, Optional

from fsrs import Card, Rating, Scheduler, State

from vocabreview.config import settings
from vocabreview.models.review_models import CardState, MemoryState, ensure_utc

logger = logging.getLogger(__name__)


def grade_to_rating(grade: int) -> Rating:
    """Map a 1-4 grade to the engine's rating vocabulary."""
    if grade <= 1:
        return Rating.Again
    if grade == 2:
        return Rating.Hard
    if grade == 3:
        return Rating.Good
    return Rating.Easy


class SchedulingEngine(ABC):
    """Computes the next memory state for every possible rating."""

    @abstractmethod
    def compute_schedule(self, memory: MemoryState, now: datetime) -> Dict[Rating, MemoryState]:
        raise NotImplementedError("Subclasses must implement this method")


class FsrsEngine(SchedulingEngine):
    """Scheduling engine backed by the fsrs package."""

    def __init__(self, request_retention: float = settings.review.request_retention):
        # Fuzzing is applied by SchedulingAdapter
        self.scheduler = Scheduler(desired_retention=request_retention, enable_fuzzing=False)

    def _to_card(self, memory: MemoryState, now: datetime) -> Card:
        due = memory.due or now
        if (
            memory.state == CardState.NEW
            or memory.stability is None
            or memory.difficulty is None
        ):
            return Card(state=State.Learning, step=0, due=due)

        state = State(int(memory.state))
        step = None if state == State.Review else (memory.learning_step or 0)
        return Card(
            state=state,
            step=step,
            stability=memory.stability,
            difficulty=memory.difficulty,
            due=due,
            last_review=memory.last_review,
        )

    def compute_schedule(self, memory: MemoryState, now: datetime) -> Dict[Rating, MemoryState]:
        now = ensure_utc(now)
        card = self._to_card(memory, now)
        elapsed_days = max(0, (now - memory.last_review).days) if memory.last_review else 0

        outcomes = {}
        for rating in (Rating.Again, Rating.Hard, Rating.Good, Rating.Easy):
            next_card, _ = self.scheduler.review_card(copy.deepcopy(card), rating, review_datetime=now)
            lapses = memory.lapses
            if rating == Rating.Again and memory.state == CardState.REVIEW:
                lapses += 1
            outcomes[rating] = MemoryState(
                due=ensure_utc(next_card.due),
                stability=next_card.stability,
                difficulty=next_card.difficulty,
                elapsed_days=elapsed_days,
                scheduled_days=max(0, (next_card.due - now).days),
                reps=memory.reps + 1,
                lapses=lapses,
                state=CardState(int(next_card.state)),
                last_review=now,
                learning_step=next_card.step,
            )
        return outcomes


class SchedulingAdapter:
    """Turns a grade into the word's next memory state."""

    def __init__(
        self,
        engine: Optional[SchedulingEngine] = None,
        fuzz_min_scheduled_days: int = settings.review.fuzz_min_scheduled_days,
        fuzz_low: float = settings.review.fuzz_low,
        fuzz_high: float = settings.review.fuzz_high,
        rng: Optional[random.Random] = None,
    ):
        self.engine = engine or FsrsEngine()
        self.fuzz_min_scheduled_days = fuzz_min_scheduled_days
        self.fuzz_low = fuzz_low
        self.fuzz_high = fuzz_high
        self.rng = rng or random.Random()

    def review(self, memory: MemoryState, grade: int, now: Optional[datetime] = None) -> MemoryState:
        """Schedule the next review for the given grade."""
        now = ensure_utc(now) if now is not None else datetime.now(UTC)
        rating = grade_to_rating(grade)
        outcome = copy.copy(self.engine.compute_schedule(memory, now)[rating])

        if outcome.due is None:
            outcome.due = now
        if outcome.scheduled_days > self.fuzz_min_scheduled_days:
            # Spread cards scheduled together over neighbouring days
            fuzz_factor = self.rng.uniform(self.fuzz_low, self.fuzz_high)
            outcome.due = now + (outcome.due - now) * fuzz_factor

        logger.debug(
            f"Grade {grade} ({rating.name}): due {outcome.due.isoformat()}, "
            f"{outcome.scheduled_days} scheduled days"
        )
        return outcome
