"""Tests for the scheduling adapter."""
import random
from datetime import UTC, datetime, timedelta
from typing import Dict
from unittest.mock import Mock

import pytest
from fsrs import Rating

from vocabreview.models.review_models import CardState, MemoryState
from vocabreview.services.scheduling import (
    FsrsEngine,
    SchedulingAdapter,
    SchedulingEngine,
    grade_to_rating,
)

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)


class FixedEngine(SchedulingEngine):
    """Returns the same outcome for every rating."""

    def __init__(self, scheduled_days: int):
        self.scheduled_days = scheduled_days

    def compute_schedule(self, memory: MemoryState, now: datetime) -> Dict[Rating, MemoryState]:
        outcome = MemoryState(
            due=now + timedelta(days=self.scheduled_days),
            scheduled_days=self.scheduled_days,
            reps=memory.reps + 1,
            state=CardState.REVIEW,
            last_review=now,
        )
        return {rating: outcome for rating in (Rating.Again, Rating.Hard, Rating.Good, Rating.Easy)}


@pytest.mark.parametrize(
    "grade,rating",
    [(0, Rating.Again), (1, Rating.Again), (2, Rating.Hard), (3, Rating.Good), (4, Rating.Easy), (5, Rating.Easy)],
)
def test_grade_to_rating(grade: int, rating: Rating) -> None:
    assert grade_to_rating(grade) == rating


@pytest.mark.parametrize("scheduled_days", [0, 1, 2])
def test_short_intervals_are_not_fuzzed(scheduled_days: int) -> None:
    rng = Mock()
    adapter = SchedulingAdapter(FixedEngine(scheduled_days), rng=rng)

    outcome = adapter.review(MemoryState(), 3, NOW)

    assert outcome.due == NOW + timedelta(days=scheduled_days)
    rng.uniform.assert_not_called()


def test_long_intervals_are_fuzzed() -> None:
    rng = Mock()
    rng.uniform.return_value = 1.05
    adapter = SchedulingAdapter(FixedEngine(10), rng=rng)

    outcome = adapter.review(MemoryState(), 3, NOW)

    rng.uniform.assert_called_once_with(0.95, 1.05)
    assert outcome.due == NOW + timedelta(days=10) * 1.05
    assert outcome.scheduled_days == 10


@pytest.mark.parametrize("seed", range(5))
def test_fuzzed_due_stays_in_window(seed: int) -> None:
    adapter = SchedulingAdapter(FixedEngine(20), rng=random.Random(seed))
    outcome = adapter.review(MemoryState(), 4, NOW)
    assert NOW + timedelta(days=19) <= outcome.due <= NOW + timedelta(days=21)


def test_adapter_uses_branch_for_grade(fake_engine) -> None:
    adapter = SchedulingAdapter(fake_engine, rng=random.Random(0))
    assert adapter.review(MemoryState(), 1, NOW).scheduled_days == int(Rating.Again)
    assert adapter.review(MemoryState(), 2, NOW).scheduled_days == int(Rating.Hard)


def test_engine_outcome_is_not_mutated() -> None:
    outcome = MemoryState(due=NOW + timedelta(days=10), scheduled_days=10)
    engine = Mock(spec=SchedulingEngine)
    engine.compute_schedule.return_value = {rating: outcome for rating in Rating}
    adapter = SchedulingAdapter(engine, rng=random.Random(1))

    adapter.review(MemoryState(), 3, NOW)

    assert outcome.due == NOW + timedelta(days=10)


def test_fsrs_engine_new_card() -> None:
    outcomes = FsrsEngine(request_retention=0.9).compute_schedule(MemoryState(), NOW)

    assert set(outcomes) == {Rating.Again, Rating.Hard, Rating.Good, Rating.Easy}
    good = outcomes[Rating.Good]
    assert good.reps == 1
    assert good.last_review == NOW
    assert good.due > NOW
    assert good.stability is not None
    assert good.difficulty is not None
    assert outcomes[Rating.Easy].due >= good.due


def test_fsrs_engine_lapse_on_review_card() -> None:
    memory = MemoryState(
        due=NOW,
        stability=10.0,
        difficulty=5.0,
        scheduled_days=10,
        reps=5,
        lapses=1,
        state=CardState.REVIEW,
        last_review=NOW - timedelta(days=10),
    )
    outcomes = FsrsEngine().compute_schedule(memory, NOW)

    again = outcomes[Rating.Again]
    assert again.lapses == 2
    assert again.reps == 6
    assert again.state == CardState.RELEARNING
    assert again.elapsed_days == 10
    assert outcomes[Rating.Good].lapses == 1
    assert outcomes[Rating.Good].state == CardState.REVIEW
    assert outcomes[Rating.Good].scheduled_days > 2


def test_fsrs_round_trip_through_adapter() -> None:
    adapter = SchedulingAdapter(FsrsEngine(), rng=random.Random(2))
    first = adapter.review(MemoryState(), 3, NOW)
    second = adapter.review(first, 3, first.due)
    assert second.reps == 2
    assert second.due > first.due
