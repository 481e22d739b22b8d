"""Selection of the words reviewed in one session."""
import logging
import random
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from vocabreview.config import settings
from vocabreview.models.review_models import VocabularyWord

logger = logging.getLogger(__name__)


def rollover_cutoff(now: datetime) -> datetime:
    """Next local midnight after now."""
    local_now = now.astimezone()
    return (local_now + timedelta(days=1)).replace(hour=0, minute=0, second=0, microsecond=0)


def _due_timestamp(word: VocabularyWord, fallback: float) -> float:
    due = word.memory.due
    return due.timestamp() if due is not None else fallback


def is_review_due(word: VocabularyWord, cutoff: datetime) -> bool:
    """A word without a due date is always due."""
    due = word.memory.due
    if due is None:
        return True
    return due <= cutoff


def select_review_words(
    words: Sequence[VocabularyWord],
    batch_size: int,
    now: Optional[datetime] = None,
) -> List[VocabularyWord]:
    """Prioritized, size-bounded selection before shuffling.

    Due words come first, soonest due first. Remaining slots go to new words
    (proficiency 0) in pool order and then to the not-yet-due words closest
    to their due date.
    """
    if len(words) <= batch_size:
        return list(words)

    cutoff = rollover_cutoff(now or datetime.now().astimezone())

    due_words = sorted(
        (word for word in words if is_review_due(word, cutoff)),
        key=lambda word: _due_timestamp(word, 0),
    )
    if len(due_words) >= batch_size:
        return due_words[:batch_size]

    slots_needed = batch_size - len(due_words)
    due_ids = {word.id for word in due_words}
    new_words = [
        word for word in words
        if (word.proficiency_score or 0) == 0 and word.id not in due_ids
    ][:slots_needed]
    selected_ids = due_ids | {word.id for word in new_words}
    remaining_slots = slots_needed - len(new_words)

    not_due_words: List[VocabularyWord] = []
    if remaining_slots > 0:
        not_due_words = sorted(
            (
                word for word in words
                if not is_review_due(word, cutoff) and word.id not in selected_ids
            ),
            key=lambda word: _due_timestamp(word, float("inf")),
        )[:remaining_slots]

    logger.debug(
        f"Batch from {len(words)} words: {len(due_words)} due, "
        f"{len(new_words)} new, {len(not_due_words)} not yet due"
    )
    return (due_words + new_words + not_due_words)[:batch_size]


def build_review_batch(
    words: Sequence[VocabularyWord],
    batch_size: int = settings.review.batch_size,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> List[VocabularyWord]:
    """Select a batch and shuffle it so position does not reveal urgency."""
    if len(words) <= batch_size:
        return list(words)

    batch = select_review_words(words, batch_size, now)
    rng = rng or random.Random()
    # Fisher-Yates
    for i in range(len(batch) - 1, 0, -1):
        j = rng.randint(0, i)
        batch[i], batch[j] = batch[j], batch[i]
    return batch
