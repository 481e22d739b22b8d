"""Grading of typed answers against the expected word."""
import logging

from nltk import edit_distance

from vocabreview.config import settings
from vocabreview.models.review_models import AnswerResult, Feedback

logger = logging.getLogger(__name__)

GRADE_AGAIN = 1
GRADE_HARD = 2
GRADE_GOOD = 3
GRADE_EASY = 4


def normalize_answer(text: str) -> str:
    """Lower-case and trim an answer before comparison."""
    return (text or "").lower().strip()


def levenshtein_distance(a: str, b: str) -> int:
    """Character edit distance with unit insert, delete and substitute costs."""
    return edit_distance(a or "", b or "", substitution_cost=1, transpositions=False)


class AnswerEvaluator:
    """Edit-distance based grader for strict review modes."""

    def __init__(
        self,
        typo_min_length: int = settings.review.typo_min_length,
        typo_max_distance: int = settings.review.typo_max_distance,
    ):
        self.typo_min_length = typo_min_length
        self.typo_max_distance = typo_max_distance

    def evaluate(self, answer: str, expected: str) -> AnswerResult:
        """Grade one answer. A near miss on a long word counts as a typo."""
        normalized_answer = normalize_answer(answer)
        normalized_expected = normalize_answer(expected)

        if normalized_answer == normalized_expected:
            return AnswerResult(grade=GRADE_GOOD, feedback=Feedback.CORRECT, allow_retry=False)

        distance = levenshtein_distance(normalized_answer, normalized_expected)
        if len(normalized_expected) > self.typo_min_length and distance <= self.typo_max_distance:
            logger.debug(f"Typo accepted: {normalized_answer!r} vs {normalized_expected!r}")
            return AnswerResult(grade=GRADE_HARD, feedback=Feedback.TYPO, allow_retry=False)

        return AnswerResult(grade=GRADE_AGAIN, feedback=Feedback.INCORRECT, allow_retry=True)


def evaluate_answer(answer: str, expected: str) -> AnswerResult:
    """Grade with the configured typo tolerance."""
    return AnswerEvaluator().evaluate(answer, expected)
