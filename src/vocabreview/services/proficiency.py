"""Proficiency score shown next to each word."""
from vocabreview.config import settings


class ProficiencyScorer:
    """Moves a 0-5 mastery score by the grade's distance from Good."""

    def __init__(
        self,
        neutral_grade: int = settings.review.proficiency_neutral_grade,
        max_score: int = settings.review.proficiency_max,
        first_recall_floor: int = settings.review.first_recall_floor,
    ):
        self.neutral_grade = neutral_grade
        self.max_score = max_score
        self.first_recall_floor = first_recall_floor

    def score(self, previous: int, grade: int) -> int:
        previous = previous or 0
        new_score = previous + (grade - self.neutral_grade)
        # A first successful recall always shows progress
        if previous == 0 and grade >= self.neutral_grade:
            new_score = max(self.first_recall_floor, new_score)
        return max(0, min(self.max_score, new_score))
