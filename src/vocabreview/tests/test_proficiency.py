"""Tests for proficiency scoring."""
import pytest

from vocabreview.services.proficiency import ProficiencyScorer


@pytest.fixture
def scorer() -> ProficiencyScorer:
    return ProficiencyScorer(neutral_grade=3, max_score=5, first_recall_floor=1)


@pytest.mark.parametrize("previous", range(6))
@pytest.mark.parametrize("grade", [1, 2, 3, 4])
def test_score_stays_in_range(scorer: ProficiencyScorer, previous: int, grade: int) -> None:
    assert 0 <= scorer.score(previous, grade) <= 5


@pytest.mark.parametrize(
    "previous,grade,expected",
    [
        (0, 3, 1),  # first correct recall shows progress
        (0, 4, 1),
        (0, 2, 0),
        (0, 1, 0),
        (3, 3, 3),
        (3, 4, 4),
        (4, 2, 3),
        (2, 1, 0),
        (5, 4, 5),
        (1, 1, 0),
    ],
)
def test_score_changes_by_grade(scorer: ProficiencyScorer, previous: int, grade: int, expected: int) -> None:
    assert scorer.score(previous, grade) == expected


def test_missing_previous_score_counts_as_new(scorer: ProficiencyScorer) -> None:
    assert scorer.score(None, 3) == 1


def test_constants_are_configurable() -> None:
    scorer = ProficiencyScorer(neutral_grade=2, max_score=10, first_recall_floor=2)
    assert scorer.score(0, 2) == 2
    assert scorer.score(9, 4) == 10
