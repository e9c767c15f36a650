"""
Scoring rules for quiz answers.

Choice questions are graded automatically against the selected option.
Essay answers are stored ungraded (0 points) and left to the instructor.
"""
from dataclasses import dataclass
from typing import Optional

from core.config import settings


@dataclass
class GradedAnswer:
    question_id: int
    selected_option_id: Optional[int]
    answer_text: Optional[str]
    is_correct: bool
    points_earned: int


def question_points(points: Optional[int]) -> int:
    """Point value of a question; unset points count as 1."""
    return 1 if points is None else points


def grade_answer(
    question_id: int,
    points: Optional[int],
    selected_option_id: Optional[int] = None,
    answer_text: Optional[str] = None,
    option_is_correct: Optional[bool] = None,
) -> GradedAnswer:
    """
    Grade a single answer.

    Args:
        question_id: Question being answered
        points: The question's point value (None counts as 1)
        selected_option_id: Chosen option, for choice questions
        answer_text: Free text, for essay questions
        option_is_correct: Correctness of the chosen option, or None when the
            option does not exist or belongs to another question

    Returns:
        GradedAnswer ready to be persisted
    """
    is_correct = selected_option_id is not None and bool(option_is_correct)
    return GradedAnswer(
        question_id=question_id,
        selected_option_id=selected_option_id,
        answer_text=answer_text,
        is_correct=is_correct,
        points_earned=question_points(points) if is_correct else 0,
    )


def effective_passing_score(passing_score: Optional[int]) -> int:
    return settings.DEFAULT_PASSING_SCORE if passing_score is None else passing_score


def is_passed(total_score: int, passing_score: Optional[int]) -> bool:
    # Raw points against the threshold, no percentage normalization
    return total_score >= effective_passing_score(passing_score)
