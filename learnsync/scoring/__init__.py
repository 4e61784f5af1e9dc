"""
Scoring - answer matching and score updates.

Quick start:
    from learnsync import scoring

    correct = scoring.is_answer_correct("to run", "laufen (to run)")
    new_score = scoring.calculate_new_score(question.score, correct)
"""

from learnsync.scoring.constants import (
    CORRECT_PENALTY,
    DIFFICULT_THRESHOLD,
    INITIAL_SCORE,
    MAX_SCORE,
    MIN_SCORE,
    WRONG_PENALTY,
)
from learnsync.scoring.engine import (
    acceptable_answers,
    calculate_new_score,
    clamp_score,
    is_answer_correct,
    is_difficult,
    is_learned,
)

__all__ = [
    # Functions
    "acceptable_answers",
    "calculate_new_score",
    "clamp_score",
    "is_answer_correct",
    "is_difficult",
    "is_learned",

    # Constants
    "CORRECT_PENALTY",
    "DIFFICULT_THRESHOLD",
    "INITIAL_SCORE",
    "MAX_SCORE",
    "MIN_SCORE",
    "WRONG_PENALTY",
]
