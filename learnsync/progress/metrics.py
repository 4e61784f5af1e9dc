"""
Pure progress metrics (no DB calls).
"""

from __future__ import annotations

from typing import Optional, Sequence

from learnsync import scoring
from learnsync.progress.types import ProgressReport
from learnsync.schemas import Question


def question_contribution(score: float) -> float:
    """
    Share of a question that counts as learned, in [0, 1].

    Untouched questions (INITIAL_SCORE) and anything harder count 0,
    a learned question counts 1.
    """
    return max(0.0, (scoring.INITIAL_SCORE - score) / scoring.INITIAL_SCORE)


def compute_progress(questions: Sequence[Question], tag: Optional[str] = None) -> ProgressReport:
    """
    Weighted progress: mean contribution over all questions, as a percentage.
    """
    total = len(questions)
    learned_questions = [q for q in questions if scoring.is_learned(q.score)]
    difficult = sum(1 for q in questions if scoring.is_difficult(q.score))
    contribution = sum(question_contribution(q.score) for q in questions)
    progress = round(contribution / total * 100) if total else 0

    return ProgressReport(
        tag=tag,
        total=total,
        learned=len(learned_questions),
        difficult=difficult,
        progress_percent=progress,
        learned_questions=learned_questions,
    )


def collect_tags(questions: Sequence[Question]) -> list[str]:
    tags: set[str] = set()
    for question in questions:
        tags.update(question.tags)
    return sorted(tags)
