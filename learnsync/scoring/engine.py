"""
Scoring Engine - answer matching and score updates

Pure functions, no I/O. Used by the local answer flow and by the
server-authoritative rescore in the remote store.
"""

from __future__ import annotations

import math
import re

from learnsync.scoring.constants import (
    CORRECT_PENALTY,
    DIFFICULT_THRESHOLD,
    INITIAL_SCORE,
    MAX_SCORE,
    MIN_SCORE,
    WRONG_PENALTY,
)

_PHRASE_SEPARATORS = re.compile(r"[,;]")
_PARENTHESIZED = re.compile(r"\(([^)]*)\)")
_WHITESPACE = re.compile(r"\s+")


def _normalize(text: str) -> str:
    return text.strip().lower()


def acceptable_answers(correct_answer: str) -> set[str]:
    """
    Derive the set of accepted answer forms from a stored answer.

    The answer is split on commas and semicolons. A phrase such as
    "laufen (to run)" registers "laufen", "to run" and the full phrase.

    Args:
        correct_answer: Answer text as stored on the question

    Returns:
        Set of trimmed, lower-cased acceptable forms (never blank)
    """
    forms: set[str] = set()
    for phrase in _PHRASE_SEPARATORS.split(correct_answer or ""):
        if _PARENTHESIZED.search(phrase):
            # Only the gap left by the removed segment is collapsed
            forms.add(_normalize(_WHITESPACE.sub(" ", _PARENTHESIZED.sub(" ", phrase))))
            for inner in _PARENTHESIZED.findall(phrase):
                forms.add(_normalize(inner))
        forms.add(_normalize(phrase))
    forms.discard("")
    return forms


def is_answer_correct(user_input: str, correct_answer: str) -> bool:
    """Check a typed answer against every acceptable form (case-insensitive)."""
    return _normalize(user_input or "") in acceptable_answers(correct_answer)


def clamp_score(score: float) -> float:
    """Clamp a score into [MIN_SCORE, MAX_SCORE]."""
    return max(MIN_SCORE, min(MAX_SCORE, float(score)))


def calculate_new_score(current_score: float, correct: bool) -> float:
    """
    Compute the score after one answer.

    Correct answers lower the score, wrong answers raise it, and the
    result is clamped. A reviewed question never rests on INITIAL_SCORE:
    landing there is nudged one more step in the direction of the answer.

    Args:
        current_score: Score before the answer
        correct: Whether the answer was correct

    Returns:
        New score in [MIN_SCORE, MAX_SCORE]
    """
    if correct:
        new_score = clamp_score(current_score - CORRECT_PENALTY)
    else:
        new_score = clamp_score(current_score + WRONG_PENALTY)

    if math.isclose(new_score, INITIAL_SCORE):
        new_score = INITIAL_SCORE - CORRECT_PENALTY if correct else INITIAL_SCORE + WRONG_PENALTY

    return new_score


def is_learned(score: float) -> bool:
    return score <= MIN_SCORE


def is_difficult(score: float) -> bool:
    return score >= DIFFICULT_THRESHOLD
