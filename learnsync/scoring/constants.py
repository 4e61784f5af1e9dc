"""
Scoring Constants

All scoring parameters in one place.
Scores run from MIN_SCORE (learned) to MAX_SCORE (hardest).
"""

from typing import Final


# ---- Score Range ----

INITIAL_SCORE: Final[float] = 4.0   # Score of a question nobody has answered yet
MAX_SCORE: Final[float] = 10.0
MIN_SCORE: Final[float] = 0.0       # Reaching this means "learned"


# ---- Score Updates ----

CORRECT_PENALTY: Final[float] = 1.0  # Subtracted on a correct answer
WRONG_PENALTY: Final[float] = 1.0    # Added on a wrong answer


# ---- Bands ----

DIFFICULT_THRESHOLD: Final[float] = 5.0  # score >= this is "difficult"
