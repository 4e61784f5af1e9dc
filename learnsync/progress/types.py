"""
Types for progress reports.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from learnsync.schemas import Question


@dataclass(frozen=True)
class ProgressReport:
    """
    Learning progress over one slice of the question set.
    """
    tag: Optional[str]
    total: int
    learned: int
    difficult: int
    progress_percent: int
    learned_questions: list[Question] = field(default_factory=list)
