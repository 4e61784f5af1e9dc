"""
Progress package exports.
"""

from learnsync.progress.metrics import collect_tags, compute_progress, question_contribution
from learnsync.progress.service import build_progress_report, list_tags
from learnsync.progress.types import ProgressReport

__all__ = [
    "ProgressReport",
    "build_progress_report",
    "collect_tags",
    "compute_progress",
    "list_tags",
    "question_contribution",
]
