"""
Service layer to assemble progress reports from the local replica.
"""

from __future__ import annotations

from typing import Optional

from learnsync.progress.metrics import collect_tags, compute_progress
from learnsync.progress.types import ProgressReport
from learnsync.replica import LocalReplica, QuestionRow


async def build_progress_report(replica: LocalReplica, tag: Optional[str] = None) -> ProgressReport:
    """
    Progress over every question, or only those carrying `tag`.
    """
    questions = await replica.find_questions(tag=tag, order_by=[QuestionRow.created_at.asc()])
    return compute_progress(questions, tag=tag.strip().lower() if tag else None)


async def list_tags(replica: LocalReplica) -> list[str]:
    """All tags in use, sorted."""
    return collect_tags(await replica.find_questions())
