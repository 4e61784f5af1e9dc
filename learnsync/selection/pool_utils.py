"""
Pool utilities for selection.

Shared primitives for ordering, filtering and filling question pools
without enforcing a single selection policy.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Sequence, TypeVar

from learnsync import scoring
from learnsync.schemas import Question


T = TypeVar("T")

_NEVER = datetime.min.replace(tzinfo=timezone.utc)


def fill_in_order(
    pools: dict[str, Sequence[T]],
    order: list[str],
    target_size: int
) -> list[T]:
    """
    Fill a batch by walking pools in order until target_size is reached.
    """
    batch: list[T] = []
    for name in order:
        for item in pools.get(name, []):
            if len(batch) >= target_size:
                return batch
            batch.append(item)
    return batch


def review_sort_key(question: Question):
    """Never-reviewed first, then oldest review, then oldest question."""
    return (
        question.last_reviewed_at is not None,
        question.last_reviewed_at or _NEVER,
        question.created_at,
        question.id,
    )


def filter_by_tag(questions: Sequence[Question], tag: Optional[str]) -> list[Question]:
    if not tag:
        return list(questions)
    wanted = tag.strip().lower()
    return [q for q in questions if wanted in q.tags]


def split_bands(questions: Sequence[Question]) -> tuple[list[Question], list[Question]]:
    """
    Split active questions into (difficult, new) bands, each in review order.

    Learned questions (score <= 0) belong to neither band.
    """
    active = sorted(
        (q for q in questions if not scoring.is_learned(q.score)),
        key=review_sort_key,
    )
    difficult = [q for q in active if scoring.is_difficult(q.score)]
    new = [q for q in active if not scoring.is_difficult(q.score)]
    return difficult, new
