"""
Local replica of questions and attempts.

Quick start:
    from learnsync.replica import LocalReplica

    async with LocalReplica("sqlite+aiosqlite:///data/replica.db") as replica:
        dirty = await replica.find_dirty_questions()
"""

from learnsync.replica.database import (
    PATCHABLE_FIELDS,
    REVIEW_ORDER,
    LocalReplica,
    from_iso,
    to_iso,
)
from learnsync.replica.migrations import SCHEMA_VERSION
from learnsync.replica.models import AttemptRow, Base, QuestionRow, SchemaMeta

__all__ = [
    "LocalReplica",
    "PATCHABLE_FIELDS",
    "REVIEW_ORDER",
    "SCHEMA_VERSION",
    "from_iso",
    "to_iso",

    # ORM models (for query criteria)
    "AttemptRow",
    "Base",
    "QuestionRow",
    "SchemaMeta",
]
