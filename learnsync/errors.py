"""
Exceptions raised by the learnsync core.

Validation errors are pydantic's ValidationError, raised by the schema
models before anything is written.
"""

from __future__ import annotations


class LearnSyncError(Exception):
    """Base class for learnsync errors."""


class QuestionNotFoundError(LearnSyncError, LookupError):
    """Raised when an operation targets a question id that does not exist."""

    def __init__(self, question_id: str):
        super().__init__(f"Question not found: {question_id}")
        self.question_id = question_id


class RemoteStoreError(LearnSyncError):
    """Transient network or remote database failure."""


class ReplicaSchemaError(LearnSyncError, RuntimeError):
    """Local replica schema cannot be opened or migrated."""
