"""
SQLAlchemy ORM Models for the Local Replica

Defines QuestionRow, AttemptRow and SchemaMeta.
Timestamps are stored as ISO-8601 UTC strings so they sort lexically.
"""

from sqlalchemy import JSON, Boolean, Column, Float, Index, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class QuestionRow(Base):
    """
    Local copy of one question plus the dirty flag.
    """
    __tablename__ = 'questions'
    __table_args__ = (
        Index('ix_questions_dirty', 'dirty'),
        Index('ix_questions_score_reviewed', 'score', 'last_reviewed_at'),
    )

    id = Column(String(100), primary_key=True)

    prompt = Column(Text, nullable=False)
    answer = Column(Text, nullable=False)
    description = Column(Text, nullable=True)

    score = Column(Float, nullable=False)
    created_at = Column(String(40), nullable=False)
    last_reviewed_at = Column(String(40), nullable=True)  # NULL = never reviewed

    # Added in schema version 2
    tags = Column(JSON, nullable=False, default=list)

    # Local-only: changed here, not yet pushed
    dirty = Column(Boolean, nullable=False, default=False)

    # Local-only, added in schema version 3: created here, not yet confirmed remotely
    pending_create = Column(Boolean, nullable=False, default=False)

    def __repr__(self):
        return f"<QuestionRow({self.id}, score={self.score}, dirty={self.dirty})>"


class AttemptRow(Base):
    """
    Local log entry for one answer. question_id is a weak reference.
    """
    __tablename__ = 'attempts'
    __table_args__ = (
        Index('ix_attempts_synced', 'synced'),
        Index('ix_attempts_question', 'question_id'),
    )

    id = Column(String(100), primary_key=True)
    question_id = Column(String(100), nullable=False)
    correct = Column(Boolean, nullable=False)
    answered_at = Column(String(40), nullable=False)

    # Local-only: pushed to the remote store
    synced = Column(Boolean, nullable=False, default=False)

    def __repr__(self):
        return f"<AttemptRow({self.id}, question={self.question_id}, synced={self.synced})>"


class SchemaMeta(Base):
    """Key/value bookkeeping for the replica itself (schema version)."""
    __tablename__ = 'schema_meta'

    key = Column(String(50), primary_key=True)
    value = Column(String(255), nullable=False)
