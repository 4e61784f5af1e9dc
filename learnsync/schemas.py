"""
Pydantic models for questions, attempts and sync payloads.

These models are shared by the local replica, the remote store and the
sync coordinator. Local-only bookkeeping (dirty, synced) lives on the
same models but is never sent to the remote store.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from learnsync.scoring import INITIAL_SCORE, clamp_score


# ---- Helpers ----

def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def normalize_tags(tags: Union[str, list[str], tuple[str, ...], None]) -> list[str]:
    """
    Lower-case, trim and de-duplicate tags, keeping first-seen order.

    Accepts either a list or a comma-separated string ("verbs, A1").
    """
    if tags is None:
        return []
    if isinstance(tags, str):
        tags = tags.split(",")

    result: list[str] = []
    for tag in tags:
        cleaned = str(tag).strip().lower()
        if cleaned and cleaned not in result:
            result.append(cleaned)
    return result


# ---- Questions ----

class Question(BaseModel):
    """One flashcard, as held by the local replica."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    prompt: str = Field(..., min_length=1, description="Question text shown to the user")
    answer: str = Field(..., min_length=1, description="Expected answer, may list alternatives")
    description: Optional[str] = Field(None, description="Optional hint")
    score: float = INITIAL_SCORE
    created_at: datetime = Field(default_factory=utcnow)
    last_reviewed_at: Optional[datetime] = None
    tags: list[str] = Field(default_factory=list)

    # Local-only: changed here, not yet pushed
    dirty: bool = False
    # Local-only: created here, not yet confirmed by the remote store
    pending_create: bool = False

    @field_validator("score")
    @classmethod
    def _clamp_score(cls, value: float) -> float:
        return clamp_score(value)

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value):
        return normalize_tags(value)

    @field_validator("description")
    @classmethod
    def _blank_description(cls, value: Optional[str]) -> Optional[str]:
        return value or None

    @field_validator("created_at", "last_reviewed_at")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)

    def to_update(self) -> "QuestionUpdate":
        return QuestionUpdate(
            id=self.id,
            score=self.score,
            last_reviewed_at=self.last_reviewed_at,
            tags=self.tags,
        )


class QuestionCreate(BaseModel):
    """Fields accepted by the create flow. Rejects blank prompt or answer."""
    model_config = ConfigDict(str_strip_whitespace=True)

    prompt: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)
    description: Optional[str] = None
    tags: list[str] = Field(default_factory=list)

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value):
        return normalize_tags(value)

    @field_validator("description")
    @classmethod
    def _blank_description(cls, value: Optional[str]) -> Optional[str]:
        return value or None

    def to_question(self, question_id: Optional[str] = None, created_at: Optional[datetime] = None) -> Question:
        return Question(
            id=question_id or new_id(),
            prompt=self.prompt,
            answer=self.answer,
            description=self.description,
            score=INITIAL_SCORE,
            created_at=created_at or utcnow(),
            last_reviewed_at=None,
            tags=self.tags,
            dirty=True,
            pending_create=True,
        )


class QuestionUpdate(BaseModel):
    """Payload pushed to the remote store for a dirty question."""
    id: str
    score: float
    last_reviewed_at: Optional[datetime] = None
    tags: list[str] = Field(default_factory=list)

    @field_validator("score")
    @classmethod
    def _clamp_score(cls, value: float) -> float:
        return clamp_score(value)

    @field_validator("last_reviewed_at")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)


# ---- Attempts ----

class Attempt(BaseModel):
    """One scored answer event, as held by the local replica."""
    id: str = Field(default_factory=new_id)
    question_id: str
    correct: bool
    answered_at: datetime = Field(default_factory=utcnow)

    # Local-only: pushed to the remote store
    synced: bool = False

    @field_validator("answered_at")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    def to_record(self) -> "AttemptRecord":
        return AttemptRecord(
            question_id=self.question_id,
            correct=self.correct,
            answered_at=self.answered_at,
        )


class AttemptRecord(BaseModel):
    """Payload pushed to the remote store for an unsynced attempt."""
    question_id: str
    correct: bool
    answered_at: datetime

    @field_validator("answered_at")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


# ---- Results ----

class AnswerResult(BaseModel):
    """Outcome of scoring one answer."""
    correct: bool
    new_score: float
    correct_answer: str
