"""
Local Replica - async database I/O for questions and attempts

Uses the SQLAlchemy asyncio ORM, by default on SQLite through aiosqlite.

This module handles ONLY database I/O.
Scoring and sync decisions live in the scoring and sync packages.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from learnsync.replica import migrations
from learnsync.replica.models import AttemptRow, QuestionRow
from learnsync.schemas import Attempt, Question, ensure_utc

logger = logging.getLogger(__name__)

# Fields patch_question may change
PATCHABLE_FIELDS = frozenset({
    "prompt", "answer", "description", "score", "last_reviewed_at", "tags", "dirty",
    "pending_create",
})


# ---- Row conversion ----

def to_iso(value: Optional[datetime]) -> Optional[str]:
    """Store timestamps as fixed-width UTC ISO strings (sortable)."""
    if value is None:
        return None
    return ensure_utc(value).isoformat(timespec="microseconds")


def from_iso(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return ensure_utc(datetime.fromisoformat(value))


def _question_values(question: Question) -> dict[str, Any]:
    return {
        "id": question.id,
        "prompt": question.prompt,
        "answer": question.answer,
        "description": question.description,
        "score": question.score,
        "created_at": to_iso(question.created_at),
        "last_reviewed_at": to_iso(question.last_reviewed_at),
        "tags": list(question.tags),
        "dirty": question.dirty,
        "pending_create": question.pending_create,
    }


def _question_from_row(row: QuestionRow) -> Question:
    return Question(
        id=row.id,
        prompt=row.prompt,
        answer=row.answer,
        description=row.description,
        score=row.score,
        created_at=from_iso(row.created_at),
        last_reviewed_at=from_iso(row.last_reviewed_at),
        tags=row.tags or [],
        dirty=bool(row.dirty),
        pending_create=bool(row.pending_create),
    )


def _attempt_from_row(row: AttemptRow) -> Attempt:
    return Attempt(
        id=row.id,
        question_id=row.question_id,
        correct=bool(row.correct),
        answered_at=from_iso(row.answered_at),
        synced=bool(row.synced),
    )


# ---- Ordering ----

# Longest-untouched first: never reviewed, then oldest review
REVIEW_ORDER = (
    QuestionRow.last_reviewed_at.asc().nulls_first(),
    QuestionRow.created_at.asc(),
    QuestionRow.id.asc(),
)


class LocalReplica:
    """
    Durable local copy of questions and attempts.

    Open it before use and close it on shutdown:

        replica = LocalReplica("sqlite+aiosqlite:///data/replica.db")
        await replica.open()
        ...
        await replica.close()

    or use it as an async context manager.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self._echo = echo
        self._engine: Optional[AsyncEngine] = None
        self._sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None

    # ---- Lifecycle ----

    async def open(self) -> None:
        """
        Connect and create or migrate the schema.

        Raises:
            ReplicaSchemaError: the store cannot be migrated
        """
        if self._engine is not None:
            return

        url = make_url(self.url)
        if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)

        engine = create_async_engine(self.url, echo=self._echo)
        try:
            async with engine.begin() as conn:
                previous = await migrations.upgrade(conn)
        except BaseException:
            await engine.dispose()
            raise

        if previous and previous < migrations.SCHEMA_VERSION:
            logger.info("Local replica upgraded from schema version %s", previous)

        self._engine = engine
        self._sessionmaker = async_sessionmaker(engine, expire_on_commit=False)

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._sessionmaker = None

    async def __aenter__(self) -> "LocalReplica":
        await self.open()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _session(self) -> AsyncSession:
        if self._sessionmaker is None:
            raise RuntimeError("LocalReplica is not open")
        return self._sessionmaker()

    # ---- Questions ----

    async def insert_question(self, question: Question) -> Question:
        async with self._session() as session:
            session.add(QuestionRow(**_question_values(question)))
            await session.commit()
        return question

    async def get_question(self, question_id: str) -> Optional[Question]:
        async with self._session() as session:
            row = await session.get(QuestionRow, question_id)
            return _question_from_row(row) if row is not None else None

    async def patch_question(self, question_id: str, **fields: Any) -> Optional[Question]:
        """
        Update some fields of one question.

        Args:
            question_id: Question to patch
            **fields: Subset of PATCHABLE_FIELDS

        Returns:
            Patched question, or None if the id is unknown
        """
        unknown = set(fields) - PATCHABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot patch question fields: {sorted(unknown)}")

        async with self._session() as session:
            row = await session.get(QuestionRow, question_id)
            if row is None:
                return None
            for name, value in fields.items():
                if name == "last_reviewed_at":
                    value = to_iso(value)
                elif name == "tags":
                    value = list(value)
                setattr(row, name, value)
            # Round-trip through the model so clamping/normalization applies
            question = _question_from_row(row)
            row.score = question.score
            row.tags = list(question.tags)
            await session.commit()
            return question

    async def delete_question(self, question_id: str) -> bool:
        async with self._session() as session:
            result = await session.execute(delete(QuestionRow).where(QuestionRow.id == question_id))
            await session.commit()
            return result.rowcount > 0

    async def upsert_questions(self, questions: Iterable[Question]) -> int:
        """
        Insert or overwrite questions by id in a single transaction.

        Every field is taken from the given models, including dirty.

        Returns:
            Number of rows written
        """
        count = 0
        async with self._session() as session:
            for question in questions:
                await session.merge(QuestionRow(**_question_values(question)))
                count += 1
            await session.commit()
        return count

    async def find_questions(
        self,
        *criteria,
        tag: Optional[str] = None,
        order_by: Optional[Sequence] = None,
        limit: Optional[int] = None
    ) -> list[Question]:
        """
        Query questions by predicate with sort and limit.

        Args:
            *criteria: SQLAlchemy expressions on QuestionRow columns
            tag: Only questions carrying this tag (case-insensitive)
            order_by: Sort expressions (default: REVIEW_ORDER)
            limit: Maximum number of questions returned

        Returns:
            Matching questions in order
        """
        stmt = select(QuestionRow).where(*criteria).order_by(*(order_by or REVIEW_ORDER))

        # Tags are a JSON list, so the tag filter runs before the limit in Python
        if limit is not None and not tag:
            stmt = stmt.limit(limit)

        async with self._session() as session:
            rows = (await session.execute(stmt)).scalars().all()

        questions = [_question_from_row(row) for row in rows]
        if tag:
            wanted = tag.strip().lower()
            questions = [q for q in questions if wanted in q.tags]
            if limit is not None:
                questions = questions[:limit]
        return questions

    async def find_dirty_questions(self) -> list[Question]:
        return await self.find_questions(QuestionRow.dirty.is_(True))

    async def mark_question_clean(
        self,
        question_id: str,
        score: float,
        last_reviewed_at: Optional[datetime]
    ) -> bool:
        """
        Clear dirty only if the row still holds the pushed values.

        A row changed after it was pushed keeps its dirty flag.

        Returns:
            True if the flag was cleared
        """
        reviewed = to_iso(last_reviewed_at)
        reviewed_clause = (
            QuestionRow.last_reviewed_at.is_(None)
            if reviewed is None
            else QuestionRow.last_reviewed_at == reviewed
        )
        stmt = (
            update(QuestionRow)
            .where(
                QuestionRow.id == question_id,
                QuestionRow.dirty.is_(True),
                QuestionRow.score == score,
                reviewed_clause,
            )
            .values(dirty=False)
            .execution_options(synchronize_session=False)
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount > 0

    async def mark_questions_created(self, question_ids: Sequence[str]) -> int:
        """Record that the remote store now holds these questions."""
        if not question_ids:
            return 0
        stmt = (
            update(QuestionRow)
            .where(QuestionRow.id.in_(list(question_ids)))
            .values(pending_create=False)
            .execution_options(synchronize_session=False)
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount

    async def count_questions(self) -> int:
        async with self._session() as session:
            return (await session.execute(select(func.count(QuestionRow.id)))).scalar_one()

    # ---- Attempts ----

    async def insert_attempt(self, attempt: Attempt) -> Attempt:
        async with self._session() as session:
            session.add(AttemptRow(
                id=attempt.id,
                question_id=attempt.question_id,
                correct=attempt.correct,
                answered_at=to_iso(attempt.answered_at),
                synced=attempt.synced,
            ))
            await session.commit()
        return attempt

    async def list_attempts(self, question_id: Optional[str] = None) -> list[Attempt]:
        stmt = select(AttemptRow).order_by(AttemptRow.answered_at.asc(), AttemptRow.id.asc())
        if question_id is not None:
            stmt = stmt.where(AttemptRow.question_id == question_id)
        async with self._session() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [_attempt_from_row(row) for row in rows]

    async def find_unsynced_attempts(self) -> list[Attempt]:
        stmt = (
            select(AttemptRow)
            .where(AttemptRow.synced.is_(False))
            .order_by(AttemptRow.answered_at.asc(), AttemptRow.id.asc())
        )
        async with self._session() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [_attempt_from_row(row) for row in rows]

    async def mark_attempts_synced(self, attempt_ids: Sequence[str]) -> int:
        if not attempt_ids:
            return 0
        stmt = (
            update(AttemptRow)
            .where(AttemptRow.id.in_(list(attempt_ids)))
            .values(synced=True)
            .execution_options(synchronize_session=False)
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount
