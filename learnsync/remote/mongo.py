"""
MongoDB remote store.

Uses pymongo's asyncio client. Questions are stored with their own id as
the document _id, attempts get a server-generated ObjectId.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Sequence

from pymongo import ASCENDING, DESCENDING, AsyncMongoClient, UpdateOne
from pymongo.errors import PyMongoError

from learnsync import scoring
from learnsync.errors import QuestionNotFoundError, RemoteStoreError
from learnsync.remote.base import DEFAULT_PAGE_SIZE, RemoteStore
from learnsync.schemas import (
    AnswerResult,
    AttemptRecord,
    Question,
    QuestionUpdate,
    utcnow,
)

logger = logging.getLogger(__name__)

# Configuration
DB_NAME = "learnsync"
QUESTIONS_COLLECTION = "questions"
ATTEMPTS_COLLECTION = "attempts"


# ---- Document conversion ----

def question_to_document(question: Question) -> dict:
    """Remote document for a question (local-only fields dropped)."""
    return {
        "_id": question.id,
        "prompt": question.prompt,
        "answer": question.answer,
        "description": question.description,
        "score": question.score,
        "created_at": question.created_at,
        "last_reviewed_at": question.last_reviewed_at,
        "tags": list(question.tags),
    }


def question_from_document(doc: dict) -> Question:
    """Pulled questions are never dirty."""
    return Question(
        id=str(doc["_id"]),
        prompt=doc["prompt"],
        answer=doc["answer"],
        description=doc.get("description"),
        score=doc.get("score", scoring.INITIAL_SCORE),
        created_at=doc["created_at"],
        last_reviewed_at=doc.get("last_reviewed_at"),
        tags=doc.get("tags") or [],
        dirty=False,
    )


def attempt_to_document(attempt: AttemptRecord) -> dict:
    return {
        "question_id": attempt.question_id,
        "correct": attempt.correct,
        "answered_at": attempt.answered_at,
    }


@contextmanager
def _remote_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except PyMongoError as exc:
        raise RemoteStoreError(f"{operation} failed: {exc}") from exc


class MongoRemoteStore(RemoteStore):
    """
    RemoteStore backed by a MongoDB database.

    The client is passed in so callers own its lifecycle; from_uri()
    builds one with pooled connections.
    """

    def __init__(
        self,
        client: AsyncMongoClient,
        db_name: str = DB_NAME,
        page_size: int = DEFAULT_PAGE_SIZE
    ):
        self._client = client
        self._db = client[db_name]
        self.questions = self._db[QUESTIONS_COLLECTION]
        self.attempts = self._db[ATTEMPTS_COLLECTION]
        self.page_size = page_size

    @classmethod
    def from_uri(
        cls,
        mongo_uri: str,
        db_name: str = DB_NAME,
        page_size: int = DEFAULT_PAGE_SIZE
    ) -> "MongoRemoteStore":
        client = AsyncMongoClient(
            mongo_uri,
            tz_aware=True,
            maxPoolSize=10,  # Connection pool size
            minPoolSize=1,   # Keep at least 1 connection alive
            maxIdleTimeMS=60000,
            serverSelectionTimeoutMS=5000,
        )
        return cls(client, db_name=db_name, page_size=page_size)

    async def ensure_indexes(self) -> None:
        with _remote_errors("ensure_indexes"):
            await self.questions.create_index([("created_at", DESCENDING), ("_id", ASCENDING)])
            await self.questions.create_index([("score", ASCENDING), ("last_reviewed_at", ASCENDING)])
            await self.attempts.create_index([("question_id", ASCENDING)])

    async def close(self) -> None:
        await self._client.close()

    # ---- Pull ----

    async def fetch_question_page(self, page: int, page_size: int) -> list[Question]:
        with _remote_errors("fetch_question_page"):
            cursor = (
                self.questions.find({})
                .sort([("created_at", DESCENDING), ("_id", ASCENDING)])
                .skip(page * page_size)
                .limit(page_size)
            )
            docs = await cursor.to_list(length=None)
        return [question_from_document(doc) for doc in docs]

    # ---- Push ----

    async def push_question_updates(self, updates: Sequence[QuestionUpdate]) -> list[str]:
        if not updates:
            return []

        ids = [update.id for update in updates]
        with _remote_errors("push_question_updates"):
            existing = set(await self.questions.distinct("_id", {"_id": {"$in": ids}}))
            operations = [
                UpdateOne(
                    {"_id": update.id},
                    {"$set": {
                        "score": update.score,
                        "last_reviewed_at": update.last_reviewed_at,
                        "tags": list(update.tags),
                    }},
                )
                for update in updates
                if update.id in existing
            ]
            if operations:
                await self.questions.bulk_write(operations, ordered=False)

        missing = [question_id for question_id in ids if question_id not in existing]
        if missing:
            logger.info("push_question_updates: %d ids unknown remotely", len(missing))
        return missing

    async def push_new_attempts(self, attempts: Sequence[AttemptRecord]) -> None:
        if not attempts:
            return
        with _remote_errors("push_new_attempts"):
            await self.attempts.insert_many([attempt_to_document(a) for a in attempts], ordered=False)

    # ---- Questions ----

    async def create_question(self, question: Question) -> Question:
        document = question_to_document(question)
        question_id = document.pop("_id")
        with _remote_errors("create_question"):
            await self.questions.update_one(
                {"_id": question_id},
                {"$setOnInsert": document},
                upsert=True,
            )
        return question.model_copy(update={"dirty": False})

    async def delete_question(self, question_id: str) -> bool:
        with _remote_errors("delete_question"):
            result = await self.questions.delete_one({"_id": question_id})
        return result.deleted_count > 0

    async def get_question(self, question_id: str) -> Optional[Question]:
        with _remote_errors("get_question"):
            doc = await self.questions.find_one({"_id": question_id})
        return question_from_document(doc) if doc is not None else None

    async def record_answer_and_rescore(self, question_id: str, user_answer: str) -> AnswerResult:
        """
        Server-authoritative answer flow for clients without a replica.

        Raises:
            QuestionNotFoundError: unknown question id (nothing written)
            RemoteStoreError: backend failure
        """
        question = await self.get_question(question_id)
        if question is None:
            raise QuestionNotFoundError(question_id)

        correct = scoring.is_answer_correct(user_answer, question.answer)
        new_score = scoring.calculate_new_score(question.score, correct)
        now = utcnow()

        with _remote_errors("record_answer_and_rescore"):
            await self.questions.update_one(
                {"_id": question_id},
                {"$set": {"score": new_score, "last_reviewed_at": now}},
            )
            await self.attempts.insert_one(attempt_to_document(
                AttemptRecord(question_id=question_id, correct=correct, answered_at=now)
            ))

        return AnswerResult(correct=correct, new_score=new_score, correct_answer=question.answer)
