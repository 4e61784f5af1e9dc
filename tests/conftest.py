from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional, Sequence

import pytest

from learnsync import scoring
from learnsync.errors import QuestionNotFoundError, RemoteStoreError
from learnsync.remote import RemoteStore
from learnsync.replica import LocalReplica
from learnsync.schemas import AnswerResult, AttemptRecord, Question, QuestionUpdate
from learnsync.sync import SyncCoordinator

BASE_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_question(
    question_id: str,
    score: float = scoring.INITIAL_SCORE,
    last_reviewed_at: Optional[datetime] = None,
    tags: Iterable[str] = (),
    created_at: Optional[datetime] = None,
    dirty: bool = False,
    **fields
) -> Question:
    values = {
        "prompt": f"prompt {question_id}",
        "answer": f"answer {question_id}",
    }
    values.update(fields)
    return Question(
        id=question_id,
        score=score,
        last_reviewed_at=last_reviewed_at,
        tags=list(tags),
        created_at=created_at or BASE_TIME,
        dirty=dirty,
        **values,
    )


def minutes(n: int) -> datetime:
    return BASE_TIME + timedelta(minutes=n)


class FakeClock:
    """Returns a strictly increasing time on every call."""

    def __init__(self, start: datetime = BASE_TIME, step: timedelta = timedelta(minutes=1)):
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        self.now = self.now + self.step
        return self.now


class InMemoryRemoteStore(RemoteStore):
    """
    Remote store test double.

    Add an operation name to `fail` to make it raise RemoteStoreError.
    Set `pull_rows` to control the exact pull order (duplicates allowed).
    """

    def __init__(self, questions: Sequence[Question] = (), page_size: int = 1000):
        self.questions: dict[str, Question] = {q.id: q for q in questions}
        self.attempts: list[AttemptRecord] = []
        self.pull_rows: Optional[list[Question]] = None
        self.fail: set[str] = set()
        self.calls: list[str] = []
        self.page_size = page_size
        self.closed = False

    def _check(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.fail:
            raise RemoteStoreError(f"{operation} unavailable")

    async def fetch_question_page(self, page: int, page_size: int) -> list[Question]:
        self._check("fetch_question_page")
        rows = self.pull_rows if self.pull_rows is not None else list(self.questions.values())
        return [q.model_copy() for q in rows[page * page_size:(page + 1) * page_size]]

    async def push_question_updates(self, updates: Sequence[QuestionUpdate]) -> list[str]:
        self._check("push_question_updates")
        missing = []
        for update in updates:
            if update.id not in self.questions:
                missing.append(update.id)
                continue
            self.questions[update.id] = self.questions[update.id].model_copy(update={
                "score": update.score,
                "last_reviewed_at": update.last_reviewed_at,
                "tags": list(update.tags),
            })
        return missing

    async def push_new_attempts(self, attempts: Sequence[AttemptRecord]) -> None:
        self._check("push_new_attempts")
        self.attempts.extend(attempts)

    async def create_question(self, question: Question) -> Question:
        self._check("create_question")
        stored = question.model_copy(update={"dirty": False})
        self.questions.setdefault(question.id, stored)
        return stored

    async def delete_question(self, question_id: str) -> bool:
        self._check("delete_question")
        return self.questions.pop(question_id, None) is not None

    async def record_answer_and_rescore(self, question_id: str, user_answer: str) -> AnswerResult:
        self._check("record_answer_and_rescore")
        question = self.questions.get(question_id)
        if question is None:
            raise QuestionNotFoundError(question_id)
        correct = scoring.is_answer_correct(user_answer, question.answer)
        new_score = scoring.calculate_new_score(question.score, correct)
        self.questions[question_id] = question.model_copy(update={"score": new_score})
        self.attempts.append(AttemptRecord(question_id=question_id, correct=correct, answered_at=BASE_TIME))
        return AnswerResult(correct=correct, new_score=new_score, correct_answer=question.answer)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def replica_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'replica.db'}"


@pytest.fixture
async def replica(replica_url):
    store = LocalReplica(replica_url)
    await store.open()
    yield store
    await store.close()


@pytest.fixture
def remote() -> InMemoryRemoteStore:
    return InMemoryRemoteStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def coordinator(replica, remote, clock) -> SyncCoordinator:
    return SyncCoordinator(replica, remote, clock=clock)
