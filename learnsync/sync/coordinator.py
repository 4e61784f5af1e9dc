"""
Sync Coordinator - reconcile the local replica with the remote store

Phases:
1. Initial sync: pull every question, dedupe by id (last wins), upsert
   locally and reset dirty. Pulled values overwrite unpushed local edits.
2. Background push: dirty questions and unsynced attempts are pushed in
   two independent batches; flags are cleared only after success.
3. Write-through: new questions go to the replica first, then to the
   remote store inline (best effort, the dirty and pending-create
   flags cover failures). Pushed ids the remote store no longer holds
   are recreated if they never reached it, dropped locally otherwise.

Local writes always happen first, so the user's state survives any
remote failure.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, Optional, Union

from learnsync import scoring
from learnsync.errors import QuestionNotFoundError, RemoteStoreError
from learnsync.remote import RemoteStore
from learnsync.replica import LocalReplica
from learnsync.schemas import (
    AnswerResult,
    Attempt,
    Question,
    QuestionCreate,
    utcnow,
)

logger = logging.getLogger(__name__)


@dataclass
class SyncReport:
    """Outcome of one background push cycle."""
    questions_pushed: int = 0
    attempts_pushed: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def dedupe_last_wins(questions: Iterable[Question]) -> list[Question]:
    """
    Collapse duplicate ids, keeping the last occurrence's values.

    The surviving record keeps the position of the id's first occurrence.
    """
    by_id: dict[str, Question] = {}
    for question in questions:
        by_id[question.id] = question
    return list(by_id.values())


class SyncCoordinator:
    """
    Orchestrates pulls, pushes and local-first writes.

    Args:
        replica: Open local replica
        remote: Remote store client
        clock: Source of "now" (UTC), injectable for tests
        page_size: Pull page size (default: the remote store's)
    """

    def __init__(
        self,
        replica: LocalReplica,
        remote: RemoteStore,
        *,
        clock: Callable[[], datetime] = utcnow,
        page_size: Optional[int] = None
    ):
        self.replica = replica
        self.remote = remote
        self._clock = clock
        self._page_size = page_size

    # ---- Initial sync ----

    async def initial_sync(self) -> int:
        """
        Pull the full question set into the replica.

        Returns:
            Number of questions upserted

        Raises:
            RemoteStoreError: pull failed (replica left untouched)
        """
        logger.info("Starting initial sync...")
        start = time.monotonic()

        pulled = await self.remote.pull_all_questions(self._page_size)
        logger.info("Pulled %d questions from remote store", len(pulled))

        unique = dedupe_last_wins(pulled)
        if len(unique) != len(pulled):
            logger.info("Deduplicated to %d unique questions", len(unique))

        upserted = await self.replica.upsert_questions(
            q.model_copy(update={"dirty": False, "pending_create": False}) for q in unique
        )

        elapsed_ms = (time.monotonic() - start) * 1000
        logger.info("Initial sync complete in %.0fms (%d upserted)", elapsed_ms, upserted)
        return upserted

    # ---- Background push ----

    async def push_dirty_questions(self) -> int:
        """
        Push every dirty question, then clear the flags.

        Ids the remote store does not know are handled by origin: a row
        still waiting for its create (the inline create failed) is created
        from the full local row; any other row was deleted remotely and
        is dropped from the replica. A dirty flag is only cleared if the
        row still holds the pushed values, so answers recorded during the
        push are picked up by the next cycle.

        Returns:
            Number of questions pushed

        Raises:
            RemoteStoreError: push failed, no flag was cleared
        """
        dirty = await self.replica.find_dirty_questions()
        if not dirty:
            return 0

        missing = set(await self.remote.push_question_updates([q.to_update() for q in dirty]))

        created = []
        deleted = []
        for question in dirty:
            if question.id not in missing:
                continue
            if question.pending_create:
                await self.remote.create_question(question)
                created.append(question.id)
            else:
                await self.replica.delete_question(question.id)
                deleted.append(question.id)

        confirmed = [q.id for q in dirty if q.pending_create and q.id not in deleted]
        await self.replica.mark_questions_created(confirmed)

        if created:
            logger.info("Created %d questions missing from remote store", len(created))
        if deleted:
            logger.info("Dropped %d questions deleted from remote store", len(deleted))

        cleared = 0
        for question in dirty:
            if question.id in deleted:
                continue
            if await self.replica.mark_question_clean(
                question.id, question.score, question.last_reviewed_at
            ):
                cleared += 1

        still_dirty = len(dirty) - len(deleted) - cleared
        if still_dirty:
            logger.info("%d questions changed during push, left dirty", still_dirty)
        logger.info("Pushed %d dirty questions", len(dirty))
        return len(dirty)

    async def push_unsynced_attempts(self) -> int:
        """
        Push every unsynced attempt as one batch insert, then mark them synced.

        Returns:
            Number of attempts pushed

        Raises:
            RemoteStoreError: push failed, attempts stay unsynced
        """
        unsynced = await self.replica.find_unsynced_attempts()
        if not unsynced:
            return 0

        await self.remote.push_new_attempts([a.to_record() for a in unsynced])
        await self.replica.mark_attempts_synced([a.id for a in unsynced])

        logger.info("Pushed %d attempts", len(unsynced))
        return len(unsynced)

    async def background_sync(self) -> SyncReport:
        """
        One push cycle. Remote failures are logged, never raised.

        The question push and the attempt push are independent: one
        failing does not stop the other.
        """
        report = SyncReport()

        try:
            report.questions_pushed = await self.push_dirty_questions()
        except RemoteStoreError as exc:
            logger.warning("Question push failed, will retry next cycle: %s", exc)
            report.errors.append(f"questions: {exc}")

        try:
            report.attempts_pushed = await self.push_unsynced_attempts()
        except RemoteStoreError as exc:
            logger.warning("Attempt push failed, will retry next cycle: %s", exc)
            report.errors.append(f"attempts: {exc}")

        if report.ok:
            logger.debug("Background sync complete")
        return report

    # ---- Local-first writes ----

    async def create_question(
        self,
        prompt: str,
        answer: str,
        description: Optional[str] = None,
        tags: Union[str, list[str], None] = None
    ) -> Question:
        """
        Add a question locally (dirty) and write it through to the remote store.

        Raises:
            pydantic.ValidationError: blank prompt or answer (nothing written)
        """
        fields = QuestionCreate(prompt=prompt, answer=answer, description=description, tags=tags)
        question = fields.to_question(created_at=self._clock())

        await self.replica.insert_question(question)

        try:
            await self.remote.create_question(question)
        except RemoteStoreError as exc:
            logger.warning("Immediate create of %s failed, left for background push: %s", question.id, exc)
            return question

        await self.replica.mark_questions_created([question.id])
        return question.model_copy(update={"pending_create": False})

    async def delete_question(self, question_id: str) -> bool:
        """
        Delete a question locally, then remotely (best effort).

        Returns:
            True if the remote delete went through, False if it failed

        Raises:
            QuestionNotFoundError: neither side had the question
        """
        deleted_locally = await self.replica.delete_question(question_id)

        try:
            deleted_remotely = await self.remote.delete_question(question_id)
        except RemoteStoreError as exc:
            logger.warning("Remote delete of %s failed: %s", question_id, exc)
            return False

        if not deleted_locally and not deleted_remotely:
            raise QuestionNotFoundError(question_id)
        return True

    async def submit_answer(self, question_id: str, user_answer: str) -> AnswerResult:
        """
        Score an answer against the local replica.

        The question is patched (score, last_reviewed_at, dirty) and an
        unsynced attempt is recorded; both reach the remote store on the
        next background push.

        Raises:
            QuestionNotFoundError: unknown id (nothing written)
        """
        question = await self.replica.get_question(question_id)
        if question is None:
            raise QuestionNotFoundError(question_id)

        correct = scoring.is_answer_correct(user_answer, question.answer)
        new_score = scoring.calculate_new_score(question.score, correct)
        now = self._clock()

        patched = await self.replica.patch_question(
            question_id,
            score=new_score,
            last_reviewed_at=now,
            dirty=True,
        )
        if patched is None:
            raise QuestionNotFoundError(question_id)

        await self.replica.insert_attempt(
            Attempt(question_id=question_id, correct=correct, answered_at=now)
        )

        return AnswerResult(correct=correct, new_score=new_score, correct_answer=question.answer)
