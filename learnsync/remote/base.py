"""
Remote store contract.

The remote store is the server of record. Any backend that can page
through questions, apply batched updates and append attempts can serve.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from learnsync.schemas import AnswerResult, AttemptRecord, Question, QuestionUpdate

DEFAULT_PAGE_SIZE = 1000


class RemoteStore(ABC):
    """
    Abstract server-of-record client.

    Implementations raise RemoteStoreError for network or backend
    failures and QuestionNotFoundError for unknown question ids.
    """

    page_size: int = DEFAULT_PAGE_SIZE

    @abstractmethod
    async def fetch_question_page(self, page: int, page_size: int) -> list[Question]:
        """Return one page (0-based) of questions in a stable order."""

    async def pull_all_questions(self, page_size: Optional[int] = None) -> list[Question]:
        """
        Pull every question, stitching pages until a short page.

        Args:
            page_size: Rows per page (default: self.page_size)

        Returns:
            All questions in pull order (duplicates possible, not removed here)
        """
        size = page_size or self.page_size
        if size <= 0:
            raise ValueError("page_size must be positive")

        questions: list[Question] = []
        page = 0
        while True:
            batch = await self.fetch_question_page(page, size)
            questions.extend(batch)
            if len(batch) < size:
                return questions
            page += 1

    @abstractmethod
    async def push_question_updates(self, updates: Sequence[QuestionUpdate]) -> list[str]:
        """
        Apply score/last_reviewed_at/tags updates by id.

        Returns:
            Ids that do not exist remotely (nothing written for them)
        """

    @abstractmethod
    async def push_new_attempts(self, attempts: Sequence[AttemptRecord]) -> None:
        """Append attempt rows."""

    @abstractmethod
    async def create_question(self, question: Question) -> Question:
        """Create a question under its own id. Creating an existing id is a no-op."""

    @abstractmethod
    async def delete_question(self, question_id: str) -> bool:
        """Delete a question. Returns False if it did not exist."""

    @abstractmethod
    async def record_answer_and_rescore(self, question_id: str, user_answer: str) -> AnswerResult:
        """Score an answer server-side, persist the new score and an attempt row."""

    async def close(self) -> None:
        """Release connections."""
