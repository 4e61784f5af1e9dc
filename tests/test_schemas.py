from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from learnsync.schemas import Question, QuestionCreate, normalize_tags


def test_normalize_tags_lowercases_dedupes_and_keeps_order():
    assert normalize_tags(["Verbs", "A1", "verbs", " ", "b2 "]) == ["verbs", "a1", "b2"]
    assert normalize_tags("Nouns, A1,,nouns") == ["nouns", "a1"]
    assert normalize_tags(None) == []


def test_question_create_rejects_blank_fields():
    with pytest.raises(ValidationError):
        QuestionCreate(prompt="   ", answer="house")
    with pytest.raises(ValidationError):
        QuestionCreate(prompt="Haus", answer="")


def test_question_create_builds_dirty_initial_question():
    fields = QuestionCreate(prompt=" Haus ", answer="house", description="", tags="Nouns, A1")
    question = fields.to_question(question_id="q-1")

    assert question.id == "q-1"
    assert question.prompt == "Haus"
    assert question.description is None
    assert question.score == 4.0
    assert question.last_reviewed_at is None
    assert question.tags == ["nouns", "a1"]
    assert question.dirty is True


def test_question_clamps_score_and_normalizes_timestamps():
    naive = datetime(2024, 3, 1, 8, 30)
    offset = datetime(2024, 3, 1, 10, 30, tzinfo=timezone(timedelta(hours=2)))
    question = Question(
        id="q", prompt="p", answer="a", score=12, created_at=naive, last_reviewed_at=offset,
    )

    assert question.score == 10.0
    assert question.created_at == datetime(2024, 3, 1, 8, 30, tzinfo=timezone.utc)
    assert question.last_reviewed_at.utcoffset() == timedelta(0)
    assert question.last_reviewed_at.hour == 8


def test_to_update_carries_only_pushed_fields():
    question = Question(id="q", prompt="p", answer="a", score=6, tags=["x"], dirty=True)
    update = question.to_update()

    assert update.model_dump() == {
        "id": "q", "score": 6.0, "last_reviewed_at": None, "tags": ["x"],
    }
