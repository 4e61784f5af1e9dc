import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine

from learnsync.errors import ReplicaSchemaError
from learnsync.replica import SCHEMA_VERSION, LocalReplica, QuestionRow
from learnsync.schemas import Attempt

from conftest import make_question, minutes


# ---- Questions ----

async def test_insert_get_and_delete(replica):
    question = make_question("q1", tags=["verbs"], description="hint")
    await replica.insert_question(question)

    loaded = await replica.get_question("q1")
    assert loaded == question

    assert await replica.delete_question("q1") is True
    assert await replica.get_question("q1") is None
    assert await replica.delete_question("q1") is False


async def test_patch_question_updates_fields_and_clamps(replica):
    await replica.insert_question(make_question("q1"))

    patched = await replica.patch_question("q1", score=-2, last_reviewed_at=minutes(5), dirty=True)

    assert patched.score == 0.0
    assert patched.last_reviewed_at == minutes(5)
    assert patched.dirty is True
    assert await replica.get_question("q1") == patched


async def test_patch_unknown_question_returns_none(replica):
    assert await replica.patch_question("missing", score=3.0) is None


async def test_patch_rejects_unknown_fields(replica):
    await replica.insert_question(make_question("q1"))
    with pytest.raises(ValueError):
        await replica.patch_question("q1", created_at=minutes(1))


async def test_upsert_overwrites_existing_rows(replica):
    await replica.insert_question(make_question("q1", score=7.0, dirty=True))

    written = await replica.upsert_questions([
        make_question("q1", score=2.0, prompt="changed"),
        make_question("q2"),
    ])

    assert written == 2
    q1 = await replica.get_question("q1")
    assert q1.score == 2.0
    assert q1.prompt == "changed"
    assert q1.dirty is False
    assert await replica.count_questions() == 2


async def test_find_questions_orders_never_reviewed_first(replica):
    await replica.upsert_questions([
        make_question("recent", last_reviewed_at=minutes(30)),
        make_question("old", last_reviewed_at=minutes(1)),
        make_question("never-b", created_at=minutes(2)),
        make_question("never-a", created_at=minutes(1)),
    ])

    found = await replica.find_questions()
    assert [q.id for q in found] == ["never-a", "never-b", "old", "recent"]


async def test_find_questions_with_criteria_tag_and_limit(replica):
    await replica.upsert_questions([
        make_question("a", score=6.0, tags=["verbs"], last_reviewed_at=minutes(3)),
        make_question("b", score=6.0, tags=["nouns"], last_reviewed_at=minutes(1)),
        make_question("c", score=7.0, tags=["verbs", "a1"], last_reviewed_at=minutes(2)),
        make_question("d", score=2.0, tags=["verbs"]),
    ])

    difficult_verbs = await replica.find_questions(QuestionRow.score >= 5, tag="VERBS")
    assert [q.id for q in difficult_verbs] == ["c", "a"]

    first = await replica.find_questions(QuestionRow.score >= 5, tag="verbs", limit=1)
    assert [q.id for q in first] == ["c"]

    assert await replica.find_questions(tag="unknown") == []


async def test_mark_question_clean_only_when_unchanged(replica):
    await replica.insert_question(make_question("q1", score=5.0, last_reviewed_at=minutes(1), dirty=True))
    snapshot = await replica.get_question("q1")

    # Edited after the snapshot was taken
    await replica.patch_question("q1", score=6.0, last_reviewed_at=minutes(2), dirty=True)
    assert await replica.mark_question_clean("q1", snapshot.score, snapshot.last_reviewed_at) is False
    assert (await replica.get_question("q1")).dirty is True

    current = await replica.get_question("q1")
    assert await replica.mark_question_clean("q1", current.score, current.last_reviewed_at) is True
    assert (await replica.get_question("q1")).dirty is False


async def test_mark_questions_created(replica):
    await replica.insert_question(make_question("q1", dirty=True, pending_create=True))
    await replica.insert_question(make_question("q2", dirty=True, pending_create=True))

    assert await replica.mark_questions_created(["q1"]) == 1
    assert (await replica.get_question("q1")).pending_create is False
    assert (await replica.get_question("q2")).pending_create is True
    assert await replica.mark_questions_created([]) == 0


async def test_mark_question_clean_handles_never_reviewed(replica):
    await replica.insert_question(make_question("q1", dirty=True))
    assert await replica.mark_question_clean("q1", 4.0, None) is True
    assert await replica.find_dirty_questions() == []


# ---- Attempts ----

async def test_attempts_are_unsynced_until_marked(replica):
    first = Attempt(id="a1", question_id="q1", correct=True, answered_at=minutes(1))
    second = Attempt(id="a2", question_id="gone", correct=False, answered_at=minutes(2))
    await replica.insert_attempt(second)
    await replica.insert_attempt(first)

    unsynced = await replica.find_unsynced_attempts()
    assert [a.id for a in unsynced] == ["a1", "a2"]

    assert await replica.mark_attempts_synced(["a1"]) == 1
    assert [a.id for a in await replica.find_unsynced_attempts()] == ["a2"]
    assert [a.synced for a in await replica.list_attempts()] == [True, False]
    assert [a.id for a in await replica.list_attempts(question_id="gone")] == ["a2"]
    assert await replica.mark_attempts_synced([]) == 0


# ---- Lifecycle and schema ----

async def test_replica_must_be_opened(replica_url):
    replica = LocalReplica(replica_url)
    with pytest.raises(RuntimeError):
        await replica.get_question("q1")


async def test_data_survives_reopen(replica_url):
    async with LocalReplica(replica_url) as replica:
        await replica.insert_question(make_question("q1", tags=["x"], dirty=True))

    async with LocalReplica(replica_url) as replica:
        loaded = await replica.get_question("q1")
        assert loaded.tags == ["x"]
        assert loaded.dirty is True


async def test_version_one_store_gets_tags_column(replica_url):
    engine = create_async_engine(replica_url)
    async with engine.begin() as conn:
        await conn.execute(text(
            "CREATE TABLE questions ("
            " id VARCHAR(100) PRIMARY KEY,"
            " prompt TEXT NOT NULL,"
            " answer TEXT NOT NULL,"
            " description TEXT,"
            " score FLOAT NOT NULL,"
            " created_at VARCHAR(40) NOT NULL,"
            " last_reviewed_at VARCHAR(40),"
            " dirty BOOLEAN NOT NULL DEFAULT 0)"
        ))
        await conn.execute(text(
            "INSERT INTO questions (id, prompt, answer, score, created_at, dirty)"
            " VALUES ('old', 'Haus', 'house', 6.0, '2023-05-01T10:00:00.000000+00:00', 1)"
        ))
    await engine.dispose()

    async with LocalReplica(replica_url) as replica:
        migrated = await replica.get_question("old")
        assert migrated.tags == []
        assert migrated.score == 6.0
        assert migrated.dirty is True
        # Unpushed rows from before version 3 may never have reached the remote store
        assert migrated.pending_create is True

        await replica.patch_question("old", tags=["Nouns"])
        assert (await replica.get_question("old")).tags == ["nouns"]

    engine = create_async_engine(replica_url)
    async with engine.connect() as conn:
        version = (await conn.execute(
            text("SELECT value FROM schema_meta WHERE key = 'schema_version'")
        )).scalar_one()
    await engine.dispose()
    assert int(version) == SCHEMA_VERSION


async def test_newer_store_is_refused(replica_url):
    async with LocalReplica(replica_url):
        pass

    engine = create_async_engine(replica_url)
    async with engine.begin() as conn:
        await conn.execute(text("UPDATE schema_meta SET value = '99' WHERE key = 'schema_version'"))
    await engine.dispose()

    with pytest.raises(ReplicaSchemaError):
        await LocalReplica(replica_url).open()
