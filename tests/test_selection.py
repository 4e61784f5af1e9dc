import random

from learnsync.selection import (
    GAME_SIZE,
    build_game_batch,
    build_game_batch_from_pool,
    compose_game_batch,
    fill_in_order,
    next_revision_question,
    select_next_question,
)

from conftest import make_question, minutes


def _band(prefix: str, count: int, score: float):
    return [
        make_question(f"{prefix}{i}", score=score, last_reviewed_at=minutes(i))
        for i in range(count)
    ]


def _ids(questions):
    return {q.id for q in questions}


# ---- fill_in_order ----

def test_fill_in_order_walks_pools_in_order():
    pools = {"a": [1, 2], "b": [3, 4, 5]}
    assert fill_in_order(pools, ["a", "b"], 4) == [1, 2, 3, 4]
    assert fill_in_order(pools, ["b", "a"], 10) == [3, 4, 5, 1, 2]
    assert fill_in_order(pools, ["missing", "a"], 1) == [1]


# ---- compose_game_batch ----

def test_game_takes_two_difficult_and_eight_new():
    difficult = _band("d", 3, 7.0)
    new = _band("n", 20, 2.0)

    batch = compose_game_batch(difficult, new[:GAME_SIZE], rng=random.Random(1))

    assert len(batch) == 10
    assert _ids(batch) == {"d0", "d1"} | {f"n{i}" for i in range(8)}


def test_game_returns_everything_when_short():
    batch = compose_game_batch([], _band("n", 4, 2.0), rng=random.Random(1))
    assert _ids(batch) == {"n0", "n1", "n2", "n3"}


def test_game_fills_from_leftover_difficult():
    difficult = _band("d", 12, 6.0)[:GAME_SIZE]
    new = _band("n", 1, 3.0)

    batch = compose_game_batch(difficult, new, rng=random.Random(1))

    assert len(batch) == 10
    assert "n0" in _ids(batch)
    assert _ids(batch) - {"n0"} == {f"d{i}" for i in range(9)}


def test_game_fills_from_leftover_new():
    batch = compose_game_batch(_band("d", 1, 8.0), _band("n", 15, 1.0)[:GAME_SIZE], rng=random.Random(1))
    assert len(batch) == 10
    assert _ids(batch) == {"d0"} | {f"n{i}" for i in range(9)}


def test_game_is_empty_without_candidates():
    assert compose_game_batch([], []) == []


def test_game_is_shuffled_with_given_rng():
    difficult = _band("d", 2, 7.0)
    new = _band("n", 8, 2.0)
    first = compose_game_batch(difficult, new, rng=random.Random(3))
    second = compose_game_batch(difficult, new, rng=random.Random(3))
    assert [q.id for q in first] == [q.id for q in second]
    assert _ids(first) == _ids(difficult + new)


def test_pool_batch_excludes_learned_and_filters_tag():
    pool = [
        make_question("learned", score=0.0, tags=["verbs"]),
        make_question("hard", score=6.0, tags=["verbs"]),
        make_question("easy", score=3.0, tags=["verbs"]),
        make_question("other", score=3.0, tags=["nouns"]),
    ]
    batch = build_game_batch_from_pool(pool, tag="verbs", rng=random.Random(1))
    assert _ids(batch) == {"hard", "easy"}


# ---- select_next_question ----

def test_next_question_prefers_never_reviewed():
    pool = [
        make_question("reviewed", last_reviewed_at=minutes(1)),
        make_question("fresh"),
        make_question("learned", score=0.0),
    ]
    assert select_next_question(pool).id == "fresh"


def test_next_question_oldest_review_first():
    pool = [
        make_question("later", last_reviewed_at=minutes(10)),
        make_question("earlier", last_reviewed_at=minutes(2)),
    ]
    assert select_next_question(pool).id == "earlier"


def test_next_question_none_when_all_learned():
    assert select_next_question([make_question("a", score=0.0)]) is None
    assert select_next_question([]) is None


# ---- Replica-backed ----

async def test_next_revision_question_from_replica(replica):
    await replica.upsert_questions([
        make_question("learned", score=0.0),
        make_question("recent", score=5.0, last_reviewed_at=minutes(9), tags=["verbs"]),
        make_question("stale", score=2.0, last_reviewed_at=minutes(1)),
    ])

    assert (await next_revision_question(replica)).id == "stale"
    assert (await next_revision_question(replica, tag="verbs")).id == "recent"
    assert await next_revision_question(replica, tag="nouns") is None


async def test_next_revision_question_all_caught_up(replica):
    await replica.upsert_questions([make_question("a", score=0.0), make_question("b", score=0.0)])
    assert await next_revision_question(replica) is None


async def test_build_game_batch_from_replica(replica):
    await replica.upsert_questions(
        _band("d", 3, 7.0) + _band("n", 20, 2.0) + [make_question("learned", score=0.0)]
    )

    batch = await build_game_batch(replica, rng=random.Random(5))

    assert len(batch) == 10
    ids = _ids(batch)
    assert "learned" not in ids
    assert ids == {"d0", "d1"} | {f"n{i}" for i in range(8)}


async def test_build_game_batch_boundary_scores(replica):
    await replica.upsert_questions([
        make_question("at-threshold", score=5.0),
        make_question("just-below", score=4.5),
        make_question("barely-active", score=0.5),
    ])

    batch = await build_game_batch(replica, rng=random.Random(2))
    assert _ids(batch) == {"at-threshold", "just-below", "barely-active"}


async def test_build_game_batch_empty_replica(replica):
    assert await build_game_batch(replica) == []
