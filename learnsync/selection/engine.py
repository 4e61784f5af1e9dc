"""
Selection - which questions to present next

Two modes:
1. Revision: one question at a time, longest untouched first
2. Game: a shuffled batch of GAME_SIZE mixing two bands
   - Difficult band: score >= DIFFICULT_THRESHOLD
   - New band: 0 < score < DIFFICULT_THRESHOLD

Game composition:
- DIFFICULT_TARGET from the difficult band, the rest from the new band
- Shortfall filled from leftover difficult, then leftover new
- Final batch shuffled

Selection never writes. An empty result means "nothing to review".
"""

from __future__ import annotations

import random
from typing import Optional, Sequence

from learnsync import scoring
from learnsync.replica import LocalReplica, QuestionRow
from learnsync.schemas import Question
from learnsync.selection.pool_utils import (
    fill_in_order,
    filter_by_tag,
    review_sort_key,
    split_bands,
)

# ---- Game Configuration ----
GAME_SIZE = 10          # Questions per game
DIFFICULT_TARGET = 2    # Difficult questions per game (rest are new)

assert 0 <= DIFFICULT_TARGET <= GAME_SIZE, "DIFFICULT_TARGET must fit in GAME_SIZE"


# ---- Pure selection ----

def select_next_question(
    questions: Sequence[Question],
    tag: Optional[str] = None
) -> Optional[Question]:
    """
    Pick the revision question from an in-memory pool.

    Args:
        questions: Candidate pool (any order)
        tag: Optional tag filter

    Returns:
        The unlearned question untouched the longest, or None
    """
    active = [q for q in filter_by_tag(questions, tag) if not scoring.is_learned(q.score)]
    if not active:
        return None
    return min(active, key=review_sort_key)


def compose_game_batch(
    difficult: Sequence[Question],
    new: Sequence[Question],
    size: int = GAME_SIZE,
    difficult_target: int = DIFFICULT_TARGET,
    rng: Optional[random.Random] = None
) -> list[Question]:
    """
    Mix two ordered bands into one shuffled game batch.

    Args:
        difficult: Difficult band, in review order
        new: New band, in review order
        size: Batch size
        difficult_target: Wanted number of difficult questions
        rng: Random source for the shuffle (default: module random)

    Returns:
        Up to `size` questions, shuffled
    """
    difficult_count = min(difficult_target, len(difficult))
    new_count = min(size - difficult_target, len(new))

    batch = list(difficult[:difficult_count]) + list(new[:new_count])

    # Not enough in one band: top up from what is left over
    remaining = size - len(batch)
    if remaining > 0:
        batch += fill_in_order(
            {
                "difficult": difficult[difficult_count:],
                "new": new[new_count:],
            },
            ["difficult", "new"],
            remaining,
        )

    (rng or random).shuffle(batch)
    return batch


def build_game_batch_from_pool(
    questions: Sequence[Question],
    tag: Optional[str] = None,
    rng: Optional[random.Random] = None
) -> list[Question]:
    """Game batch from an in-memory pool (same rules as build_game_batch)."""
    difficult, new = split_bands(filter_by_tag(questions, tag))
    return compose_game_batch(difficult[:GAME_SIZE], new[:GAME_SIZE], rng=rng)


# ---- Replica-backed selection ----

async def next_revision_question(
    replica: LocalReplica,
    tag: Optional[str] = None
) -> Optional[Question]:
    """
    Next question for revision mode, read from the local replica.

    Returns:
        Question, or None when everything is learned ("all caught up")
    """
    found = await replica.find_questions(
        QuestionRow.score > scoring.MIN_SCORE,
        tag=tag,
        limit=1,
    )
    return found[0] if found else None


async def build_game_batch(
    replica: LocalReplica,
    tag: Optional[str] = None,
    rng: Optional[random.Random] = None
) -> list[Question]:
    """
    Build a shuffled game batch from the local replica.

    Each band is read in review order and capped at GAME_SIZE rows.

    Returns:
        Up to GAME_SIZE questions; empty when nothing qualifies
    """
    difficult = await replica.find_questions(
        QuestionRow.score > scoring.MIN_SCORE,
        QuestionRow.score >= scoring.DIFFICULT_THRESHOLD,
        tag=tag,
        limit=GAME_SIZE,
    )
    new = await replica.find_questions(
        QuestionRow.score > scoring.MIN_SCORE,
        QuestionRow.score < scoring.DIFFICULT_THRESHOLD,
        tag=tag,
        limit=GAME_SIZE,
    )
    return compose_game_batch(difficult, new, rng=rng)
