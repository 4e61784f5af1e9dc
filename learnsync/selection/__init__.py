"""Question selection for revision and game modes."""

from learnsync.selection.engine import (
    DIFFICULT_TARGET,
    GAME_SIZE,
    build_game_batch,
    build_game_batch_from_pool,
    compose_game_batch,
    next_revision_question,
    select_next_question,
)
from learnsync.selection.pool_utils import (
    fill_in_order,
    filter_by_tag,
    review_sort_key,
    split_bands,
)

__all__ = [
    "DIFFICULT_TARGET",
    "GAME_SIZE",
    "build_game_batch",
    "build_game_batch_from_pool",
    "compose_game_batch",
    "next_revision_question",
    "select_next_question",
    "fill_in_order",
    "filter_by_tag",
    "review_sort_key",
    "split_bands",
]
