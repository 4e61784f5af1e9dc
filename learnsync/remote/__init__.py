"""Remote store contract and the MongoDB implementation."""

from learnsync.remote.base import DEFAULT_PAGE_SIZE, RemoteStore
from learnsync.remote.mongo import (
    MongoRemoteStore,
    question_from_document,
    question_to_document,
)

__all__ = [
    "DEFAULT_PAGE_SIZE",
    "MongoRemoteStore",
    "RemoteStore",
    "question_from_document",
    "question_to_document",
]
