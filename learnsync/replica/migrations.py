"""
Schema versioning for the local replica.

Version history:
- 1: questions and attempts, no tags
- 2: questions.tags (JSON list, defaults to [])
- 3: questions.pending_create (local-only, defaults to false)

Existing stores are upgraded in place on open; they are never dropped.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from sqlalchemy import inspect, select, text
from sqlalchemy.ext.asyncio import AsyncConnection

from learnsync.errors import ReplicaSchemaError
from learnsync.replica.models import Base, SchemaMeta

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 3
VERSION_KEY = "schema_version"


async def _question_columns(conn: AsyncConnection) -> set[str]:
    return await conn.run_sync(
        lambda sync_conn: {col["name"] for col in inspect(sync_conn).get_columns("questions")}
    )


async def _add_tags_column(conn: AsyncConnection) -> None:
    if "tags" in await _question_columns(conn):
        return
    await conn.execute(text("ALTER TABLE questions ADD COLUMN tags JSON NOT NULL DEFAULT '[]'"))
    await conn.execute(text("UPDATE questions SET tags = '[]' WHERE tags IS NULL"))


async def _add_pending_create_column(conn: AsyncConnection) -> None:
    if "pending_create" in await _question_columns(conn):
        return
    await conn.execute(text("ALTER TABLE questions ADD COLUMN pending_create BOOLEAN NOT NULL DEFAULT 0"))
    # Unpushed rows may come from a failed create; the next push confirms them
    await conn.execute(text("UPDATE questions SET pending_create = dirty"))


# Step that upgrades a store from (version - 1) to version
MIGRATIONS: dict[int, Callable[[AsyncConnection], Awaitable[None]]] = {
    2: _add_tags_column,
    3: _add_pending_create_column,
}


async def _read_version(conn: AsyncConnection, tables: set[str]) -> int:
    if "schema_meta" not in tables:
        # Stores written before versioning existed
        return 1
    result = await conn.execute(select(SchemaMeta.value).where(SchemaMeta.key == VERSION_KEY))
    value = result.scalar_one_or_none()
    return int(value) if value is not None else 1


async def _write_version(conn: AsyncConnection, version: int) -> None:
    await conn.execute(SchemaMeta.__table__.delete().where(SchemaMeta.key == VERSION_KEY))
    await conn.execute(SchemaMeta.__table__.insert().values(key=VERSION_KEY, value=str(version)))


async def upgrade(conn: AsyncConnection) -> int:
    """
    Create or upgrade the replica schema.

    Safe to call on every open: a fresh store is created at SCHEMA_VERSION,
    an older store is migrated step by step.

    Args:
        conn: Connection inside an open transaction

    Returns:
        Schema version the store was at before the upgrade (0 if new)

    Raises:
        ReplicaSchemaError: store is newer than this code, or a step failed
    """
    tables = set(await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names()))

    if "questions" not in tables:
        await conn.run_sync(Base.metadata.create_all)
        await _write_version(conn, SCHEMA_VERSION)
        return 0

    current = await _read_version(conn, tables)
    if current > SCHEMA_VERSION:
        raise ReplicaSchemaError(
            f"Replica schema version {current} is newer than supported version {SCHEMA_VERSION}"
        )

    for version in range(current + 1, SCHEMA_VERSION + 1):
        logger.info("Migrating local replica schema %s -> %s", version - 1, version)
        try:
            await MIGRATIONS[version](conn)
        except Exception as exc:
            raise ReplicaSchemaError(f"Replica migration to version {version} failed: {exc}") from exc

    # Creates any table added since (attempts, schema_meta); existing ones are left alone
    await conn.run_sync(Base.metadata.create_all)
    await _write_version(conn, SCHEMA_VERSION)
    return current
