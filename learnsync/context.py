"""
Application context: owns the replica, the remote client and sync.

Constructed explicitly, opened on startup and closed on shutdown:

    async with AppContext.from_settings(Settings()) as ctx:
        await ctx.start_session()
        question = await next_revision_question(ctx.replica)
"""

from __future__ import annotations

import logging
from typing import Optional

from learnsync.config import Settings
from learnsync.errors import RemoteStoreError
from learnsync.remote import MongoRemoteStore, RemoteStore
from learnsync.replica import LocalReplica
from learnsync.sync import BackgroundSync, SyncCoordinator

logger = logging.getLogger(__name__)


class AppContext:
    """
    Explicit holder for the client-side resources of one process.

    Args:
        replica: Local replica (not yet opened)
        remote: Remote store client
        sync_interval: Seconds between background pushes
        page_size: Pull page size (default: the remote store's)
    """

    def __init__(
        self,
        replica: LocalReplica,
        remote: RemoteStore,
        sync_interval: float = 10.0,
        page_size: Optional[int] = None
    ):
        self.replica = replica
        self.remote = remote
        self.coordinator = SyncCoordinator(replica, remote, page_size=page_size)
        self.background = BackgroundSync(self.coordinator, interval=sync_interval)

    @classmethod
    def from_settings(cls, settings: Settings) -> "AppContext":
        replica = LocalReplica(settings.replica_url)
        remote = MongoRemoteStore.from_uri(
            settings.require_mongo_uri(),
            db_name=settings.db_name,
            page_size=settings.pull_page_size,
        )
        return cls(
            replica,
            remote,
            sync_interval=settings.sync_interval_seconds,
            page_size=settings.pull_page_size,
        )

    # ---- Lifecycle ----

    async def open(self) -> None:
        try:
            await self.replica.open()
        except BaseException:
            await self.remote.close()
            raise
        if isinstance(self.remote, MongoRemoteStore):
            try:
                await self.remote.ensure_indexes()
            except RemoteStoreError as exc:
                logger.warning("Remote store unreachable at startup, working offline: %s", exc)

    async def close(self) -> None:
        await self.background.stop()
        await self.remote.close()
        await self.replica.close()

    async def __aenter__(self) -> "AppContext":
        await self.open()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # ---- Session ----

    async def start_session(self, background: bool = True) -> bool:
        """
        Bootstrap a client session: initial pull, then background pushes.

        A failed pull is logged and the session continues on the
        replica as it is.

        Returns:
            True if the initial pull succeeded
        """
        try:
            await self.coordinator.initial_sync()
            pulled = True
        except RemoteStoreError as exc:
            logger.error("Initial sync failed, using local replica as-is: %s", exc)
            pulled = False

        if background:
            self.background.start()
        return pulled

    def resume(self) -> None:
        """Call when the app returns to the foreground."""
        self.background.trigger_now()
