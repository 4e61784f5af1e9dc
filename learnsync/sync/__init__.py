"""
Sync - reconcile the local replica with the remote store.

Quick start:
    from learnsync.sync import SyncCoordinator, BackgroundSync

    coordinator = SyncCoordinator(replica, remote)
    await coordinator.initial_sync()

    background = BackgroundSync(coordinator, interval=10)
    background.start()
"""

from learnsync.sync.background import BackgroundSync
from learnsync.sync.coordinator import SyncCoordinator, SyncReport, dedupe_last_wins

__all__ = [
    "BackgroundSync",
    "SyncCoordinator",
    "SyncReport",
    "dedupe_last_wins",
]
