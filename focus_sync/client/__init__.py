"""Offline-first sync client."""

from focus_sync.client.api_client import ApiClient, ApiRequestError
from focus_sync.client.connectivity import ConnectivityMonitor
from focus_sync.client.local_store import Collection, LocalStore
from focus_sync.client.sync_client import CachedState, SyncClient, SyncState


__all__ = [
    "ApiClient",
    "ApiRequestError",
    "CachedState",
    "Collection",
    "ConnectivityMonitor",
    "LocalStore",
    "SyncClient",
    "SyncState",
]
