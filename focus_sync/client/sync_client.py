"""Client-side sync attempt state machine.

One attempt: persist locally, then (if online and not already syncing) send
the records, and on success replace the local cache with the server's
authoritative set. A batch submitted while an attempt is running is saved
and merged over that attempt's result, so it is never overwritten. Failures
leave local data authoritative until the next trigger.
"""

import logging
import threading
from collections.abc import Iterable
from enum import StrEnum
from typing import NamedTuple

from focus_sync.client.api_client import ApiClient
from focus_sync.client.connectivity import ConnectivityMonitor
from focus_sync.client.local_store import LocalStore
from focus_sync.core.config import constants
from focus_sync.core.errors import TransientNetworkFailure
from focus_sync.domain.auth import TokenPair
from focus_sync.domain.records import TaskRecord, TimerRecord
from focus_sync.domain.sync import SyncResult
from focus_sync.services.reconciliation_service import merge_by_id


logger = logging.getLogger(__name__)


class SyncState(StrEnum):
    """Sync attempt lifecycle."""

    IDLE = "idle"
    SYNCING = "syncing"


class CachedState(NamedTuple):
    """Records restored from the local cache."""

    tasks: list[TaskRecord]
    timers: list[TimerRecord]
    last_synced_at: str | None


class SyncClient:
    """Reconciles the local cache with the server, one attempt at a time."""

    def __init__(
        self,
        *,
        store: LocalStore,
        api: ApiClient,
        connectivity: ConnectivityMonitor | None = None,
    ) -> None:
        self._store = store
        self._api = api
        self._connectivity = connectivity or ConnectivityMonitor()
        self._tokens: TokenPair | None = None
        self._last_result: SyncResult | None = None
        self._state = SyncState.IDLE
        self._state_lock = threading.Lock()
        self._pending: tuple[list[TaskRecord], list[TimerRecord]] | None = None

        self._connectivity.add_reconnect_listener(self.sync_cached)

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def last_result(self) -> SyncResult | None:
        return self._last_result

    @property
    def status_note(self) -> str:
        """Short status line for display."""
        if self._last_result is None:
            return constants.SYNC_NOTE_NEVER_SYNCED
        return f"{self._last_result.message} • {self._last_result.last_synced_at}"

    def set_tokens(self, tokens: TokenPair | None) -> None:
        """Use ``tokens`` for subsequent syncs; None syncs anonymously."""
        self._tokens = tokens

    def hydrate(self) -> CachedState:
        """Load what the cache holds, e.g. after a restart."""
        return CachedState(
            tasks=self._store.load_tasks(),
            timers=self._store.load_timers(),
            last_synced_at=self._store.load_last_synced_at(),
        )

    def _is_online(self) -> bool:
        return self._connectivity.is_online and not self._store.load_offline_preference()

    def _save_local(self, tasks: list[TaskRecord], timers: list[TimerRecord]) -> None:
        self._store.save_tasks(tasks)
        self._store.save_timers(timers)

    def _begin(self, tasks: list[TaskRecord], timers: list[TimerRecord]) -> str | None:
        """Persist the batch and move IDLE -> SYNCING.

        Returns None when the attempt may proceed, otherwise the reason it was
        skipped. A batch skipped while another attempt is running is kept as
        pending so that attempt's result cannot overwrite it.
        """
        with self._state_lock:
            # Local edits are durable before any network work
            self._save_local(tasks, timers)

            if self._state is SyncState.SYNCING:
                self._pending = (tasks, timers)
                return "in_flight"
            if not self._is_online():
                return "offline"

            self._state = SyncState.SYNCING
            self._pending = None
            return None

    def _complete(self, result: SyncResult) -> None:
        """Adopt the server result, keeping newer records from a batch skipped meanwhile."""
        with self._state_lock:
            tasks, timers = result.tasks, result.timers
            if self._pending is not None:
                pending_tasks, pending_timers = self._pending
                tasks = list(merge_by_id({task.id: task for task in tasks}, pending_tasks).values())
                timers = list(merge_by_id({timer.id: timer for timer in timers}, pending_timers).values())
                logger.info("sync_pending_batch_kept", extra={"task_count": len(tasks), "timer_count": len(timers)})

            self._save_local(tasks, timers)
            self._store.save_last_synced_at(result.last_synced_at)
            self._last_result = result
            self._state = SyncState.IDLE
            self._pending = None

    def _abort(self) -> None:
        with self._state_lock:
            # The store already holds the most recent local batch
            self._state = SyncState.IDLE
            self._pending = None

    async def sync(self, tasks: Iterable[TaskRecord], timers: Iterable[TimerRecord]) -> SyncResult | None:
        """Run one sync attempt.

        Returns:
            The server's result, or None when no sync was performed (offline,
            another attempt in flight, or the request failed)
        """
        tasks = list(tasks)
        timers = list(timers)

        skipped = self._begin(tasks, timers)
        if skipped is not None:
            logger.info("sync_skipped", extra={"reason": skipped})
            return None

        completed = False
        try:
            access_token = self._tokens.access_token if self._tokens else None
            try:
                result = await self._api.sync(tasks, timers, access_token=access_token)
            except TransientNetworkFailure as e:
                logger.warning("sync_failed", extra={"error": str(e), "status_code": e.status_code})
                return None

            self._complete(result)
            completed = True

            logger.info(
                "sync_succeeded",
                extra={"task_count": len(result.tasks), "timer_count": len(result.timers)},
            )
            return result
        finally:
            if not completed:
                self._abort()

    async def sync_cached(self) -> SyncResult | None:
        """Sync whatever the cache currently holds (used on reconnect)."""
        cached = self.hydrate()
        return await self.sync(cached.tasks, cached.timers)
