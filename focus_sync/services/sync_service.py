"""Sync round orchestration: authenticate softly, lock, merge, persist."""

import logging
from datetime import UTC, datetime

from focus_sync.core.logging import log_event, span
from focus_sync.core.user_store import UserLocks, UserRepository
from focus_sync.domain.records import TaskRecord, TimerRecord, format_timestamp
from focus_sync.domain.sync import SyncPayload, SyncResult
from focus_sync.services.reconciliation_service import reconcile
from focus_sync.services.token_service import TokenManager


logger = logging.getLogger(__name__)


def stamp_missing_timestamps(
    payload: SyncPayload, *, now: datetime | None = None
) -> tuple[list[TaskRecord], list[TimerRecord]]:
    """Fill a missing task ``updatedAt`` or timer ``startedAt`` with the server time.

    Records that already carry the field are returned untouched.
    """
    stamp = format_timestamp(now or datetime.now(UTC))
    tasks = [
        task if task.updated_at is not None else task.model_copy(update={"updated_at": stamp})
        for task in payload.tasks
    ]
    timers = [
        timer if timer.started_at is not None else timer.model_copy(update={"started_at": stamp})
        for timer in payload.timers
    ]
    return tasks, timers


class SyncService:
    """Runs one reconciliation round per request."""

    def __init__(self, *, repository: UserRepository, locks: UserLocks, tokens: TokenManager) -> None:
        self._repository = repository
        self._locks = locks
        self._tokens = tokens

    async def sync_records(self, payload: SyncPayload, *, access_token: str | None = None) -> SyncResult:
        """Reconcile a client batch.

        A missing or invalid access token, or one whose user no longer exists,
        degrades to an anonymous echo instead of an error.
        """
        with span("sync_service.sync_records"):
            now = datetime.now(UTC)
            tasks, timers = stamp_missing_timestamps(payload, now=now)

            user_id = self._tokens.verify_access(access_token)
            if access_token and user_id is None:
                logger.warning("sync_access_token_rejected")

            if user_id is None:
                _, result = reconcile(None, tasks, timers, now=now)
                return result

            async with self._locks.for_user(user_id):
                user = await self._repository.get_by_id(user_id)
                if user is None:
                    log_event(logger, "warning", "sync_unknown_user", user_id=user_id)
                    _, result = reconcile(None, tasks, timers, now=now)
                    return result

                updated, result = reconcile(user, tasks, timers, now=now)
                if updated is not None:
                    await self._repository.save(updated)

            log_event(
                logger,
                "info",
                "sync_completed",
                user_id=user_id,
                task_count=len(result.tasks),
                timer_count=len(result.timers),
            )
            return result
