"""Server-side last-write-wins merge of client record batches."""

import logging
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import TypeVar

from focus_sync.core.config import constants
from focus_sync.domain.records import SyncRecord, TaskRecord, TimerRecord, format_timestamp, recency_key
from focus_sync.domain.sync import SyncResult
from focus_sync.domain.user import UserAccount


logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=SyncRecord)


def merge_by_id(stored: Mapping[str, RecordT], incoming: Iterable[RecordT]) -> dict[str, RecordT]:
    """Merge ``incoming`` into ``stored`` keeping the most recent revision of each id.

    An incoming record replaces the stored one only when its recency key is
    strictly greater, so the stored revision wins ties. Stored ids missing from
    ``incoming`` are kept.
    """
    merged = dict(stored)
    for record in incoming:
        prior = merged.get(record.id)
        if prior is None or recency_key(record) > recency_key(prior):
            merged[record.id] = record
    return merged


def reconcile(
    user: UserAccount | None,
    incoming_tasks: Iterable[TaskRecord],
    incoming_timers: Iterable[TimerRecord],
    *,
    now: datetime | None = None,
) -> tuple[UserAccount | None, SyncResult]:
    """Reconcile a client batch against the authoritative records of ``user``.

    Args:
        user: Authenticated account whose records may be read and replaced, or
            None for an anonymous round trip
        incoming_tasks: Tasks submitted by the client
        incoming_timers: Timers submitted by the client
        now: Time stamped on the result (defaults to the current time)

    Returns:
        Tuple of (updated account or None, sync result). The caller persists
        the updated account.
    """
    synced_at = format_timestamp(now or datetime.now(UTC))
    tasks = list(incoming_tasks)
    timers = list(incoming_timers)

    if user is None:
        logger.info("sync_anonymous_echo", extra={"task_count": len(tasks), "timer_count": len(timers)})
        return None, SyncResult(
            tasks=tasks,
            timers=timers,
            last_synced_at=synced_at,
            message=constants.SYNC_MESSAGE_ANONYMOUS,
        )

    merged_tasks = merge_by_id(user.tasks, tasks)
    merged_timers = merge_by_id(user.timers, timers)
    updated = user.model_copy(update={"tasks": merged_tasks, "timers": merged_timers})

    logger.info(
        "sync_merged",
        extra={
            "user_id": user.id,
            "incoming_tasks": len(tasks),
            "incoming_timers": len(timers),
            "merged_tasks": len(merged_tasks),
            "merged_timers": len(merged_timers),
        },
    )

    return updated, SyncResult(
        tasks=list(merged_tasks.values()),
        timers=list(merged_timers.values()),
        last_synced_at=synced_at,
        message=constants.SYNC_MESSAGE_PROFILE,
    )
