"""Task and timer record models plus the recency ordering used to reconcile them."""

import uuid
from datetime import UTC, datetime, timedelta
from enum import StrEnum

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from focus_sync.domain.base import CamelModel


class TimerCategory(StrEnum):
    """Kind of timed session."""

    FOCUS = "focus"
    SHORT_BREAK = "short-break"
    LONG_BREAK = "long-break"


class TimerStatus(StrEnum):
    """How a timed session ended."""

    COMPLETED = "completed"
    CANCELLED = "cancelled"


class SyncRecord(CamelModel):
    """Base for records that are synchronized by id.

    Unknown fields sent by a client are kept so they survive a round trip.
    """

    model_config = ConfigDict(extra="allow")

    id: str = Field(..., min_length=1, description="Client-generated unique id, immutable once created")

    def to_wire(self) -> dict:
        """Serialize with camelCase keys, omitting unset optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class TaskRecord(SyncRecord):
    """A to-do item."""

    title: str = Field(..., description="Task title")
    completed: bool = Field(default=False, description="Whether the task is done")
    updated_at: str | None = Field(default=None, description="ISO-8601 time of the last edit")


class TimerRecord(SyncRecord):
    """A timed focus or break session."""

    task_id: str | None = Field(default=None, description="Related task id (not validated)")
    duration_ms: int = Field(..., ge=0, description="Session length in milliseconds")
    started_at: str | None = Field(default=None, description="ISO-8601 session start")
    completed_at: str | None = Field(default=None, description="ISO-8601 session end")
    category: TimerCategory | None = Field(default=None, description="focus, short-break or long-break")
    status: TimerStatus | None = Field(default=None, description="completed or cancelled")
    label: str | None = Field(default=None, description="Free-form label")


def recency_key(record: SyncRecord) -> str:
    """Return the timestamp used to order two revisions of the same record id.

    The chain is updatedAt, then completedAt, then startedAt. Tasks only carry
    updatedAt (last edit time) while timers only carry completedAt/startedAt
    (session times), so the key mixes edit time with session time. A record with
    none of them gets the empty string, which sorts before every timestamp.

    ISO-8601 strings in the fixed-width UTC form compare correctly as strings.
    A timestamp sent as an extra field (e.g. ``updatedAt`` on a timer) counts too.
    """
    extra = record.model_extra or {}
    for field_name in ("updated_at", "completed_at", "started_at"):
        value = getattr(record, field_name, None)
        if value is None:
            value = extra.get(to_camel(field_name))
        if isinstance(value, str):
            return value
    return ""


def format_timestamp(moment: datetime) -> str:
    """Format a datetime as fixed-width UTC ISO-8601 with millisecond precision."""
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, treating naive values as UTC."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def utc_now_iso() -> str:
    """Return the current time in the record timestamp format."""
    return format_timestamp(datetime.now(UTC))


def advance_timestamp(previous: str | None, *, now: datetime | None = None) -> str:
    """Return a timestamp strictly greater than ``previous``.

    Uses the current time unless the clock has not moved past ``previous``,
    in which case ``previous`` is bumped by one millisecond.
    """
    candidate = format_timestamp(now or datetime.now(UTC))
    if previous is None or candidate > previous:
        return candidate
    try:
        return format_timestamp(parse_timestamp(previous) + timedelta(milliseconds=1))
    except ValueError:
        return candidate


def new_record_id() -> str:
    """Generate a fresh client-side record id."""
    return uuid.uuid4().hex


def new_task(title: str, *, now: datetime | None = None) -> TaskRecord:
    """Create a new, incomplete task."""
    return TaskRecord(
        id=new_record_id(),
        title=title.strip(),
        completed=False,
        updated_at=format_timestamp(now or datetime.now(UTC)),
    )


def toggle_task(task: TaskRecord, *, now: datetime | None = None) -> TaskRecord:
    """Flip a task's completion flag as a new revision."""
    return task.model_copy(
        update={"completed": not task.completed, "updated_at": advance_timestamp(task.updated_at, now=now)}
    )


def rename_task(task: TaskRecord, title: str, *, now: datetime | None = None) -> TaskRecord:
    """Change a task's title as a new revision."""
    return task.model_copy(update={"title": title.strip(), "updated_at": advance_timestamp(task.updated_at, now=now)})


def new_timer_entry(
    duration_ms: int,
    *,
    task_id: str | None = None,
    category: TimerCategory | None = None,
    status: TimerStatus | None = TimerStatus.COMPLETED,
    label: str | None = None,
    now: datetime | None = None,
) -> TimerRecord:
    """Record a timed session that starts now and runs for ``duration_ms``."""
    started = now or datetime.now(UTC)
    return TimerRecord(
        id=new_record_id(),
        task_id=task_id,
        duration_ms=duration_ms,
        started_at=format_timestamp(started),
        completed_at=format_timestamp(started + timedelta(milliseconds=duration_ms)),
        category=category,
        status=status,
        label=label,
    )
