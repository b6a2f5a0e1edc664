"""Sync request and response models."""

from pydantic import Field

from focus_sync.domain.base import CamelModel
from focus_sync.domain.records import TaskRecord, TimerRecord


class SyncPayload(CamelModel):
    """Records a client submits for reconciliation."""

    tasks: list[TaskRecord] = Field(default_factory=list)
    timers: list[TimerRecord] = Field(default_factory=list)


class SyncResult(CamelModel):
    """Authoritative records returned by a sync round."""

    tasks: list[TaskRecord] = Field(default_factory=list)
    timers: list[TimerRecord] = Field(default_factory=list)
    last_synced_at: str = Field(..., description="ISO-8601 time the server produced this result")
    message: str = Field(..., description="Human-readable sync status")

    def to_wire(self) -> dict:
        """Serialize with camelCase keys, omitting unset optional record fields."""
        return {
            "tasks": [task.to_wire() for task in self.tasks],
            "timers": [timer.to_wire() for timer in self.timers],
            "lastSyncedAt": self.last_synced_at,
            "message": self.message,
        }
