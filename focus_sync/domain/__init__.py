"""Domain models and DTOs."""

from focus_sync.domain.auth import AuthResponse, LoginRequest, RefreshRequest, RegisterRequest, TokenPair
from focus_sync.domain.records import (
    SyncRecord,
    TaskRecord,
    TimerCategory,
    TimerRecord,
    TimerStatus,
    new_task,
    new_timer_entry,
    recency_key,
    toggle_task,
)
from focus_sync.domain.sync import SyncPayload, SyncResult
from focus_sync.domain.user import UserAccount, UserProfile


__all__ = [
    "AuthResponse",
    "LoginRequest",
    "RefreshRequest",
    "RegisterRequest",
    "SyncPayload",
    "SyncRecord",
    "SyncResult",
    "TaskRecord",
    "TimerCategory",
    "TimerRecord",
    "TimerStatus",
    "TokenPair",
    "UserAccount",
    "UserProfile",
    "new_task",
    "new_timer_entry",
    "recency_key",
    "toggle_task",
]
