from focus_sync.services import (
    auth_service,
    reconciliation_service,
    streak_service,
    sync_service,
    token_service,
)


__all__ = [
    "auth_service",
    "reconciliation_service",
    "streak_service",
    "sync_service",
    "token_service",
]
