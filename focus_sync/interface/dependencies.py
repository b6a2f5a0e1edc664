"""FastAPI dependencies resolving the services wired into the application."""

from fastapi import Request

from focus_sync.services.auth_service import AuthService
from focus_sync.services.sync_service import SyncService


def get_auth_service(request: Request) -> AuthService:
    """Return the application's auth service."""
    return request.app.state.auth_service


def get_sync_service(request: Request) -> SyncService:
    """Return the application's sync service."""
    return request.app.state.sync_service
