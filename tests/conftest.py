"""Pytest configuration and shared fixtures."""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from focus_sync.client.local_store import LocalStore
from focus_sync.core.config import settings
from focus_sync.core.passwords import hash_password
from focus_sync.core.user_store import InMemoryUserRepository, UserLocks
from focus_sync.domain.user import UserAccount
from focus_sync.main import create_app
from focus_sync.services.auth_service import AuthService
from focus_sync.services.sync_service import SyncService
from focus_sync.services.token_service import TokenManager
from tests.factories import TEST_PASSWORD, TEST_TOKEN_SECRET, YieldingUserRepository


@pytest.fixture(autouse=True)
def fast_password_hashing(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep PBKDF2 cheap in tests."""
    monkeypatch.setattr(settings, "password_hash_iterations", 1_000)


@pytest.fixture
def repository() -> InMemoryUserRepository:
    """Provides a fresh in-memory account store for each test.

    Reads and writes yield to the event loop so concurrent requests interleave.
    """
    return YieldingUserRepository()


@pytest.fixture
def locks() -> UserLocks:
    return UserLocks()


@pytest.fixture
def token_manager(repository: InMemoryUserRepository, locks: UserLocks) -> TokenManager:
    return TokenManager(
        repository=repository,
        locks=locks,
        secret=TEST_TOKEN_SECRET,
        access_ttl_seconds=900,
        refresh_ttl_seconds=3600,
    )


@pytest.fixture
def auth_service(repository: InMemoryUserRepository, locks: UserLocks, token_manager: TokenManager) -> AuthService:
    return AuthService(repository=repository, locks=locks, tokens=token_manager)


@pytest.fixture
def sync_service(repository: InMemoryUserRepository, locks: UserLocks, token_manager: TokenManager) -> SyncService:
    return SyncService(repository=repository, locks=locks, tokens=token_manager)


@pytest.fixture
def make_user() -> Callable[..., UserAccount]:
    """Factory for accounts that are not yet stored."""

    def _make_user(**overrides: Any) -> UserAccount:
        data: dict[str, Any] = {
            "id": "user-1",
            "email": "ada@example.com",
            "display_name": "Ada",
            "password_hash": hash_password(TEST_PASSWORD),
            "current_streak": 1,
            "longest_streak": 1,
            "last_check_in": "2024-01-01T09:00:00.000Z",
        }
        data.update(overrides)
        return UserAccount(**data)

    return _make_user


@pytest.fixture
async def stored_user(repository: InMemoryUserRepository, make_user: Callable[..., UserAccount]) -> UserAccount:
    """An account already present in the repository."""
    return await repository.create(make_user())


@pytest.fixture
def app(repository: InMemoryUserRepository) -> FastAPI:
    """Application wired to the test repository and secret."""
    return create_app(repository=repository, token_secret=TEST_TOKEN_SECRET)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture
def local_store(tmp_path) -> LocalStore:
    """Provides a local cache rooted in a temporary directory."""
    return LocalStore(tmp_path / "cache")


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 1, 2, 12, 0, tzinfo=UTC)
