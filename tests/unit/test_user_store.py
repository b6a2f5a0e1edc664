"""Tests for the account repositories and per-user locks."""

import asyncio
import gc

import pytest

from focus_sync.core.config import settings
from focus_sync.core.user_store import (
    InMemoryUserRepository,
    SqliteUserRepository,
    UserLocks,
    create_user_repository,
)
from tests.factories import YieldingUserRepository, task, timer


@pytest.fixture(params=["memory", "sqlite"])
async def any_repository(request, tmp_path):
    """Run each contract test against both backends."""
    if request.param == "memory":
        yield InMemoryUserRepository()
        return

    repository = SqliteUserRepository(tmp_path / "users.db")
    yield repository
    await repository.close()


@pytest.mark.unit
class TestRepositoryContract:
    async def test_create_then_fetch_by_id_and_email(self, any_repository, make_user):
        await any_repository.create(make_user())

        by_id = await any_repository.get_by_id("user-1")
        by_email = await any_repository.get_by_email("ada@example.com")

        assert by_id is not None
        assert by_id == by_email
        assert by_id.display_name == "Ada"

    async def test_missing_user_returns_none(self, any_repository):
        assert await any_repository.get_by_id("nope") is None
        assert await any_repository.get_by_email("nope@example.com") is None

    async def test_duplicate_email_raises(self, any_repository, make_user):
        await any_repository.create(make_user())

        with pytest.raises(KeyError):
            await any_repository.create(make_user(id="user-2"))

    async def test_save_unknown_user_raises(self, any_repository, make_user):
        with pytest.raises(KeyError):
            await any_repository.save(make_user())

    async def test_save_round_trips_records_and_tokens(self, any_repository, make_user):
        await any_repository.create(make_user())
        user = await any_repository.get_by_id("user-1")
        updated = user.model_copy(
            update={
                "tasks": {"t1": task("t1", "2024-01-01T00:00:00.000Z")},
                "timers": {"x": timer("x")},
                "refresh_tokens": {"r1", "r2"},
                "current_streak": 4,
            }
        )

        await any_repository.save(updated)
        stored = await any_repository.get_by_id("user-1")

        assert stored.tasks == updated.tasks
        assert stored.timers == updated.timers
        assert stored.refresh_tokens == {"r1", "r2"}
        assert stored.current_streak == 4

    async def test_returned_accounts_are_detached(self, any_repository, make_user):
        await any_repository.create(make_user())

        fetched = await any_repository.get_by_id("user-1")
        fetched.refresh_tokens.add("rogue")
        fetched.tasks["t1"] = task("t1", None)

        stored = await any_repository.get_by_id("user-1")
        assert "rogue" not in stored.refresh_tokens
        assert stored.tasks == {}


@pytest.mark.unit
class TestSqliteUserRepository:
    async def test_data_survives_reopen(self, tmp_path, make_user):
        path = tmp_path / "nested" / "users.db"
        first = SqliteUserRepository(path)
        await first.create(make_user())
        await first.close()

        second = SqliteUserRepository(path)
        try:
            assert (await second.get_by_email("ada@example.com")) is not None
        finally:
            await second.close()

    async def test_close_is_idempotent(self, tmp_path):
        repository = SqliteUserRepository(tmp_path / "users.db")

        await repository.close()
        await repository.close()


@pytest.mark.unit
class TestUserLocks:
    def test_same_user_shares_a_lock(self):
        locks = UserLocks()

        assert locks.for_user("a") is locks.for_user("a")

    def test_different_users_get_different_locks(self):
        locks = UserLocks()

        assert locks.for_user("a") is not locks.for_user("b")

    def test_unused_locks_are_released(self):
        locks = UserLocks()
        lock = locks.for_user("deleted-user")
        assert len(locks) == 1

        del lock
        gc.collect()

        assert len(locks) == 0

    async def test_held_lock_is_shared(self):
        locks = UserLocks()

        async with locks.for_user("a"):
            assert locks.for_user("a").locked()

    async def test_lock_serializes_read_modify_write(self, make_user):
        repository = YieldingUserRepository()
        await repository.create(make_user(current_streak=0))
        locks = UserLocks()

        async def bump(*, locked: bool) -> None:
            async def read_modify_write() -> None:
                user = await repository.get_by_id("user-1")
                await repository.save(user.model_copy(update={"current_streak": user.current_streak + 1}))

            if locked:
                async with locks.for_user("user-1"):
                    await read_modify_write()
            else:
                await read_modify_write()

        await asyncio.gather(*(bump(locked=False) for _ in range(5)))
        unlocked = (await repository.get_by_id("user-1")).current_streak
        await asyncio.gather(*(bump(locked=True) for _ in range(5)))
        locked = (await repository.get_by_id("user-1")).current_streak

        assert unlocked < 5
        assert locked == unlocked + 5


@pytest.mark.unit
class TestCreateUserRepository:
    def test_defaults_to_memory(self, monkeypatch):
        monkeypatch.setattr(settings, "storage_backend", "memory")

        assert isinstance(create_user_repository(), InMemoryUserRepository)

    def test_sqlite_backend(self, monkeypatch, tmp_path):
        monkeypatch.setattr(settings, "storage_backend", "sqlite")
        monkeypatch.setattr(settings, "sqlite_db_path", str(tmp_path / "users.db"))

        assert isinstance(create_user_repository(), SqliteUserRepository)
