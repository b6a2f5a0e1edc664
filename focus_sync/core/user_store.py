"""Authoritative user account storage.

The reconciliation and token services only talk to the ``UserRepository``
protocol. Two backends exist: an in-memory map (default) and a SQLite file
that stores each account as a JSON document.
"""

import asyncio
import logging
import weakref
from pathlib import Path
from typing import Protocol

import aiosqlite

from focus_sync.core.config import settings
from focus_sync.domain.user import UserAccount


logger = logging.getLogger(__name__)


class UserRepository(Protocol):
    """Storage interface for user accounts.

    Implementations return detached copies: mutating a returned account has no
    effect until it is passed to ``save``.
    """

    async def get_by_id(self, user_id: str) -> UserAccount | None: ...

    async def get_by_email(self, email: str) -> UserAccount | None: ...

    async def create(self, user: UserAccount) -> UserAccount: ...

    async def save(self, user: UserAccount) -> UserAccount: ...


class InMemoryUserRepository:
    """Process-local account storage. Contents are lost on restart."""

    def __init__(self) -> None:
        self._users_by_id: dict[str, UserAccount] = {}
        self._ids_by_email: dict[str, str] = {}

    async def get_by_id(self, user_id: str) -> UserAccount | None:
        user = self._users_by_id.get(user_id)
        return user.model_copy(deep=True) if user else None

    async def get_by_email(self, email: str) -> UserAccount | None:
        user_id = self._ids_by_email.get(email)
        return await self.get_by_id(user_id) if user_id else None

    async def create(self, user: UserAccount) -> UserAccount:
        """Insert a new account.

        Raises:
            KeyError: If the email or id is already taken
        """
        if user.email in self._ids_by_email or user.id in self._users_by_id:
            msg = f"User already exists: {user.email}"
            raise KeyError(msg)
        self._users_by_id[user.id] = user.model_copy(deep=True)
        self._ids_by_email[user.email] = user.id
        return user

    async def save(self, user: UserAccount) -> UserAccount:
        """Replace a stored account.

        Raises:
            KeyError: If the account does not exist
        """
        if user.id not in self._users_by_id:
            msg = f"User not found: {user.id}"
            raise KeyError(msg)
        self._users_by_id[user.id] = user.model_copy(deep=True)
        return user


class SqliteUserRepository:
    """Account storage backed by a SQLite file."""

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path).resolve()
        self._conn: aiosqlite.Connection | None = None
        self._conn_lock = asyncio.Lock()

    async def _connection(self) -> aiosqlite.Connection:
        if self._conn is not None:
            return self._conn

        async with self._conn_lock:
            # Double-check after acquiring lock
            if self._conn is not None:
                return self._conn

            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = await aiosqlite.connect(str(self._db_path))
            await conn.execute("PRAGMA journal_mode = WAL")
            await conn.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    email TEXT NOT NULL UNIQUE,
                    document TEXT NOT NULL
                )
                """
            )
            await conn.commit()
            self._conn = conn

            logger.info("Opened SQLite user store", extra={"db_path": str(self._db_path)})
            return conn

    async def _fetch_one(self, query: str, params: tuple[str, ...]) -> UserAccount | None:
        conn = await self._connection()
        cursor = await conn.execute(query, params)
        row = await cursor.fetchone()
        if row is None:
            return None
        return UserAccount.model_validate_json(row[0])

    async def get_by_id(self, user_id: str) -> UserAccount | None:
        return await self._fetch_one("SELECT document FROM users WHERE id = ?", (user_id,))

    async def get_by_email(self, email: str) -> UserAccount | None:
        return await self._fetch_one("SELECT document FROM users WHERE email = ?", (email,))

    async def create(self, user: UserAccount) -> UserAccount:
        """Insert a new account.

        Raises:
            KeyError: If the email or id is already taken
        """
        conn = await self._connection()
        try:
            await conn.execute(
                "INSERT INTO users (id, email, document) VALUES (?, ?, ?)",
                (user.id, user.email, user.model_dump_json()),
            )
            await conn.commit()
        except aiosqlite.IntegrityError as e:
            msg = f"User already exists: {user.email}"
            raise KeyError(msg) from e

        logger.info("Created user record", extra={"user_id": user.id})
        return user

    async def save(self, user: UserAccount) -> UserAccount:
        """Replace a stored account.

        Raises:
            KeyError: If the account does not exist
        """
        conn = await self._connection()
        cursor = await conn.execute(
            "UPDATE users SET email = ?, document = ? WHERE id = ?",
            (user.email, user.model_dump_json(), user.id),
        )
        await conn.commit()
        if cursor.rowcount == 0:
            msg = f"User not found: {user.id}"
            raise KeyError(msg)
        return user

    async def close(self) -> None:
        """Close the underlying connection, if open."""
        if self._conn is None:
            return
        await self._conn.close()
        self._conn = None
        logger.info("Closed SQLite user store", extra={"db_path": str(self._db_path)})


class UserLocks:
    """One asyncio lock per user id.

    Every read-modify-write of an account (reconcile, token issue, rotation)
    runs under that account's lock. Unrelated users never contend. Locks are
    held weakly: an entry disappears once no coroutine holds or awaits it, so
    ids that stop appearing (e.g. deleted users) do not accumulate.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def __len__(self) -> int:
        return len(self._locks)

    def for_user(self, user_id: str) -> asyncio.Lock:
        """Return the lock guarding ``user_id``, creating it if none is live."""
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock


def create_user_repository() -> UserRepository:
    """Build the repository selected by ``settings.storage_backend``."""
    if settings.storage_backend == "sqlite":
        logger.info("Using SQLite user store", extra={"db_path": settings.sqlite_db_path})
        return SqliteUserRepository(settings.sqlite_db_path)
    logger.info("Using in-memory user store")
    return InMemoryUserRepository()
