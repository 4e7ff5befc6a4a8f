"""Async SQLite connection wrapper with WAL mode, schema init, and transactions."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from contextvars import ContextVar

import aiosqlite

from cardtrees.db.schema import SCHEMA_SQL
from cardtrees.errors import StorageError

logger = logging.getLogger(__name__)

# Set while the current task holds the write lock inside transaction().
_in_transaction: ContextVar[bool] = ContextVar("_in_transaction", default=False)


class Database:
    """Thin async wrapper around aiosqlite with WAL mode and auto-schema.

    One connection is shared by every request, so all statements are
    serialized through a single lock. Statements issued outside
    ``transaction()`` commit individually; statements issued inside it by the
    same task join the open transaction.
    """

    def __init__(self, connection: aiosqlite.Connection, timeout: float = 10.0) -> None:
        self._conn = connection
        self._timeout = timeout
        self._lock = asyncio.Lock()

    @classmethod
    async def connect(cls, path: str = "cardtrees.db", timeout: float = 10.0) -> "Database":
        """Create a connection with WAL mode, foreign keys, and schema init."""
        try:
            conn = await aiosqlite.connect(path)
            conn.row_factory = aiosqlite.Row
            await conn.execute("PRAGMA journal_mode=WAL")
            await conn.execute("PRAGMA foreign_keys=ON")
            await conn.execute("PRAGMA busy_timeout=5000")
        except aiosqlite.Error as e:
            logger.exception("Failed to open database at %s", path)
            raise StorageError("connect") from e
        db = cls(conn, timeout=timeout)
        await db._ensure_schema()
        return db

    async def _ensure_schema(self) -> None:
        """Create tables if they don't exist. Idempotent."""
        async with self._locked("ensure_schema"):
            await self._conn.executescript(SCHEMA_SQL)
            await self._conn.commit()

    @asynccontextmanager
    async def _locked(self, operation: str) -> AsyncIterator[None]:
        """Hold the write lock (unless this task already does) under the deadline."""
        try:
            async with asyncio.timeout(self._timeout):
                if _in_transaction.get():
                    yield
                    return
                async with self._lock:
                    yield
        except aiosqlite.Error as e:
            logger.exception("Database error during %s", operation)
            raise StorageError(operation) from e
        except TimeoutError as e:
            logger.error("Database deadline of %ss exceeded during %s", self._timeout, operation)
            raise StorageError(operation) from e

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Run the enclosed statements as one atomic unit of work.

        Commits on clean exit; rolls back on any exception, including
        cancellation of the calling task.
        """
        if _in_transaction.get():
            yield
            return
        async with self._locked("transaction"):
            token = _in_transaction.set(True)
            try:
                await self._conn.execute("BEGIN")
                try:
                    yield
                except BaseException:
                    await self._conn.rollback()
                    raise
                await self._conn.commit()
            finally:
                _in_transaction.reset(token)

    async def execute(self, sql: str, params: tuple | None = None) -> aiosqlite.Cursor:
        """Execute a single SQL statement, committing unless inside a transaction."""
        async with self._locked("execute"):
            cursor = await self._conn.execute(sql, params or ())
            if not _in_transaction.get():
                await self._conn.commit()
            return cursor

    async def fetchone(self, sql: str, params: tuple | None = None) -> aiosqlite.Row | None:
        """Execute and return a single row."""
        async with self._locked("fetchone"):
            cursor = await self._conn.execute(sql, params or ())
            return await cursor.fetchone()

    async def fetchall(self, sql: str, params: tuple | None = None) -> list[aiosqlite.Row]:
        """Execute and return all rows."""
        async with self._locked("fetchall"):
            cursor = await self._conn.execute(sql, params or ())
            return list(await cursor.fetchall())

    async def close(self) -> None:
        """Close the database connection."""
        await self._conn.close()
