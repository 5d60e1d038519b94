from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence
from urllib.parse import urlparse

import aiosqlite

from journal.config import DATABASE_MAX_CONNECTIONS, DATABASE_PATH, DATABASE_URL

try:  # Optional: only required when DATABASE_URL points at Postgres
    import asyncpg  # type: ignore
except Exception:  # pragma: no cover - optional dependency
    asyncpg = None

logger = logging.getLogger(__name__)


class DatabaseAdapter:
    engine: str

    async def execute(self, query: str, params: Sequence | None = None) -> int:  # pragma: no cover - interface
        """Run a statement and return the number of rows it changed."""
        raise NotImplementedError

    async def fetch_one(self, query: str, params: Sequence | None = None):  # pragma: no cover - interface
        raise NotImplementedError

    async def fetch_all(self, query: str, params: Sequence | None = None):  # pragma: no cover - interface
        raise NotImplementedError

    async def commit(self) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    async def close(self) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    async def executescript(self, script: str) -> None:  # pragma: no cover - interface
        raise NotImplementedError


@dataclass
class SQLiteAdapter(DatabaseAdapter):
    conn: aiosqlite.Connection
    engine: str = "sqlite"

    async def execute(self, query: str, params: Sequence | None = None) -> int:
        cursor = await self.conn.execute(query, params or ())
        return max(cursor.rowcount, 0)

    async def fetch_one(self, query: str, params: Sequence | None = None):
        cursor = await self.conn.execute(query, params or ())
        return await cursor.fetchone()

    async def fetch_all(self, query: str, params: Sequence | None = None):
        cursor = await self.conn.execute(query, params or ())
        return await cursor.fetchall()

    async def commit(self) -> None:
        await self.conn.commit()

    async def close(self) -> None:
        await self.conn.close()

    async def executescript(self, script: str) -> None:
        await self.conn.executescript(script)


@dataclass
class PostgresAdapter(DatabaseAdapter):
    pool: "asyncpg.Pool"  # type: ignore[name-defined]
    engine: str = "postgres"

    @staticmethod
    def _translate_query(query: str) -> str:
        # Convert SQLite-style ? placeholders to asyncpg-style $1, $2, ...
        if "$1" in query:
            return query
        idx = 1
        out = []
        for ch in query:
            if ch == "?":
                out.append(f"${idx}")
                idx += 1
            else:
                out.append(ch)
        return "".join(out)

    async def execute(self, query: str, params: Sequence | None = None) -> int:
        q = self._translate_query(query)
        async with self.pool.acquire() as conn:
            status = await conn.execute(q, *(params or ()))
        # Command tags look like "UPDATE 1" or "INSERT 0 1".
        count = status.rsplit(" ", 1)[-1] if status else ""
        return int(count) if count.isdigit() else 0

    async def fetch_one(self, query: str, params: Sequence | None = None):
        q = self._translate_query(query)
        async with self.pool.acquire() as conn:
            return await conn.fetchrow(q, *(params or ()))

    async def fetch_all(self, query: str, params: Sequence | None = None):
        q = self._translate_query(query)
        async with self.pool.acquire() as conn:
            return await conn.fetch(q, *(params or ()))

    async def commit(self) -> None:
        # asyncpg autocommits per statement unless an explicit transaction is used.
        return

    async def close(self) -> None:
        await self.pool.close()

    async def executescript(self, script: str) -> None:
        # Not supported for Postgres; callers should split statements.
        raise NotImplementedError


_db: DatabaseAdapter | None = None


async def get_db() -> DatabaseAdapter:
    global _db
    if _db is None:
        if DATABASE_URL and not DATABASE_URL.startswith("sqlite"):
            if asyncpg is None:
                raise RuntimeError(
                    "DATABASE_URL is set but asyncpg is not installed. "
                    "Install asyncpg or unset DATABASE_URL."
                )
            pool = await asyncpg.create_pool(
                dsn=DATABASE_URL,
                min_size=1,
                max_size=DATABASE_MAX_CONNECTIONS,
            )
            _db = PostgresAdapter(pool)
            logger.info("Connected to Postgres database")
        else:
            sqlite_path = DATABASE_PATH
            if DATABASE_URL:
                sqlite_path = _sqlite_path_from_url(DATABASE_URL) or DATABASE_PATH
            conn = await aiosqlite.connect(sqlite_path)
            conn.row_factory = aiosqlite.Row
            _db = SQLiteAdapter(conn)
            logger.info("Connected to SQLite database at %s", sqlite_path)
    return _db


def _sqlite_path_from_url(url: str) -> str:
    parsed = urlparse(url)
    path = parsed.path or ""
    if not path or path == "/":
        return ""
    # sqlite:////absolute/path.db -> keep absolute path
    if url.startswith("sqlite:////"):
        return "/" + path.lstrip("/")
    # sqlite:///relative.db -> strip leading slash
    if path.startswith("/"):
        return path[1:]
    return path


# Timestamps are ISO-8601 strings on both engines.
SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        email TEXT NOT NULL UNIQUE,
        created_at TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS login_codes (
        code TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES users(id),
        expires_at TEXT NOT NULL,
        used INTEGER NOT NULL DEFAULT 0
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS sessions (
        token TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES users(id),
        created_at TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS journal_entries (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES users(id),
        content TEXT NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_entries_user_created ON journal_entries (user_id, created_at);",
]


async def init_db() -> None:
    db = await get_db()

    if db.engine == "sqlite":
        await db.executescript("\n".join(SCHEMA))
    else:
        for stmt in SCHEMA:
            await db.execute(stmt)

    await db.commit()


async def close_db() -> None:
    global _db
    if _db is not None:
        await _db.close()
        _db = None
