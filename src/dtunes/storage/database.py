"""Async SQLite database for the dtunes storage layer."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

log = structlog.get_logger(__name__)

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS audio_file (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    file_name TEXT NOT NULL,
    file_path TEXT NOT NULL,
    thumbnail TEXT NOT NULL DEFAULT '',
    duration REAL NOT NULL DEFAULT 0,
    plays INTEGER NOT NULL DEFAULT 0,
    sample_rate INTEGER NOT NULL DEFAULT 0,
    date_created TEXT NOT NULL,
    last_modified TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS artist (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    thumbnail TEXT NOT NULL DEFAULT '',
    date_created TEXT NOT NULL,
    last_modified TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS genre (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    thumbnail TEXT NOT NULL DEFAULT '',
    date_created TEXT NOT NULL,
    last_modified TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS playlist (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    thumbnail TEXT NOT NULL DEFAULT '',
    date_created TEXT NOT NULL,
    last_modified TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS pomodoro (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    thumbnail TEXT NOT NULL DEFAULT '',
    focus_minutes INTEGER NOT NULL DEFAULT 25 CHECK (focus_minutes > 0),
    short_break_minutes INTEGER NOT NULL DEFAULT 5 CHECK (short_break_minutes > 0),
    long_break_minutes INTEGER NOT NULL DEFAULT 15 CHECK (long_break_minutes > 0),
    cycles INTEGER NOT NULL DEFAULT 4 CHECK (cycles > 0),
    date_created TEXT NOT NULL,
    last_modified TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS artist_audio_file (
    artist_id INTEGER NOT NULL REFERENCES artist(id),
    audio_file_id INTEGER NOT NULL REFERENCES audio_file(id)
);

CREATE TABLE IF NOT EXISTS genre_audio_file (
    genre_id INTEGER NOT NULL REFERENCES genre(id),
    audio_file_id INTEGER NOT NULL REFERENCES audio_file(id)
);

CREATE TABLE IF NOT EXISTS playlist_audio_file (
    playlist_id INTEGER NOT NULL REFERENCES playlist(id),
    audio_file_id INTEGER NOT NULL REFERENCES audio_file(id)
);

CREATE TABLE IF NOT EXISTS pomodoro_audio_file (
    pomodoro_id INTEGER NOT NULL REFERENCES pomodoro(id),
    audio_file_id INTEGER NOT NULL REFERENCES audio_file(id)
);

CREATE INDEX IF NOT EXISTS ix_artist_audio_file_artist ON artist_audio_file(artist_id);
CREATE INDEX IF NOT EXISTS ix_artist_audio_file_audio ON artist_audio_file(audio_file_id);
CREATE INDEX IF NOT EXISTS ix_genre_audio_file_genre ON genre_audio_file(genre_id);
CREATE INDEX IF NOT EXISTS ix_genre_audio_file_audio ON genre_audio_file(audio_file_id);
CREATE INDEX IF NOT EXISTS ix_playlist_audio_file_playlist ON playlist_audio_file(playlist_id);
CREATE INDEX IF NOT EXISTS ix_playlist_audio_file_audio ON playlist_audio_file(audio_file_id);
CREATE INDEX IF NOT EXISTS ix_pomodoro_audio_file_pomodoro ON pomodoro_audio_file(pomodoro_id);
CREATE INDEX IF NOT EXISTS ix_pomodoro_audio_file_audio ON pomodoro_audio_file(audio_file_id);
"""


class Database:
    """Async SQLite database wrapper for dtunes.

    Owns the one connection every repository shares.  Use it as an async
    context manager, or call :meth:`connect` and :meth:`close` explicitly.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._conn: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    @property
    def conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            msg = "Database not connected. Call connect() first."
            raise RuntimeError(msg)
        return self._conn

    async def connect(self) -> None:
        self._conn = await aiosqlite.connect(self.path)
        self._conn.row_factory = aiosqlite.Row
        await self._conn.execute("PRAGMA journal_mode=WAL")
        await self._conn.execute("PRAGMA foreign_keys=ON")
        await self._conn.executescript(_SCHEMA)
        await self._conn.commit()
        log.debug("database_connected", path=str(self.path))

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    async def __aenter__(self) -> Database:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # -- statements -----------------------------------------------------------

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Run the enclosed writes as one unit.

        Commits when the block exits cleanly and rolls back when it raises.
        Every request shares one connection, so the block holds the same lock
        as :meth:`fetch_all` and :meth:`fetch_one`: no other request can commit
        these statements early or read them before they are committed.  Do
        not call the fetch helpers inside the block; the lock is not
        reentrant.
        """
        async with self._lock:
            try:
                yield self.conn
            except BaseException:
                await self.conn.rollback()
                raise
            await self.conn.commit()

    async def fetch_all(self, sql: str, params: Iterable[Any] = ()) -> list[aiosqlite.Row]:
        async with self._lock:
            cur = await self.conn.execute(sql, tuple(params))
            return list(await cur.fetchall())

    async def fetch_one(self, sql: str, params: Iterable[Any] = ()) -> aiosqlite.Row | None:
        async with self._lock:
            cur = await self.conn.execute(sql, tuple(params))
            return await cur.fetchone()
