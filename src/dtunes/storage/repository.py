"""Generic CRUD, search and audio-file association over one entity table."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Generic

import aiosqlite
import structlog

from dtunes.storage.models import AudioFile, local_now
from dtunes.storage.tables import AUDIO_FILE, EntityTable, T

if TYPE_CHECKING:
    from dtunes.storage.database import Database

log = structlog.get_logger(__name__)

_LIKE_ESCAPE = "\\"

# Stamps carry their own UTC offset; julianday() compares instants (to the
# millisecond) and the text breaks ties below that.
_BY_LAST_MODIFIED = "ORDER BY julianday(last_modified), last_modified, id"


def like_pattern(term: str) -> str:
    """Build a ``LIKE`` substring pattern that matches *term* literally."""
    escaped = (
        term.replace(_LIKE_ESCAPE, _LIKE_ESCAPE * 2)
        .replace("%", _LIKE_ESCAPE + "%")
        .replace("_", _LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


def _sql_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat(timespec="microseconds")
    return value


class Repository(Generic[T]):
    """Stores and loads records of one entity kind."""

    def __init__(self, db: Database, table: EntityTable[T]) -> None:
        self._db = db
        self.table = table

    @property
    def kind(self) -> str:
        return self.table.name

    def _to_record(self, row: aiosqlite.Row) -> T:
        return self.table.model.model_validate(dict(row))

    def _values(self, record: T) -> list[Any]:
        return [_sql_value(getattr(record, col)) for col in self.table.columns]

    async def insert(self, record: T) -> T:
        """Persist *record* and set its ``id`` from the new row."""
        record.last_modified = local_now()
        cols = (*self.table.columns, "date_created", "last_modified")
        placeholders = ", ".join("?" for _ in cols)
        sql = f"INSERT INTO {self.table.name} ({', '.join(cols)}) VALUES ({placeholders})"  # noqa: S608
        params = [*self._values(record), _sql_value(record.date_created), _sql_value(record.last_modified)]
        try:
            async with self._db.transaction() as conn:
                cur = await conn.execute(sql, params)
        except aiosqlite.Error as exc:
            log.error("insert_failed", table=self.kind, error=str(exc))
            raise
        record.id = cur.lastrowid
        log.info("record_inserted", table=self.kind, id=record.id)
        return record

    async def retrieve(self) -> list[T]:
        """Return every record, least recently modified first."""
        rows = await self._db.fetch_all(
            f"SELECT * FROM {self.table.name} {_BY_LAST_MODIFIED}"  # noqa: S608
        )
        return [self._to_record(r) for r in rows]

    async def view(self, record_id: int) -> T:
        row = await self._db.fetch_one(
            f"SELECT * FROM {self.table.name} WHERE id = ?", (record_id,)  # noqa: S608
        )
        if row is None:
            msg = f"{self.kind} {record_id} not found"
            log.error("view_failed", table=self.kind, id=record_id, error=msg)
            raise aiosqlite.Error(msg)
        return self._to_record(row)

    async def update(self, record: T, record_id: int) -> T:
        """Overwrite the mutable columns of row *record_id* with *record*.

        ``date_created`` is never written.  Updating an id that does not exist
        changes nothing and is not an error.
        """
        record.last_modified = local_now()
        assignments = ", ".join(f"{col} = ?" for col in (*self.table.columns, "last_modified"))
        sql = f"UPDATE {self.table.name} SET {assignments} WHERE id = ?"  # noqa: S608
        params = [*self._values(record), _sql_value(record.last_modified), record_id]
        try:
            async with self._db.transaction() as conn:
                await conn.execute(sql, params)
        except aiosqlite.Error as exc:
            log.error("update_failed", table=self.kind, id=record_id, error=str(exc))
            raise
        log.info("record_updated", table=self.kind, id=record_id)
        return record

    async def delete(self, record_id: int) -> None:
        """Delete the record together with the junction rows pointing at it."""
        try:
            async with self._db.transaction() as conn:
                for junction, column in self.table.cascade:
                    await conn.execute(
                        f"DELETE FROM {junction} WHERE {column} = ?", (record_id,)  # noqa: S608
                    )
                await conn.execute(
                    f"DELETE FROM {self.table.name} WHERE id = ?", (record_id,)  # noqa: S608
                )
        except aiosqlite.Error as exc:
            log.error("delete_failed", table=self.kind, id=record_id, error=str(exc))
            raise
        log.info("record_deleted", table=self.kind, id=record_id)

    async def search(self, term: str) -> list[T]:
        """Return records whose search column contains *term*."""
        rows = await self._db.fetch_all(
            f"SELECT * FROM {self.table.name} "  # noqa: S608
            f"WHERE {self.table.search_column} LIKE ? ESCAPE '{_LIKE_ESCAPE}' "
            f"{_BY_LAST_MODIFIED}",
            (like_pattern(term),),
        )
        return [self._to_record(r) for r in rows]

    async def count(self) -> int:
        row = await self._db.fetch_one(f"SELECT COUNT(*) AS cnt FROM {self.table.name}")  # noqa: S608
        return row["cnt"] if row else 0


class LinkedRepository(Repository[T]):
    """Repository for an entity with a many-to-many link to audio files."""

    def __init__(self, db: Database, table: EntityTable[T]) -> None:
        if table.link_table is None or table.link_column is None:
            msg = f"table {table.name} has no audio file junction"
            raise ValueError(msg)
        super().__init__(db, table)
        self._link_table = table.link_table
        self._link_column = table.link_column

    async def add_audio_file(self, entity_id: int, audio_file_id: int) -> None:
        """Link an audio file.  Linking the same pair twice stores two rows."""
        try:
            async with self._db.transaction() as conn:
                await conn.execute(
                    f"INSERT INTO {self._link_table} ({self._link_column}, audio_file_id) VALUES (?, ?)",  # noqa: S608
                    (entity_id, audio_file_id),
                )
        except aiosqlite.Error as exc:
            log.error(
                "add_audio_file_failed",
                table=self.kind,
                id=entity_id,
                audio_file_id=audio_file_id,
                error=str(exc),
            )
            raise
        log.info("audio_file_linked", table=self.kind, id=entity_id, audio_file_id=audio_file_id)

    async def remove_audio_file(self, entity_id: int, audio_file_id: int) -> None:
        try:
            async with self._db.transaction() as conn:
                await conn.execute(
                    f"DELETE FROM {self._link_table} WHERE {self._link_column} = ? AND audio_file_id = ?",  # noqa: S608
                    (entity_id, audio_file_id),
                )
        except aiosqlite.Error as exc:
            log.error(
                "remove_audio_file_failed",
                table=self.kind,
                id=entity_id,
                audio_file_id=audio_file_id,
                error=str(exc),
            )
            raise
        log.info("audio_file_unlinked", table=self.kind, id=entity_id, audio_file_id=audio_file_id)

    async def retrieve_audio_files(self, entity_id: int) -> list[AudioFile]:
        """Return the audio files linked to *entity_id*.

        Raises the not-found store error when the entity itself is missing.
        """
        await self.view(entity_id)
        rows = await self._db.fetch_all(
            f"SELECT * FROM {AUDIO_FILE.name} WHERE id IN ("  # noqa: S608
            f"SELECT audio_file_id FROM {self._link_table} WHERE {self._link_column} = ?"
            f") {_BY_LAST_MODIFIED}",
            (entity_id,),
        )
        return [AudioFile.model_validate(dict(r)) for r in rows]

    async def search_audio_files(self, entity_id: int, term: str) -> list[AudioFile]:
        await self.view(entity_id)
        rows = await self._db.fetch_all(
            f"SELECT * FROM {AUDIO_FILE.name} WHERE id IN ("  # noqa: S608
            f"SELECT audio_file_id FROM {self._link_table} WHERE {self._link_column} = ?"
            f") AND {AUDIO_FILE.search_column} LIKE ? ESCAPE '{_LIKE_ESCAPE}' "
            f"{_BY_LAST_MODIFIED}",
            (entity_id, like_pattern(term)),
        )
        return [AudioFile.model_validate(dict(r)) for r in rows]


class AudioFileRepository(Repository[AudioFile]):
    def __init__(self, db: Database) -> None:
        super().__init__(db, AUDIO_FILE)

    async def find_by_path(self, file_path: str) -> AudioFile | None:
        row = await self._db.fetch_one(
            f"SELECT * FROM {self.table.name} WHERE file_path = ? ORDER BY id LIMIT 1",  # noqa: S608
            (file_path,),
        )
        return self._to_record(row) if row else None

    async def record_play(self, audio_file_id: int) -> AudioFile:
        """Bump the play counter of one audio file and return the fresh row."""
        now = local_now()
        try:
            async with self._db.transaction() as conn:
                await conn.execute(
                    f"UPDATE {self.table.name} SET plays = plays + 1, last_modified = ? WHERE id = ?",  # noqa: S608
                    (_sql_value(now), audio_file_id),
                )
        except aiosqlite.Error as exc:
            log.error("record_play_failed", table=self.kind, id=audio_file_id, error=str(exc))
            raise
        return await self.view(audio_file_id)
