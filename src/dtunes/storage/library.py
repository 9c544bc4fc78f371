"""One place to reach every repository over a shared database."""

from __future__ import annotations

from typing import TYPE_CHECKING

from dtunes.storage.models import Artist, Genre, Playlist, PomodoroSession
from dtunes.storage.repository import AudioFileRepository, LinkedRepository, Repository
from dtunes.storage.tables import ARTIST, GENRE, PLAYLIST, POMODORO

if TYPE_CHECKING:
    from dtunes.storage.database import Database


class Library:
    """The five entity repositories bound to one :class:`Database`."""

    def __init__(self, db: Database) -> None:
        self.db = db
        self.audio_files = AudioFileRepository(db)
        self.artists: LinkedRepository[Artist] = LinkedRepository(db, ARTIST)
        self.genres: LinkedRepository[Genre] = LinkedRepository(db, GENRE)
        self.playlists: LinkedRepository[Playlist] = LinkedRepository(db, PLAYLIST)
        self.pomodoros: LinkedRepository[PomodoroSession] = LinkedRepository(db, POMODORO)

    def repositories(self) -> tuple[Repository, ...]:
        return (self.audio_files, self.artists, self.genres, self.playlists, self.pomodoros)

    async def counts(self) -> dict[str, int]:
        """Row count per entity table."""
        return {repo.kind: await repo.count() for repo in self.repositories()}
