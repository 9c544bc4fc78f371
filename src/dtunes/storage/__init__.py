"""Storage layer for dtunes: async SQLite repositories for the media library."""

from dtunes.storage.database import Database
from dtunes.storage.library import Library
from dtunes.storage.models import (
    Artist,
    AudioFile,
    Genre,
    Playlist,
    PomodoroSession,
    Record,
)
from dtunes.storage.repository import AudioFileRepository, LinkedRepository, Repository

__all__ = [
    "Artist",
    "AudioFile",
    "AudioFileRepository",
    "Database",
    "Genre",
    "Library",
    "LinkedRepository",
    "Playlist",
    "PomodoroSession",
    "Record",
    "Repository",
]
