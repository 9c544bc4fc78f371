"""Table descriptors that drive the generic repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from dtunes.storage.models import (
    Artist,
    AudioFile,
    Genre,
    Playlist,
    PomodoroSession,
    Record,
)

T = TypeVar("T", bound=Record)


@dataclass(frozen=True, slots=True)
class EntityTable(Generic[T]):
    """Everything a repository needs to know about one entity table.

    ``columns`` lists the mutable columns written by insert and update;
    ``id``, ``date_created`` and ``last_modified`` are handled separately.
    ``cascade`` names the ``(junction_table, column)`` pairs whose rows
    reference this entity and must go before the entity row does.
    """

    name: str
    model: type[T]
    columns: tuple[str, ...]
    search_column: str
    link_table: str | None = None
    link_column: str | None = None
    cascade: tuple[tuple[str, str], ...] = ()


def _linked(name: str, model: type[T], columns: tuple[str, ...]) -> EntityTable[T]:
    link_table = f"{name}_audio_file"
    link_column = f"{name}_id"
    return EntityTable(
        name=name,
        model=model,
        columns=columns,
        search_column="name",
        link_table=link_table,
        link_column=link_column,
        cascade=((link_table, link_column),),
    )


ARTIST = _linked("artist", Artist, ("name", "thumbnail"))
GENRE = _linked("genre", Genre, ("name", "thumbnail"))
PLAYLIST = _linked("playlist", Playlist, ("name", "thumbnail"))
POMODORO = _linked(
    "pomodoro",
    PomodoroSession,
    (
        "name",
        "thumbnail",
        "focus_minutes",
        "short_break_minutes",
        "long_break_minutes",
        "cycles",
    ),
)

LINKED_TABLES: tuple[EntityTable, ...] = (ARTIST, GENRE, PLAYLIST, POMODORO)

AUDIO_FILE = EntityTable(
    name="audio_file",
    model=AudioFile,
    columns=("file_name", "file_path", "thumbnail", "duration", "plays", "sample_rate"),
    search_column="file_name",
    cascade=tuple((t.link_table, "audio_file_id") for t in LINKED_TABLES),
)

ALL_TABLES: tuple[EntityTable, ...] = (AUDIO_FILE, *LINKED_TABLES)
