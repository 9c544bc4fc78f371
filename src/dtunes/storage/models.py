"""Pydantic models for the dtunes storage layer."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


def local_now() -> datetime:
    """Current local time with its UTC offset."""
    return datetime.now().astimezone()


class Record(BaseModel):
    """Fields shared by every stored entity.

    ``id`` stays ``0`` until the record has been inserted.
    """

    id: int = 0
    date_created: datetime = Field(default_factory=local_now)
    last_modified: datetime = Field(default_factory=local_now)


class AudioFile(Record):
    """A playable file on disk."""

    file_name: str
    file_path: str
    thumbnail: str = ""
    duration: float = Field(default=0.0, ge=0.0, description="Length in seconds")
    plays: int = Field(default=0, ge=0)
    sample_rate: int = Field(default=0, ge=0, description="Sample rate in Hz")


class Artist(Record):
    name: str
    thumbnail: str = ""


class Genre(Record):
    name: str
    thumbnail: str = ""


class Playlist(Record):
    name: str
    thumbnail: str = ""


class PomodoroSession(Record):
    """A focus session template with its own soundtrack."""

    name: str
    thumbnail: str = ""
    focus_minutes: int = Field(default=25, gt=0)
    short_break_minutes: int = Field(default=5, gt=0)
    long_break_minutes: int = Field(default=15, gt=0)
    cycles: int = Field(default=4, gt=0, description="Focus blocks before a long break")
