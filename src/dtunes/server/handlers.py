"""Request handlers invoked by the GUI shell.

Every handler takes the shared :class:`~dtunes.server.rpc.AppState` and the
raw ``params`` dict of an RPC call, validates the primitives it needs,
delegates to a repository and returns JSON-ready data.  Handlers keep no
state between calls.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from dtunes.metadata import probe
from dtunes.player import PlaybackError
from dtunes.storage.models import Artist, AudioFile, Genre, Playlist, PomodoroSession, Record

if TYPE_CHECKING:
    from dtunes.server.rpc import AppState
    from dtunes.storage.library import Library
    from dtunes.storage.repository import LinkedRepository

Handler = Callable[["AppState", dict], Awaitable[Any]]

COMMANDS: dict[str, Handler] = {}


def command(name: str) -> Callable[[Handler], Handler]:
    """Register a handler under an RPC command name."""

    def decorator(func: Handler) -> Handler:
        if name in COMMANDS:
            msg = f"duplicate command: {name}"
            raise ValueError(msg)
        COMMANDS[name] = func
        return func

    return decorator


def _dump(record: Record) -> dict:
    return record.model_dump(mode="json")


def _dump_all(records: list[Record]) -> list[dict]:
    return [_dump(r) for r in records]


def _changes(params: BaseModel) -> dict:
    """Fields the caller actually supplied, minus the target id."""
    supplied = params.model_dump(exclude_unset=True, exclude={"id"})
    return {k: v for k, v in supplied.items() if v is not None}


# ---------------------------------------------------------------------------
# Parameter models
# ---------------------------------------------------------------------------


class RecordId(BaseModel):
    id: int


class SearchTerm(BaseModel):
    term: str = ""


class AudioFileLink(BaseModel):
    id: int
    audio_file_id: int


class LinkedSearch(BaseModel):
    id: int
    term: str = ""


class CreateAudioFile(BaseModel):
    file_path: str = Field(min_length=1)
    file_name: str | None = None
    thumbnail: str = ""


class EditAudioFile(BaseModel):
    id: int
    file_name: str | None = None
    file_path: str | None = None
    thumbnail: str | None = None


class CreateNamed(BaseModel):
    name: str
    thumbnail: str = ""


class EditNamed(BaseModel):
    id: int
    name: str | None = None
    thumbnail: str | None = None


class CreatePomodoro(CreateNamed):
    focus_minutes: int = Field(default=25, gt=0)
    short_break_minutes: int = Field(default=5, gt=0)
    long_break_minutes: int = Field(default=15, gt=0)
    cycles: int = Field(default=4, gt=0)


class EditPomodoro(EditNamed):
    focus_minutes: int | None = Field(default=None, gt=0)
    short_break_minutes: int | None = Field(default=None, gt=0)
    long_break_minutes: int | None = Field(default=None, gt=0)
    cycles: int | None = Field(default=None, gt=0)


# ---------------------------------------------------------------------------
# Audio files
# ---------------------------------------------------------------------------


@command("create_audio_file")
async def create_audio_file(state: AppState, params: dict) -> dict:
    p = CreateAudioFile.model_validate(params)
    path = Path(p.file_path).expanduser()
    info = await asyncio.to_thread(probe, path)
    audio = AudioFile(
        file_name=p.file_name or path.stem,
        file_path=str(path),
        thumbnail=p.thumbnail,
        duration=info.duration,
        sample_rate=info.sample_rate,
    )
    await state.library.audio_files.insert(audio)
    return _dump(audio)


@command("view_audio_files")
async def view_audio_files(state: AppState, params: dict) -> list[dict]:
    return _dump_all(await state.library.audio_files.retrieve())


@command("view_audio_file")
async def view_audio_file(state: AppState, params: dict) -> dict:
    p = RecordId.model_validate(params)
    return _dump(await state.library.audio_files.view(p.id))


@command("edit_audio_file")
async def edit_audio_file(state: AppState, params: dict) -> dict:
    p = EditAudioFile.model_validate(params)
    repo = state.library.audio_files
    current = await repo.view(p.id)
    updated = current.model_copy(update=_changes(p))
    return _dump(await repo.update(updated, p.id))


@command("delete_audio_file")
async def delete_audio_file(state: AppState, params: dict) -> dict:
    p = RecordId.model_validate(params)
    await state.library.audio_files.delete(p.id)
    return {"id": p.id}


@command("search_audio_files")
async def search_audio_files(state: AppState, params: dict) -> list[dict]:
    p = SearchTerm.model_validate(params)
    return _dump_all(await state.library.audio_files.search(p.term))


@command("play_audio_file")
async def play_audio_file(state: AppState, params: dict) -> dict:
    p = RecordId.model_validate(params)
    repo = state.library.audio_files
    audio = await repo.view(p.id)
    if state.player is None:
        msg = "playback not configured"
        raise PlaybackError(msg)
    pid = await state.player.play(Path(audio.file_path))
    audio = await repo.record_play(p.id)
    return {"audio_file": _dump(audio), "pid": pid}


# ---------------------------------------------------------------------------
# Entities linked to audio files
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class LinkedKind:
    """Command naming and parameter shapes for one linked entity kind.

    ``noun`` names create/edit and the association commands, ``record``
    names the single-record view/delete commands and ``plural`` the
    list/search commands.
    """

    noun: str
    record: str
    plural: str
    model: type[Record]
    repository: Callable[[Library], LinkedRepository]
    create_params: type[BaseModel] = CreateNamed
    edit_params: type[BaseModel] = EditNamed


LINKED_KINDS: tuple[LinkedKind, ...] = (
    LinkedKind("artist", "artist", "artists", Artist, lambda lib: lib.artists),
    LinkedKind("genre", "genre", "genres", Genre, lambda lib: lib.genres),
    LinkedKind("playlist", "playlist", "playlists", Playlist, lambda lib: lib.playlists),
    LinkedKind(
        "pomodoro",
        "pomodoro_session",
        "pomodoro_sessions",
        PomodoroSession,
        lambda lib: lib.pomodoros,
        create_params=CreatePomodoro,
        edit_params=EditPomodoro,
    ),
)


def register_linked(kind: LinkedKind) -> None:
    """Register the ten commands of one linked entity kind."""

    @command(f"create_{kind.noun}")
    async def create(state: AppState, params: dict) -> dict:
        p = kind.create_params.model_validate(params)
        record = kind.model(**p.model_dump())
        await kind.repository(state.library).insert(record)
        return _dump(record)

    @command(f"view_{kind.plural}")
    async def view_all(state: AppState, params: dict) -> list[dict]:
        return _dump_all(await kind.repository(state.library).retrieve())

    @command(f"view_{kind.record}")
    async def view_one(state: AppState, params: dict) -> dict:
        p = RecordId.model_validate(params)
        return _dump(await kind.repository(state.library).view(p.id))

    @command(f"edit_{kind.noun}")
    async def edit(state: AppState, params: dict) -> dict:
        p = kind.edit_params.model_validate(params)
        repo = kind.repository(state.library)
        current = await repo.view(p.id)
        updated = current.model_copy(update=_changes(p))
        return _dump(await repo.update(updated, p.id))

    @command(f"delete_{kind.record}")
    async def delete(state: AppState, params: dict) -> dict:
        p = RecordId.model_validate(params)
        await kind.repository(state.library).delete(p.id)
        return {"id": p.id}

    @command(f"view_{kind.noun}_audio_files")
    async def view_audio(state: AppState, params: dict) -> list[dict]:
        p = RecordId.model_validate(params)
        return _dump_all(await kind.repository(state.library).retrieve_audio_files(p.id))

    @command(f"add_audio_file_{kind.noun}")
    async def add_audio(state: AppState, params: dict) -> dict:
        p = AudioFileLink.model_validate(params)
        await kind.repository(state.library).add_audio_file(p.id, p.audio_file_id)
        return {"id": p.id, "audio_file_id": p.audio_file_id}

    @command(f"remove_audio_file_{kind.noun}")
    async def remove_audio(state: AppState, params: dict) -> dict:
        p = AudioFileLink.model_validate(params)
        await kind.repository(state.library).remove_audio_file(p.id, p.audio_file_id)
        return {"id": p.id, "audio_file_id": p.audio_file_id}

    @command(f"search_{kind.plural}")
    async def search(state: AppState, params: dict) -> list[dict]:
        p = SearchTerm.model_validate(params)
        return _dump_all(await kind.repository(state.library).search(p.term))

    @command(f"search_{kind.noun}_audio_files")
    async def search_audio(state: AppState, params: dict) -> list[dict]:
        p = LinkedSearch.model_validate(params)
        return _dump_all(await kind.repository(state.library).search_audio_files(p.id, p.term))


for _kind in LINKED_KINDS:
    register_linked(_kind)
