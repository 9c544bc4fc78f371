"""Tests for dtunes.player."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from dtunes.player import PlaybackError, Player


@pytest.fixture()
def track(tmp_path: Path) -> Path:
    path = tmp_path / "Airbag.mp3"
    path.write_bytes(b"")
    return path


def test_command_is_split():
    assert Player('mpv --title "my music"').argv == ["mpv", "--title", "my music"]


@pytest.mark.asyncio()
async def test_empty_command(track: Path):
    with pytest.raises(PlaybackError, match="no player command"):
        await Player("").play(track)


@pytest.mark.asyncio()
async def test_missing_file(tmp_path: Path):
    with pytest.raises(PlaybackError, match="audio file not found"):
        await Player("mpv").play(tmp_path / "gone.mp3")


@pytest.mark.asyncio()
async def test_command_not_on_path(track: Path):
    with patch("dtunes.player.shutil.which", return_value=None), pytest.raises(PlaybackError, match="not found: mpv"):
        await Player("mpv").play(track)


@pytest.mark.asyncio()
async def test_play_starts_detached_process(track: Path):
    proc = MagicMock(pid=321)
    spawn = AsyncMock(return_value=proc)

    with (
        patch("dtunes.player.shutil.which", return_value="/usr/bin/mpv"),
        patch("dtunes.player.asyncio.create_subprocess_exec", spawn),
    ):
        pid = await Player("mpv --no-video").play(track)

    assert pid == 321
    args, kwargs = spawn.call_args
    assert args == ("/usr/bin/mpv", "--no-video", str(track))
    assert kwargs["start_new_session"] is True


@pytest.mark.asyncio()
async def test_spawn_failure_becomes_playback_error(track: Path):
    with (
        patch("dtunes.player.shutil.which", return_value="/usr/bin/mpv"),
        patch("dtunes.player.asyncio.create_subprocess_exec", AsyncMock(side_effect=PermissionError("denied"))),
        pytest.raises(PlaybackError, match="denied"),
    ):
        await Player("mpv").play(track)
