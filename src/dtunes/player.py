"""Hand audio files to the external player."""

from __future__ import annotations

import asyncio
import shlex
import shutil
from pathlib import Path

import structlog

log = structlog.get_logger(__name__)


class PlaybackError(RuntimeError):
    """The player could not be started for a file."""


class Player:
    """Launches a configured command with the file path appended.

    The process is not waited for; playback runs on its own.
    """

    def __init__(self, command: str) -> None:
        self.argv = shlex.split(command)

    async def play(self, path: Path) -> int:
        """Start playback of *path* and return the player's PID."""
        if not self.argv:
            msg = "no player command configured"
            raise PlaybackError(msg)
        if not path.is_file():
            msg = f"audio file not found: {path}"
            raise PlaybackError(msg)
        executable = shutil.which(self.argv[0])
        if executable is None:
            msg = f"player command not found: {self.argv[0]}"
            raise PlaybackError(msg)

        try:
            proc = await asyncio.create_subprocess_exec(
                executable,
                *self.argv[1:],
                str(path),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as exc:
            raise PlaybackError(str(exc)) from exc
        log.info("playback_started", path=str(path), pid=proc.pid)
        return proc.pid
