"""Read audio properties from files picked by the user."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

import structlog
from mutagen import File as mutagen_file
from mutagen import MutagenError

log = structlog.get_logger(__name__)

AUDIO_EXTENSIONS: frozenset[str] = frozenset(
    {
        ".mp3",
        ".flac",
        ".ogg",
        ".opus",
        ".m4a",
        ".aac",
        ".wav",
        ".aiff",
        ".aif",
        ".wma",
        ".wv",
    }
)


@dataclass(frozen=True, slots=True)
class AudioInfo:
    duration: float = 0.0
    sample_rate: int = 0


def probe(path: Path) -> AudioInfo:
    """Return duration (seconds) and sample rate of *path*.

    Unreadable or unknown files give an empty :class:`AudioInfo` rather than
    an error; the file is still added to the library.
    """
    if not path.is_file():
        log.warning("probe_missing_file", path=str(path))
        return AudioInfo()
    try:
        audio = mutagen_file(path)
    except (MutagenError, OSError) as exc:
        log.warning("probe_failed", path=str(path), error=str(exc))
        return AudioInfo()
    if audio is None or audio.info is None:
        return AudioInfo()

    info = audio.info
    duration = float(getattr(info, "length", 0.0) or 0.0)
    sample_rate = int(getattr(info, "sample_rate", 0) or 0)
    return AudioInfo(duration=round(duration, 3), sample_rate=sample_rate)


def iter_audio_files(root: Path) -> Iterator[Path]:
    """Yield audio files below *root* in a stable order."""
    for path in sorted(root.rglob("*")):
        if path.is_file() and path.suffix.lower() in AUDIO_EXTENSIONS:
            yield path
