"""Tests for dtunes.metadata."""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from unittest.mock import patch

from mutagen import MutagenError

from dtunes.metadata import AudioInfo, iter_audio_files, probe


def test_probe_missing_file(tmp_path: Path):
    assert probe(tmp_path / "nowhere.mp3") == AudioInfo()


def test_probe_unrecognised_file(tmp_path: Path):
    notes = tmp_path / "notes.txt"
    notes.write_text("not audio")
    assert probe(notes) == AudioInfo()


def test_probe_reads_stream_info(tmp_path: Path):
    track = tmp_path / "track.flac"
    track.write_bytes(b"fLaC")
    fake = SimpleNamespace(info=SimpleNamespace(length=201.23456, sample_rate=48000))

    with patch("dtunes.metadata.mutagen_file", return_value=fake) as opened:
        info = probe(track)

    opened.assert_called_once_with(track)
    assert info == AudioInfo(duration=201.235, sample_rate=48000)


def test_probe_missing_sample_rate(tmp_path: Path):
    track = tmp_path / "track.mp3"
    track.write_bytes(b"ID3")
    fake = SimpleNamespace(info=SimpleNamespace(length=12.0))

    with patch("dtunes.metadata.mutagen_file", return_value=fake):
        assert probe(track) == AudioInfo(duration=12.0, sample_rate=0)


def test_probe_corrupt_file(tmp_path: Path):
    track = tmp_path / "broken.ogg"
    track.write_bytes(b"OggS")

    with patch("dtunes.metadata.mutagen_file", side_effect=MutagenError("bad header")):
        assert probe(track) == AudioInfo()


def test_iter_audio_files_filters_and_sorts(tmp_path: Path):
    (tmp_path / "b").mkdir()
    for name in ("b/02.FLAC", "a.mp3", "cover.jpg", "b/01.ogg", "readme.txt"):
        (tmp_path / name).write_bytes(b"")

    found = [p.relative_to(tmp_path).as_posix() for p in iter_audio_files(tmp_path)]
    assert found == ["a.mp3", "b/01.ogg", "b/02.FLAC"]
