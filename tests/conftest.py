"""Shared fixtures for dtunes tests."""

from __future__ import annotations

from pathlib import Path

import pytest
import pytest_asyncio

from dtunes.storage import Database, Library


@pytest.fixture()
def base_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Redirect all dtunes runtime files to a temporary directory.

    Patches ``dtunes.config.get_base_dir`` (and the re-imported reference in
    ``dtunes.cli``) so that nothing touches the real ``~/.dtunes/``.
    """
    fake_base = tmp_path / ".dtunes"
    fake_base.mkdir()
    (fake_base / "logs").mkdir()

    monkeypatch.setattr("dtunes.config.get_base_dir", lambda: fake_base)
    monkeypatch.setattr("dtunes.cli.get_base_dir", lambda: fake_base)

    return fake_base


@pytest_asyncio.fixture()
async def db(tmp_path: Path):
    """Provide a fresh, connected database for each test."""
    database = Database(tmp_path / "test.db")
    await database.connect()
    yield database
    await database.close()


@pytest_asyncio.fixture()
async def library(db: Database) -> Library:
    return Library(db)
