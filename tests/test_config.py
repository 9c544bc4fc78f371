"""Tests for dtunes.config module."""

from __future__ import annotations

import os
import stat
import tomllib
from pathlib import Path

import pytest
from pydantic import ValidationError

from dtunes.config import (
    AppConfig,
    LibraryConfig,
    PlayerConfig,
    ServerConfig,
    _dump_toml,
    _format_toml_value,
    ensure_dirs,
    load_config,
    save_config,
)

# ---------------------------------------------------------------------------
# 1. Default values
# ---------------------------------------------------------------------------


def test_server_config_defaults():
    cfg = ServerConfig()
    assert cfg.host == "127.0.0.1"
    assert cfg.port == 9848
    assert cfg.log_level == "info"


def test_library_and_player_defaults():
    assert LibraryConfig().database == "dtunes.db"
    assert PlayerConfig().command == "xdg-open"


def test_port_out_of_range_rejected():
    with pytest.raises(ValidationError):
        ServerConfig(port=70000)


# ---------------------------------------------------------------------------
# 2. AppConfig properties (use base_dir fixture)
# ---------------------------------------------------------------------------


def test_base_dir_property(base_dir: Path):
    assert AppConfig().base_dir == base_dir


def test_database_path(base_dir: Path):
    cfg = AppConfig(library=LibraryConfig(database="music.db"))
    assert cfg.database_path == base_dir / "music.db"


def test_log_dir(base_dir: Path):
    assert AppConfig().log_dir == base_dir / "logs"


def test_server_url():
    cfg = AppConfig(server=ServerConfig(host="localhost", port=9000))
    assert cfg.server_url == "http://localhost:9000"


# ---------------------------------------------------------------------------
# 3. ensure_dirs
# ---------------------------------------------------------------------------


def test_ensure_dirs_creates_directories(base_dir: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    fresh = tmp_path / "fresh_base"
    monkeypatch.setattr("dtunes.config.get_base_dir", lambda: fresh)

    assert not fresh.exists()
    ensure_dirs()
    assert fresh.is_dir()
    assert (fresh / "logs").is_dir()


# ---------------------------------------------------------------------------
# 4. save_config / load_config
# ---------------------------------------------------------------------------


def test_load_config_no_file_returns_defaults(base_dir: Path):
    assert load_config() == AppConfig()


def test_save_load_round_trip_custom(base_dir: Path):
    custom = AppConfig(
        server=ServerConfig(host="0.0.0.0", port=1234, log_level="debug"),
        library=LibraryConfig(database="other.db"),
        player=PlayerConfig(command='mpv --no-video --title "dtunes"'),
    )
    save_config(custom)
    assert load_config() == custom


def test_load_partial_file_fills_defaults(base_dir: Path):
    (base_dir / "config.toml").write_text('[player]\ncommand = "vlc"\n')
    cfg = load_config()
    assert cfg.player.command == "vlc"
    assert cfg.server.port == 9848


def test_save_config_sets_permissions(base_dir: Path):
    save_config(AppConfig())
    mode = stat.S_IMODE(os.stat(base_dir / "config.toml").st_mode)
    assert mode == 0o600


# ---------------------------------------------------------------------------
# 5. TOML helpers
# ---------------------------------------------------------------------------


def test_format_toml_value_string():
    assert _format_toml_value("hello") == '"hello"'


def test_format_toml_value_string_with_quotes_and_backslash():
    assert _format_toml_value('say "hi"') == '"say \\"hi\\""'
    assert _format_toml_value("back\\slash") == '"back\\\\slash"'


def test_format_toml_value_scalars():
    assert _format_toml_value(42) == "42"
    assert _format_toml_value(True) == "true"
    assert _format_toml_value(False) == "false"


def test_format_toml_value_unsupported_type():
    with pytest.raises(TypeError, match="Unsupported TOML value type"):
        _format_toml_value([1, 2, 3])


def test_dump_toml_sections_parse():
    cfg = AppConfig()
    toml_str = _dump_toml(cfg)
    for section in ("[server]", "[library]", "[player]"):
        assert section in toml_str
    parsed = tomllib.loads(toml_str)
    assert parsed["server"]["port"] == cfg.server.port
    assert parsed["library"]["database"] == cfg.library.database
    assert parsed["player"]["command"] == cfg.player.command
