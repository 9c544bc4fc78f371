"""Configuration management for dtunes."""

from __future__ import annotations

import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

_BASE_DIR_NAME = ".dtunes"
_CONFIG_FILE = "config.toml"
_LOG_DIR = "logs"


def get_base_dir() -> Path:
    """Return the base directory for all dtunes runtime files (~/.dtunes/)."""
    return Path.home() / _BASE_DIR_NAME


# ---------------------------------------------------------------------------
# Config models
# ---------------------------------------------------------------------------


class ServerConfig(BaseModel):
    """Settings for the RPC server the GUI talks to."""

    host: str = Field(default="127.0.0.1", description="Interface to bind")
    port: int = Field(default=9848, ge=1, le=65535, description="Port for the RPC endpoint")
    log_level: str = Field(default="info", description="Logging level")


class LibraryConfig(BaseModel):
    """Where the library database lives."""

    database: str = Field(default="dtunes.db", description="Database file name inside the base directory")


class PlayerConfig(BaseModel):
    """External audio player."""

    command: str = Field(default="xdg-open", description="Player command; the file path is appended")


class AppConfig(BaseModel):
    """Top-level application configuration."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    library: LibraryConfig = Field(default_factory=LibraryConfig)
    player: PlayerConfig = Field(default_factory=PlayerConfig)

    # -- derived paths (not stored in TOML) --------------------------------

    @property
    def base_dir(self) -> Path:
        return get_base_dir()

    @property
    def database_path(self) -> Path:
        return self.base_dir / self.library.database

    @property
    def log_dir(self) -> Path:
        return self.base_dir / _LOG_DIR

    @property
    def server_url(self) -> str:
        return f"http://{self.server.host}:{self.server.port}"


# ---------------------------------------------------------------------------
# Filesystem helpers
# ---------------------------------------------------------------------------


def ensure_dirs() -> None:
    """Create the base directory and log directory if they don't already exist."""
    base = get_base_dir()
    base.mkdir(mode=0o700, parents=True, exist_ok=True)
    (base / _LOG_DIR).mkdir(mode=0o700, parents=True, exist_ok=True)


# ---------------------------------------------------------------------------
# Load / save
# ---------------------------------------------------------------------------


def load_config() -> AppConfig:
    """Load configuration from TOML, falling back to defaults if the file is missing."""
    path = get_base_dir() / _CONFIG_FILE
    if not path.is_file():
        return AppConfig()

    with open(path, "rb") as f:
        raw = tomllib.load(f)

    return AppConfig.model_validate(raw)


def _format_toml_value(value: object) -> str:
    """Format a single Python value as a TOML literal."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    msg = f"Unsupported TOML value type: {type(value)}"
    raise TypeError(msg)


def _dump_toml(config: AppConfig) -> str:
    """Render *config* as TOML, one table per section in declaration order."""
    lines: list[str] = []
    for section_name in AppConfig.model_fields:
        lines.append(f"[{section_name}]")
        section = getattr(config, section_name)
        lines.extend(f"{key} = {_format_toml_value(value)}" for key, value in section.model_dump().items())
        lines.append("")
    return "\n".join(lines)


def save_config(config: AppConfig) -> None:
    """Save configuration to TOML and restrict file permissions to owner-only."""
    ensure_dirs()
    path = get_base_dir() / _CONFIG_FILE
    path.write_text(_dump_toml(config), encoding="utf-8")
    os.chmod(path, 0o600)
