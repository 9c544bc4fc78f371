"""CLI interface for dtunes."""

from __future__ import annotations

import asyncio
import json
from collections import deque
from pathlib import Path

import httpx
import typer
from rich.console import Console

from dtunes.config import ensure_dirs, get_base_dir, load_config, save_config

app = typer.Typer(
    name="dtunes",
    help="Local media library for audio files, artists, genres, playlists and pomodoro sessions.",
    add_completion=False,
)
console = Console()


def main() -> None:
    """Entry point that wraps ``app()`` with a clean KeyboardInterrupt handler."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("Interrupted.")
        raise SystemExit(130) from None


# ---------------------------------------------------------------------------
# RPC helper
# ---------------------------------------------------------------------------


def send_command(cmd: str, params: dict | None = None) -> dict:
    """Send an RPC command to the running server.

    Raises a user-friendly error (via ``typer.Exit``) when the server cannot
    be reached.
    """
    cfg = load_config()
    payload: dict = {"cmd": cmd}
    if params is not None:
        payload["params"] = params

    try:
        with httpx.Client(base_url=cfg.server_url) as client:
            response = client.post("/rpc", json=payload, timeout=10.0)
            response.raise_for_status()
            return response.json()
    except httpx.ConnectError:
        console.print(
            f"[red]Could not connect to dtunes at {cfg.server_url}.[/red]  Try [bold]dtunes serve[/bold].",
        )
        raise typer.Exit(1) from None
    except httpx.HTTPStatusError as exc:
        console.print(f"[red]Server returned an error:[/red] {exc.response.status_code}")
        raise typer.Exit(1) from exc


def _parse_param(raw: str) -> tuple[str, str]:
    """Split ``key=value``.

    The value stays a string; the server's parameter models turn ``id=3``
    into an int and leave ``name=1975`` as text.
    """
    key, sep, value = raw.partition("=")
    if not sep or not key:
        msg = f"expected key=value, got '{raw}'"
        raise ValueError(msg)
    return key, value


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def serve() -> None:
    """Open the library and serve the RPC endpoint in the foreground."""
    from dtunes.logging import setup_logging
    from dtunes.server.rpc import serve as serve_rpc

    ensure_dirs()
    cfg = load_config()
    setup_logging(log_level=cfg.server.log_level, log_dir=cfg.log_dir)
    console.print(f"[green]Serving[/green] {cfg.database_path} on [bold]{cfg.server_url}[/bold]")
    asyncio.run(serve_rpc(cfg))


@app.command()
def call(
    cmd: str = typer.Argument(help="Command name, e.g. view_artists"),
    params: list[str] = typer.Argument(None, help="Parameters as key=value pairs"),
) -> None:
    """Invoke one command on the running server and print the result."""
    parsed: dict = {}
    for raw in params or []:
        try:
            key, value = _parse_param(raw)
        except ValueError as exc:
            console.print(f"[red]Invalid parameter:[/red] {exc}")
            raise typer.Exit(1) from exc
        parsed[key] = value

    result = send_command(cmd, params=parsed or None)
    if not result.get("ok", False):
        console.print(f"[red]Error:[/red] {result.get('error', 'unknown')}")
        raise typer.Exit(1)
    console.print_json(json.dumps(result.get("data", {})))


@app.command(name="import")
def import_dir(
    directory: Path = typer.Argument(help="Directory to scan for audio files"),
) -> None:
    """Add every audio file below DIRECTORY that is not yet in the library."""
    if not directory.is_dir():
        console.print(f"[red]Not a directory:[/red] {directory}")
        raise typer.Exit(1)

    ensure_dirs()
    cfg = load_config()
    added, skipped = asyncio.run(_import_dir(cfg.database_path, directory))
    console.print(f"[green]Imported {added} file(s)[/green], skipped {skipped} already in the library.")


async def _import_dir(db_path: Path, directory: Path) -> tuple[int, int]:
    from dtunes.metadata import iter_audio_files, probe
    from dtunes.storage import AudioFile, Database, Library

    added = skipped = 0
    async with Database(db_path) as db:
        library = Library(db)
        for path in iter_audio_files(directory.resolve()):
            if await library.audio_files.find_by_path(str(path)) is not None:
                skipped += 1
                continue
            info = await asyncio.to_thread(probe, path)
            await library.audio_files.insert(
                AudioFile(
                    file_name=path.stem,
                    file_path=str(path),
                    duration=info.duration,
                    sample_rate=info.sample_rate,
                )
            )
            added += 1
    return added, skipped


@app.command()
def logs(
    tail_lines: int = typer.Option(50, "--lines", "-n", help="Number of lines to show"),
    storage: bool = typer.Option(False, "--storage", help="Show storage.log (JSON) instead of dtunes.log"),
) -> None:
    """Show recent log output."""
    filename = "storage.log" if storage else "dtunes.log"
    log_file = get_base_dir() / "logs" / filename
    if not log_file.exists():
        console.print(f"[yellow]Log file not found:[/yellow] {log_file}")
        raise typer.Exit(1)

    with open(log_file, encoding="utf-8") as fh:
        last_lines = deque(fh, maxlen=tail_lines)

    if not last_lines:
        console.print("[dim]Log file is empty.[/dim]")
        return

    for line in last_lines:
        _print_log_line(line)


def _log_line_style(line: str) -> str | None:
    """Return a Rich style string based on the log level found in *line*.

    Matches structlog formats only:
    - ConsoleRenderer: ``[error    ]``
    - JSONRenderer: ``"level": "error"``
    """
    lower = line.lower()
    if "[error" in lower or "[critical" in lower or '"level": "error"' in lower or '"level": "critical"' in lower:
        return "red"
    if "[warning" in lower or '"level": "warning"' in lower:
        return "yellow"
    if "[debug" in lower or '"level": "debug"' in lower:
        return "dim"
    return None


def _print_log_line(line: str) -> None:
    line = line.rstrip("\n")
    if not line:
        return
    console.print(line, style=_log_line_style(line), highlight=False, markup=False)


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


config_app = typer.Typer(name="config", help="View and modify configuration.", add_completion=False)
app.add_typer(config_app)


@config_app.command(name="show")
def config_show() -> None:
    """Show current configuration."""
    cfg = load_config()

    console.print("\n[bold]Current Configuration[/bold]\n")

    console.print("[bold cyan]\\[server][/bold cyan]")
    console.print(f"  host      = {cfg.server.host}")
    console.print(f"  port      = {cfg.server.port}")
    console.print(f"  log_level = {cfg.server.log_level}")

    console.print("\n[bold cyan]\\[library][/bold cyan]")
    console.print(f"  database = {cfg.library.database}  [dim]({cfg.database_path})[/dim]")

    console.print("\n[bold cyan]\\[player][/bold cyan]")
    console.print(f"  command = {cfg.player.command}", markup=False)
    console.print()


@config_app.command(name="set")
def config_set(
    key: str = typer.Argument(help="Dotted key, e.g. server.port"),
    value: str = typer.Argument(help="New value"),
) -> None:
    """Set a configuration value (e.g. dtunes config set server.port 9900)."""
    parts = key.split(".", maxsplit=1)
    if len(parts) != 2:
        console.print("[red]Key must be in section.field format (e.g. server.port).[/red]")
        raise typer.Exit(1)

    section_name, field_name = parts

    cfg = load_config()
    section_map = {name: getattr(cfg, name) for name in type(cfg).model_fields}

    if section_name not in section_map:
        console.print(f"[red]Unknown section:[/red] {section_name}")
        console.print(f"[dim]Valid sections: {', '.join(section_map)}[/dim]")
        raise typer.Exit(1)

    section_model = section_map[section_name]
    fields = type(section_model).model_fields
    if field_name not in fields:
        console.print(f"[red]Unknown field:[/red] {section_name}.{field_name}")
        console.print(f"[dim]Valid fields: {', '.join(fields)}[/dim]")
        raise typer.Exit(1)

    try:
        coerced = _coerce_value(value, fields[field_name].annotation)
    except (ValueError, TypeError) as exc:
        console.print(f"[red]Invalid value:[/red] {exc}")
        raise typer.Exit(1) from exc

    section_data = section_model.model_dump(mode="python")
    section_data[field_name] = coerced

    setattr(cfg, section_name, type(section_model)(**section_data))
    save_config(cfg)
    console.print(f"[green]Set[/green] {key} = {coerced}")


def _coerce_value(raw: str, field_type: type | None) -> object:
    """Coerce a string value to the expected field type."""
    if field_type is bool:
        if raw.lower() in ("true", "1", "yes"):
            return True
        if raw.lower() in ("false", "0", "no"):
            return False
        msg = f"Cannot convert '{raw}' to bool (use true/false)"
        raise ValueError(msg)

    if field_type is int:
        return int(raw)

    return raw


# ---------------------------------------------------------------------------
# Database inspection
# ---------------------------------------------------------------------------


db_app = typer.Typer(name="db", help="Database inspection commands.", add_completion=False)
app.add_typer(db_app)


@db_app.command(name="status")
def db_status() -> None:
    """Show database location and row counts per table."""
    import sqlite3

    from dtunes.storage.tables import ALL_TABLES

    db_path = load_config().database_path
    if not db_path.exists():
        console.print("[yellow]Database not found.[/yellow] Run [bold]dtunes serve[/bold] or [bold]dtunes import[/bold] first.")
        raise typer.Exit(1)

    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    try:
        console.print(f"\n[bold]Database[/bold]  {db_path}")
        size_kb = db_path.stat().st_size / 1024
        console.print(f"[dim]Size: {size_kb:.1f} KB[/dim]\n")

        tables = [t.name for t in ALL_TABLES] + [t.link_table for t in ALL_TABLES if t.link_table]
        for table in tables:
            cur = conn.execute(f"SELECT COUNT(*) as cnt FROM {table}")  # noqa: S608
            count = cur.fetchone()["cnt"]
            style = "green" if count > 0 else "dim"
            console.print(f"  [{style}]{table:22s}[/{style}]  {count:>6}")
    finally:
        conn.close()

    console.print()
