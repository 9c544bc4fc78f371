"""RPC server module: the endpoint the GUI shell invokes."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import aiosqlite
import structlog
import uvicorn
from fastapi import FastAPI
from pydantic import BaseModel, ValidationError

from dtunes.player import PlaybackError, Player
from dtunes.server.handlers import COMMANDS
from dtunes.storage import Database, Library

if TYPE_CHECKING:
    from dtunes.config import AppConfig

log = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Wire models
# ---------------------------------------------------------------------------


class RpcRequest(BaseModel):
    """Incoming RPC call from the GUI shell."""

    cmd: str
    params: dict = {}


class RpcResponse(BaseModel):
    """Outgoing RPC response sent back to the GUI shell."""

    ok: bool = True
    data: dict | list = {}
    error: str | None = None


# ---------------------------------------------------------------------------
# Runtime state
# ---------------------------------------------------------------------------


class AppState:
    """Resources shared by every handler call: the library and the player."""

    def __init__(self, db: Database, player: Player | None = None) -> None:
        self.started_at: datetime = datetime.now(timezone.utc)
        self.db = db
        self.library = Library(db)
        self.player = player

    def get_status(self) -> dict:
        """Return a snapshot of the server status."""
        uptime = (datetime.now(timezone.utc) - self.started_at).total_seconds()
        return {
            "uptime_seconds": round(uptime, 2),
            "started_at": self.started_at.isoformat(),
        }


# ---------------------------------------------------------------------------
# RPC command dispatch
# ---------------------------------------------------------------------------


def _validation_message(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err["loc"]) or "params"
        parts.append(f"{loc}: {err['msg']}")
    return "invalid params: " + "; ".join(parts)


async def _status(state: AppState, params: dict) -> dict:
    status = state.get_status()
    status["counts"] = await state.library.counts()
    return status


async def _dispatch(cmd: str, params: dict, state: AppState) -> RpcResponse:
    """Route an RPC command string to the appropriate handler."""
    if cmd == "ping":
        return RpcResponse()

    if cmd == "health":
        return RpcResponse(data={"uptime_seconds": state.get_status()["uptime_seconds"]})

    handler = _status if cmd == "status" else COMMANDS.get(cmd)
    if handler is None:
        return RpcResponse(ok=False, error=f"unknown command: {cmd}")

    try:
        data = await handler(state, params)
    except ValidationError as exc:
        return RpcResponse(ok=False, error=_validation_message(exc))
    except (aiosqlite.Error, PlaybackError) as exc:
        return RpcResponse(ok=False, error=str(exc))
    return RpcResponse(data=data)


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_rpc_app(state: AppState) -> FastAPI:
    """Build the FastAPI application that serves the RPC endpoint."""
    app = FastAPI(title="dtunes", docs_url=None, redoc_url=None)

    @app.post("/rpc", response_model=RpcResponse)
    async def rpc_endpoint(request: RpcRequest) -> RpcResponse:
        log.info("rpc_request", cmd=request.cmd)
        response = await _dispatch(request.cmd, request.params, state)
        if not response.ok:
            log.warning("rpc_error", cmd=request.cmd, error=response.error)
        return response

    @app.get("/health", response_model=RpcResponse)
    async def health_endpoint() -> RpcResponse:
        return RpcResponse(data={"uptime_seconds": state.get_status()["uptime_seconds"]})

    return app


async def serve(config: AppConfig) -> None:
    """Open the library and serve RPC requests until uvicorn is told to stop."""
    async with Database(config.database_path) as db:
        state = AppState(db, player=Player(config.player.command))
        server = uvicorn.Server(
            uvicorn.Config(
                create_rpc_app(state),
                host=config.server.host,
                port=config.server.port,
                log_level=config.server.log_level,
                loop="asyncio",
            )
        )
        log.info("server_starting", host=config.server.host, port=config.server.port)
        await server.serve()
        log.info("server_stopped")
