"""Structured logging for dtunes.

Two rotating files are written under the log directory:

``dtunes.log``
    Every event, rendered for people reading a terminal.
``storage.log``
    Only events from ``dtunes.storage.*`` loggers, one JSON object per line,
    so record inserts, updates and deletes can be audited with ``jq``.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

import structlog

APP_LOG = "dtunes.log"
STORAGE_LOG = "storage.log"
STORAGE_LOGGER = "dtunes.storage"

_MAX_BYTES = 10 * 1024 * 1024
_BACKUP_COUNT = 5

# Third-party loggers that are only interesting when they warn.
_NOISY = ("uvicorn", "uvicorn.access", "uvicorn.error", "httpx", "httpcore", "aiosqlite")

_pre_chain: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.stdlib.ExtraAdder(),
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.UnicodeDecoder(),
]


def _rotating(path: Path, renderer: structlog.types.Processor) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=_MAX_BYTES, backupCount=_BACKUP_COUNT, encoding="utf-8")
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=_pre_chain))
    return handler


def setup_logging(log_level: str = "info", log_dir: Path | None = None) -> None:
    """Route structlog through stdlib logging and attach the file handlers.

    An unknown *log_level* name falls back to ``INFO``.  With *log_dir* set
    to ``None`` no handlers are attached, which keeps tests quiet.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    structlog.configure(
        processors=[*_pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        root.addHandler(_rotating(log_dir / APP_LOG, structlog.dev.ConsoleRenderer(colors=False)))

        storage = _rotating(log_dir / STORAGE_LOG, structlog.processors.JSONRenderer())
        storage.addFilter(logging.Filter(STORAGE_LOGGER))
        root.addHandler(storage)

    for name in _NOISY:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    sys.excepthook = _log_uncaught


def _log_uncaught(exc_type: type[BaseException], exc_value: BaseException, exc_tb: object) -> None:
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_tb)  # type: ignore[arg-type]
        return
    logging.getLogger("dtunes").critical("uncaught_exception", exc_info=(exc_type, exc_value, exc_tb))
