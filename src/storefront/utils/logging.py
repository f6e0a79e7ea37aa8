"""Structured logging for the storefront.

Storefront modules log through ``get_logger(__name__)`` and pass business
identifiers as keyword fields (``order_id=``, ``payment_id=``, ``reason=``).
The stdlib root logger owns the handlers; structlog sits in front of it.
"""

import logging
import logging.handlers
import os
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

import structlog

LOG_FILE_PREFIX = "storefront"
MAX_LOG_BYTES = 5 * 1024 * 1024

# Environment -> (level, render as JSON)
_PROFILES = {
    "production": ("INFO", True),
    "staging": ("INFO", True),
    "development": ("DEBUG", False),
    "test": ("WARNING", False),
}

# Chatty third-party loggers held back to WARNING
_QUIET_LOGGERS = ("protean", "asyncio", "uvicorn.access")


def current_environment() -> str:
    return (os.getenv("ENVIRONMENT") or os.getenv("PROTEAN_ENV") or "development").lower()


def _profile(environment: str) -> tuple[str, bool]:
    level, as_json = _PROFILES.get(environment, ("INFO", True))
    return os.getenv("LOG_LEVEL", level).upper(), as_json


def _rotating_file(path: Path, level: int | str) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        filename=path,
        maxBytes=MAX_LOG_BYTES,
        backupCount=3,
        encoding="utf-8",
    )
    handler.setLevel(level)
    return handler


def _handlers(level: str, environment: str) -> list[logging.Handler]:
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    if environment == "test":
        return [console]

    log_dir = Path(os.getenv("LOG_DIR", "logs"))
    log_dir.mkdir(parents=True, exist_ok=True)
    return [
        console,
        _rotating_file(log_dir / f"{LOG_FILE_PREFIX}.log", level),
        _rotating_file(log_dir / f"{LOG_FILE_PREFIX}_error.log", logging.ERROR),
    ]


def _processors(as_json: bool) -> list:
    shared = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if as_json:
        return [*shared, structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    return [*shared, structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]


def configure_logging(environment: str | None = None) -> None:
    """Install handlers on the root logger and point structlog at it.

    Tests log to the console only; every other environment also writes
    ``logs/storefront.log`` and a separate error log. Calling this again
    replaces the previous configuration.
    """
    environment = (environment or current_environment()).lower()
    level, as_json = _profile(environment)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = _handlers(level, environment)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=_processors(as_json),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


@contextmanager
def request_context(**fields: Any) -> Iterator[None]:
    """Bind ``fields`` to every log line emitted inside the block.

    Used per HTTP request so handler logs carry the method and path of the
    call that triggered them.
    """
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**fields)
    try:
        yield
    finally:
        structlog.contextvars.clear_contextvars()
