"""Process logging setup for the credentials API."""

from __future__ import annotations

import logging

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
# Engine and driver loggers echo bound parameters, which include password hashes.
_QUIET_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "asyncpg")


def resolve_log_level(level: str) -> int:
    """Map a level name such as `debug` onto a logging constant, falling back to INFO."""

    name = level.strip().upper() or "INFO"
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(*, level: str) -> None:
    """Configure root logging once per process and keep storage drivers at WARNING."""

    logging.basicConfig(level=resolve_log_level(level), format=_LOG_FORMAT)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
