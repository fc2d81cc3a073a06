"""Centralized logging configuration for the ledger application.

- ``configure_logging(...)`` attaches a single ``StreamHandler`` to the
  ``"warehouse"`` package logger. Called once by ``main.py`` at startup.
- ``get_logger(name)`` returns a logger, attaching a ``NullHandler`` to the
  package logger when nothing has been configured yet.

Modules never attach their own handlers; they call
``get_logger("warehouse.<module>")``.
"""
import logging
import os
import sys
from typing import IO

_PKG_LOGGER_NAME = "warehouse"
_CONFIGURED = False


def _parse_level(level: int | str | None, use_env: bool = True) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        level = level.strip().upper()
        if level.isdigit():
            return int(level)
        numeric = getattr(logging, level, None)
        if isinstance(numeric, int):
            return numeric
    env_val = os.getenv("WAREHOUSE_LOG_LEVEL") if use_env else None
    if env_val:
        return _parse_level(env_val, use_env=False)
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> None:
    """Configure the package logger exactly once.

    ``level`` defaults to ``WAREHOUSE_LOG_LEVEL`` when set, otherwise INFO.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    handler = logging.StreamHandler(stream)
    handler.setLevel(_parse_level(level))
    handler.setFormatter(
        logging.Formatter(fmt or "%(asctime)s %(name)s %(levelname)s %(message)s")
    )

    logger.setLevel(_parse_level(level))
    logger.addHandler(handler)
    logger.propagate = False

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)
