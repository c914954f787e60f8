"""Centralized logging configuration for the ``household_ledger`` package.

Two public helpers:

- ``configure_logging(...)``: attach a single ``StreamHandler`` to the package
  root logger (``"household_ledger"``). Called once by entrypoints (the CLI)
  at process startup.
- ``get_logger(name)``: acquire a logger by name, making sure the package root
  logger has at least a ``NullHandler`` when nothing was configured.

Library modules never attach their own handlers. They call
``get_logger("household_ledger.<module>")`` and rely on the host application
(or the CLI) for output configuration.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

_PKG_LOGGER_NAME = "household_ledger"
_LEVEL_ENV_VAR = "HOUSEHOLD_LEDGER_LOG_LEVEL"
_CONFIGURED = False


def _level_from_name(name: str) -> int | None:
    # Numeric strings or standard level names (INFO/DEBUG/etc.).
    name = name.strip().upper()
    if name.isdigit():
        return int(name)
    numeric = getattr(logging, name, None)
    return numeric if isinstance(numeric, int) else None


def _parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        parsed = _level_from_name(level)
        if parsed is not None:
            return parsed
    # Env override when ``level`` is None or unrecognized
    env_val = os.getenv(_LEVEL_ENV_VAR)
    if env_val:
        parsed = _level_from_name(env_val)
        if parsed is not None:
            return parsed
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> None:
    """Configure the package root logger exactly once.

    Parameters
    ----------
    level:
        Logging level as ``int`` or level-name string. When ``None``, the
        ``HOUSEHOLD_LEDGER_LOG_LEVEL`` environment variable is used when set,
        otherwise ``logging.INFO``.
    fmt:
        Optional format string. Defaults to
        ``"%(asctime)s %(name)s %(levelname)s %(message)s"``.
    stream:
        Output stream for the ``StreamHandler`` (``sys.stderr`` by default).
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    logger = logging.getLogger(_PKG_LOGGER_NAME)

    # Drop NullHandlers installed by get_logger() before configuration.
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    resolved = _parse_level(level)
    handler = logging.StreamHandler(stream)
    handler.setLevel(resolved)
    handler.setFormatter(
        logging.Formatter(fmt or "%(asctime)s %(name)s %(levelname)s %(message)s")
    )

    logger.setLevel(resolved)
    logger.addHandler(handler)
    # Avoid double emission via the root logger.
    logger.propagate = False

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger by name, ensuring safe defaults for library use."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


def reset_logging() -> None:
    """Undo :func:`configure_logging` so the next call configures afresh."""

    global _CONFIGURED
    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
    _CONFIGURED = False


__all__ = ["configure_logging", "get_logger", "reset_logging"]
