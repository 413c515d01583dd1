"""Logging for ``spend_rewards``.

Everything in the package logs below the ``"spend_rewards"`` logger. Modules
obtain loggers through :func:`get_logger` and never add handlers themselves;
that package root stays silent (a ``NullHandler``) until an entrypoint calls
:func:`configure_logging`, which the CLI does once per process.

The level comes from the ``level`` argument, else ``SPEND_REWARDS_LOG_LEVEL``,
else ``INFO``.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

PACKAGE_LOGGER = "spend_rewards"
LEVEL_ENV_VAR = "SPEND_REWARDS_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

_configured = False


def _level_from(value: int | str | None) -> int | None:
    if value is None:
        return None
    if isinstance(value, int):
        return value
    text = value.strip().upper()
    if text.isdigit():
        return int(text)
    named = logging.getLevelName(text)
    return named if isinstance(named, int) else None


def resolve_level(level: int | str | None = None) -> int:
    """Effective level: explicit value, then the environment, then ``INFO``."""

    for candidate in (level, os.getenv(LEVEL_ENV_VAR)):
        resolved = _level_from(candidate)
        if resolved is not None:
            return resolved
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> None:
    """Attach one stream handler to the package logger. Later calls are no-ops."""

    global _configured
    if _configured:
        return

    pkg = logging.getLogger(PACKAGE_LOGGER)
    for handler in [h for h in pkg.handlers if isinstance(h, logging.NullHandler)]:
        pkg.removeHandler(handler)

    effective = resolve_level(level)
    stream_handler = logging.StreamHandler(stream)
    stream_handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))
    stream_handler.setLevel(effective)
    pkg.addHandler(stream_handler)
    pkg.setLevel(effective)
    # Records stop here; the host's root handlers would print them twice.
    pkg.propagate = False
    _configured = True


def get_logger(name: str) -> logging.Logger:
    pkg = logging.getLogger(PACKAGE_LOGGER)
    if not _configured and not pkg.handlers:
        pkg.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "resolve_level"]
