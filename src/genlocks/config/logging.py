"""Shared logging helpers for genlocks."""

from __future__ import annotations

import logging
import os

from .errors import ConfigurationError

LOG_LEVEL_ENV = "GENLOCKS_LOG_LEVEL"


def resolve_log_level(level: int | str | None = None) -> int:
    """Return a numeric level from an explicit value or ``GENLOCKS_LOG_LEVEL``."""

    candidate: int | str = level if level is not None else os.getenv(LOG_LEVEL_ENV, "INFO")
    if isinstance(candidate, int):
        return candidate
    numeric = logging.getLevelNamesMapping().get(candidate.strip().upper())
    if numeric is None:
        raise ConfigurationError(f"Unknown log level: {candidate!r}")
    return numeric


def configure_logging(*, level: int | str | None = None, force: bool = False) -> None:
    """Initialise the root logger with the terse format used by the CLI.

    The level defaults to ``GENLOCKS_LOG_LEVEL`` (INFO when unset). Pass
    ``force=True`` to reconfigure during tests or embedded use.
    """

    logging.basicConfig(
        level=resolve_log_level(level),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
