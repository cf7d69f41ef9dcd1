"""Logging setup for the rowbind command line."""

from __future__ import annotations

import logging

from rowbind.config.errors import InvalidConfigurationError

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def resolve_level(level: int | str) -> int:
    """Numeric level for ``level``; names are case-insensitive and blank means INFO."""

    if isinstance(level, int):
        return level
    name = level.strip().upper() or "INFO"
    try:
        return logging.getLevelNamesMapping()[name]
    except KeyError:
        raise InvalidConfigurationError(f"Unknown log level {level!r}") from None


def configure_logging(*, level: int | str = logging.INFO, force: bool = False) -> None:
    """Configure the root logger for CLI output.

    Existing root handlers are left alone unless ``force`` is set.
    """

    logging.basicConfig(
        level=resolve_level(level),
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
        force=force,
    )
