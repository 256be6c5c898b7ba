"""Logger helpers shared by every fleetgrid module."""

import logging
import sys

_ROOT_LOGGER_NAME = "fleetgrid"
_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Return a module logger (use ``get_logger(__name__)``)."""
    return logging.getLogger(name)


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    """
    Attach a single stderr handler to the fleetgrid root logger.

    Calling this more than once only updates the level; handlers are never
    duplicated.

    Args:
        level: Level name ("DEBUG", "INFO", ...) or numeric level

    Returns:
        The fleetgrid root logger
    """
    root = logging.getLogger(_ROOT_LOGGER_NAME)
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level}")
        level = resolved
    root.setLevel(level)

    if not any(getattr(h, "_fleetgrid_handler", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._fleetgrid_handler = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    return root
