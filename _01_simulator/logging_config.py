"""Logging configuration for the Number-BATTLE solver and service."""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping

JSON_FORMAT = '{"time":"%(asctime)s","level":"%(levelname)s","name":"%(name)s","message":"%(message)s"}'
TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Third-party loggers that are noisy at INFO
DEFAULT_LOGGER_LEVELS: dict[str, str] = {
    "aiohttp.access": "WARNING",
    "multipart": "WARNING",
}

def setup_logging(
    level: str = "INFO",
    format_json: bool = False,
    logger_levels: Mapping[str, str] | None = None,
) -> None:
    """
    Configure logging for the application.

    Args:
        level: The root logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_json: Whether to output one JSON object per line (useful for production)
        logger_levels: Per-logger level overrides, merged over DEFAULT_LOGGER_LEVELS
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    if format_json:
        handler.setFormatter(logging.Formatter(JSON_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    logging.root.setLevel(log_level)
    logging.root.addHandler(handler)

    overrides = dict(DEFAULT_LOGGER_LEVELS)
    overrides.update(logger_levels or {})
    for name, name_level in overrides.items():
        logging.getLogger(name).setLevel(getattr(logging, name_level.upper(), logging.WARNING))

__all__ = ["DEFAULT_LOGGER_LEVELS", "setup_logging"]
