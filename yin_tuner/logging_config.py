"""Centralized logging configuration for yin_tuner."""

from __future__ import annotations

import logging
import sys

# Default levels per logger; anything under "yin_tuner" can be overridden at once.
MODULE_LOG_LEVELS: dict[str, int] = {
    "yin_tuner": logging.INFO,
    "yin_tuner.engine": logging.INFO,
    "yin_tuner.audio": logging.INFO,
    "yin_tuner.web": logging.INFO,
    "uvicorn": logging.WARNING,
}

_console_handler: logging.Handler | None = None


def setup_logging(level: str | None = None) -> None:
    """Install a shared stdout handler and apply per-module levels.

    Args:
        level: If given (e.g. "DEBUG"), override every yin_tuner level with it.
    """
    global _console_handler

    if _console_handler is None:
        _console_handler = logging.StreamHandler(sys.stdout)
        _console_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )

    levels = dict(MODULE_LOG_LEVELS)
    if level:
        numeric = logging.getLevelName(level.upper())
        if isinstance(numeric, int):
            for name in levels:
                if name.startswith("yin_tuner"):
                    levels[name] = numeric
        else:
            logging.getLogger(__name__).error("Invalid log level: %s", level)

    for name, module_level in levels.items():
        logger = logging.getLogger(name)
        logger.setLevel(module_level)

    # Children propagate up to the package logger, so only it gets the handler.
    root = logging.getLogger("yin_tuner")
    if _console_handler not in root.handlers:
        root.addHandler(_console_handler)
    root.propagate = False
