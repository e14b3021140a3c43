from __future__ import annotations

import logging

from yin_tuner.logging_config import setup_logging


def test_setup_logging_is_idempotent() -> None:
    pkg = logging.getLogger("yin_tuner")
    try:
        setup_logging("debug")
        setup_logging("debug")
        assert pkg.level == logging.DEBUG
        assert logging.getLogger("yin_tuner.engine").level == logging.DEBUG
        assert len(pkg.handlers) == 1
        assert pkg.propagate is False

        setup_logging()
        assert pkg.level == logging.INFO
    finally:
        for handler in list(pkg.handlers):
            pkg.removeHandler(handler)
        pkg.propagate = True


def test_unknown_level_keeps_defaults() -> None:
    pkg = logging.getLogger("yin_tuner")
    try:
        setup_logging("loud")
        assert pkg.level == logging.INFO
    finally:
        for handler in list(pkg.handlers):
            pkg.removeHandler(handler)
        pkg.propagate = True
