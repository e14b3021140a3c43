from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest


@pytest.fixture(autouse=True)
def _restore_package_logger() -> Iterator[None]:
    """Undo global logging state left behind by setup_logging() calls (e.g. via cli.main)."""
    pkg = logging.getLogger("yin_tuner")
    handlers, level, propagate = list(pkg.handlers), pkg.level, pkg.propagate
    yield
    pkg.handlers[:] = handlers
    pkg.setLevel(level)
    pkg.propagate = propagate
