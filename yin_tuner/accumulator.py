from __future__ import annotations

from typing import Iterator

import numpy as np


class SampleAccumulator:
    """
    Collects arbitrarily sized sample blocks into back-to-back analysis windows.

    Windows never overlap and are never short: every pushed sample lands in
    exactly one window, in arrival order. The queue is a flat buffer of
    ``2 * window_size`` samples that only grows when a single push is larger
    than the free space.
    """

    def __init__(self, window_size: int) -> None:
        if window_size <= 0:
            raise ValueError(f"window_size must be positive, got {window_size}")
        self._window_size = int(window_size)
        self._buffer = np.zeros(2 * self._window_size, dtype=np.float32)
        self._fill = 0

    @property
    def window_size(self) -> int:
        return self._window_size

    @property
    def pending(self) -> int:
        return self._fill

    def push(self, samples: np.ndarray) -> None:
        x = np.asarray(samples, dtype=np.float32)
        if x.ndim != 1:
            raise ValueError(f"expected a 1-D sample block, got shape {x.shape}")
        n = int(x.size)
        if n == 0:
            return
        if self._fill + n > self._buffer.size:
            grown = np.zeros(self._fill + n + self._window_size, dtype=np.float32)
            grown[: self._fill] = self._buffer[: self._fill]
            self._buffer = grown
        self._buffer[self._fill : self._fill + n] = x
        self._fill += n

    def drain(self) -> Iterator[np.ndarray]:
        """
        Yield every complete window, oldest first.

        Yielded arrays are views into the queue; use each one before advancing.
        The leftover tail moves to the front once the generator finishes.
        """
        size = self._window_size
        start = 0
        try:
            while self._fill - start >= size:
                yield self._buffer[start : start + size]
                start += size
        finally:
            if start:
                remaining = self._fill - start
                self._buffer[:remaining] = self._buffer[start : self._fill]
                self._fill = remaining

    def clear(self) -> None:
        self._fill = 0
