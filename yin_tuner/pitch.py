from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np


class TunerConfigError(ValueError):
    pass


@dataclass(frozen=True)
class YinConfig:
    sample_rate: int = 44100
    window_size: int = 4096
    threshold: float = 0.15
    # Global-minimum fallback is only trusted above this confidence.
    fallback_confidence: float = 0.5
    # Fit the parabola on the normalised curve instead of the raw difference.
    # The normalised curve is lopsided around short periods and biases the lag.
    interpolate_normalized: bool = False

    def __post_init__(self) -> None:
        if self.sample_rate <= 0:
            raise TunerConfigError(f"sample_rate must be positive, got {self.sample_rate}")
        if self.window_size <= 0:
            raise TunerConfigError(f"window_size must be positive, got {self.window_size}")
        if self.window_size % 2 != 0:
            raise TunerConfigError(f"window_size must be even, got {self.window_size}")
        if self.window_size < 8:
            raise TunerConfigError(f"window_size too small for YIN, got {self.window_size}")
        if not (0.0 < self.threshold < 1.0):
            raise TunerConfigError(f"threshold must be in (0, 1), got {self.threshold}")

    @property
    def half(self) -> int:
        return self.window_size // 2

    @property
    def min_detectable_hz(self) -> float:
        return float(self.sample_rate) / float(self.half - 1)


@dataclass(frozen=True)
class DetectionResult:
    frequency_hz: float
    confidence: float
    amplitude: float

    @property
    def has_pitch(self) -> bool:
        return self.frequency_hz > 0.0

    @classmethod
    def silent(cls, amplitude: float = 0.0) -> DetectionResult:
        return cls(frequency_hz=0.0, confidence=0.0, amplitude=float(amplitude))


class YinPitchDetector:
    """
    YIN fundamental frequency estimator (de Cheveigne & Kawahara, 2002).

    Works on exactly one analysis window of ``window_size`` mono samples and
    only looks at lags below ``window_size // 2``. Buffers are sized once at
    construction and reused for every window.

    Strategy:
    - Squared difference function d(tau) over the first half of the window.
    - Cumulative mean normalisation, y(0) = 1.
    - First dip under the absolute threshold, walked down to its local minimum.
    - Parabolic interpolation for a fractional lag (on d by default).
    - Global-minimum fallback when nothing crosses the threshold.

    Very quiet windows are prone to cancellation in the difference sums. The
    amplitude gate upstream is what rejects those periods; nothing here
    guards against it numerically.
    """

    def __init__(self, config: YinConfig | None = None) -> None:
        self._cfg = config or YinConfig()
        half = self._cfg.half
        self._frame = np.zeros(self._cfg.window_size, dtype=np.float64)
        self._diff = np.zeros(half, dtype=np.float64)
        self._yin = np.zeros(half, dtype=np.float64)
        self._scratch = np.zeros(half, dtype=np.float64)
        self._below = np.zeros(half, dtype=bool)
        self._lags = np.arange(half, dtype=np.float64)

    @property
    def config(self) -> YinConfig:
        return self._cfg

    @property
    def sample_rate(self) -> int:
        return self._cfg.sample_rate

    @property
    def window_size(self) -> int:
        return self._cfg.window_size

    def detect(self, window: np.ndarray, input_threshold: float | None = None) -> DetectionResult:
        """
        Estimate the fundamental of one analysis window.

        If ``input_threshold`` is given and the window RMS falls below it, the
        YIN pass is skipped and a pitchless result carrying the RMS is returned.
        """
        x = np.asarray(window)
        if x.ndim != 1 or x.size != self._cfg.window_size:
            raise ValueError(
                f"expected a 1-D window of {self._cfg.window_size} samples, got shape {x.shape}"
            )
        self._frame[:] = x
        amplitude = rms(self._frame)
        if input_threshold is not None and amplitude < input_threshold:
            return DetectionResult.silent(amplitude)

        period, confidence = self._run_yin()
        if period <= 0.0:
            return DetectionResult(frequency_hz=0.0, confidence=0.0, amplitude=amplitude)
        return DetectionResult(
            frequency_hz=float(self._cfg.sample_rate) / period,
            confidence=float(min(1.0, max(0.0, confidence))),
            amplitude=amplitude,
        )

    def _run_yin(self) -> tuple[float, float]:
        half = self._cfg.half
        self._difference()
        self._cumulative_mean_normalized()
        y = self._yin

        mask = self._below
        np.less(y, self._cfg.threshold, out=mask)
        first = int(np.argmax(mask[2:])) + 2
        if mask[first]:
            tau = first
            # Walk down to the bottom of the dip rather than its leading edge.
            while tau + 1 < half and y[tau + 1] < y[tau]:
                tau += 1
            return self._parabolic(tau), 1.0 - float(y[tau])

        tau = int(np.argmin(y[2:])) + 2
        confidence = 1.0 - float(y[tau])
        if confidence > self._cfg.fallback_confidence:
            return self._parabolic(tau), confidence
        return 0.0, 0.0

    def _difference(self) -> None:
        half = self._cfg.half
        head = self._frame[:half]
        scratch = self._scratch
        diff = self._diff
        for tau in range(half):
            np.subtract(head, self._frame[tau : tau + half], out=scratch)
            diff[tau] = np.dot(scratch, scratch)

    def _cumulative_mean_normalized(self) -> None:
        d = self._diff
        y = self._yin
        y[0] = 1.0
        np.cumsum(d[1:], out=y[1:])
        # d >= 0, so the running sum is non-decreasing and any zeros form a prefix.
        zeros = int(np.searchsorted(y[1:], 0.0, side="right"))
        start = 1 + zeros
        y[1:start] = 1.0
        if start < y.size:
            weighted = self._scratch[start:]
            np.multiply(d[start:], self._lags[start:], out=weighted)
            np.divide(weighted, y[start:], out=y[start:])

    def _parabolic(self, tau: int) -> float:
        half = self._cfg.half
        if tau <= 0 or tau >= half - 1:
            return float(tau)
        curve = self._yin if self._cfg.interpolate_normalized else self._diff
        s0 = float(curve[tau - 1])
        s1 = float(curve[tau])
        s2 = float(curve[tau + 1])
        denom = 2.0 * (2.0 * s1 - s2 - s0)
        if denom == 0.0 or not math.isfinite(denom):
            return float(tau)
        adjustment = (s2 - s0) / denom
        if abs(adjustment) > 1.0:
            # Not a bracketed minimum; the fit would leave the neighbourhood.
            return float(tau)
        return float(tau) + adjustment


def rms(x: np.ndarray) -> float:
    if x.size == 0:
        return 0.0
    x = np.asarray(x, dtype=np.float64)
    return float(math.sqrt(float(np.dot(x, x)) / x.size))
