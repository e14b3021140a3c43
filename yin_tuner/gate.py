from __future__ import annotations

import math
from dataclasses import dataclass

from yin_tuner.pitch import DetectionResult

MIN_INPUT_THRESHOLD = 0.0005
MAX_INPUT_THRESHOLD = 0.02
MIN_CONFIDENCE = 0.4
MAX_CONFIDENCE = 0.85
DEFAULT_SENSITIVITY = 0.5


def clamp_sensitivity(value: float) -> float:
    value = float(value)
    if math.isnan(value):
        return DEFAULT_SENSITIVITY
    return float(min(1.0, max(0.0, value)))


def input_threshold(sensitivity: float) -> float:
    # 0.0 -> 0.02 (deaf), 0.5 -> ~0.0054, 1.0 -> 0.0005 (hears a whisper)
    t = 1.0 - clamp_sensitivity(sensitivity)
    return MIN_INPUT_THRESHOLD + (MAX_INPUT_THRESHOLD - MIN_INPUT_THRESHOLD) * t * t


def confidence_threshold(sensitivity: float) -> float:
    # 0.0 -> 0.85 (strict), 0.5 -> 0.625, 1.0 -> 0.4 (lenient)
    s = clamp_sensitivity(sensitivity)
    return MAX_CONFIDENCE - s * (MAX_CONFIDENCE - MIN_CONFIDENCE)


@dataclass(frozen=True)
class GateThresholds:
    input_threshold: float
    confidence_threshold: float

    @classmethod
    def for_sensitivity(cls, sensitivity: float) -> GateThresholds:
        return cls(
            input_threshold=input_threshold(sensitivity),
            confidence_threshold=confidence_threshold(sensitivity),
        )


class SignalGate:
    """Pass/fail check on a detection. Thresholds are re-derived on every call."""

    def thresholds(self, sensitivity: float) -> GateThresholds:
        return GateThresholds.for_sensitivity(sensitivity)

    def accepts(self, result: DetectionResult, sensitivity: float) -> bool:
        limits = self.thresholds(sensitivity)
        return (
            result.frequency_hz > 0.0
            and result.confidence >= limits.confidence_threshold
            and result.amplitude >= limits.input_threshold
        )
