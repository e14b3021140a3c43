from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from yin_tuner.notes import CLOSE_CENTS, DEFAULT_PITCH, IN_TUNE_CENTS, Pitch
from yin_tuner.pitch import DetectionResult

CENTS_SMOOTHING = 0.3
LEVEL_SMOOTHING = 0.3


class DetectorPhase(str, Enum):
    IDLE = "idle"
    VALID = "valid"
    INVALID = "invalid"


@dataclass(frozen=True)
class TuningState:
    frequency_hz: float
    pitch: Pitch
    cents: float
    confidence: float
    amplitude: float
    is_valid: bool
    raw_cents: float = 0.0
    input_level: float = 0.0
    phase: DetectorPhase = DetectorPhase.IDLE

    @classmethod
    def empty(cls) -> TuningState:
        return cls(
            frequency_hz=0.0,
            pitch=DEFAULT_PITCH,
            cents=0.0,
            confidence=0.0,
            amplitude=0.0,
            is_valid=False,
        )

    @property
    def is_in_tune(self) -> bool:
        return self.is_valid and abs(self.cents) <= IN_TUNE_CENTS

    @property
    def is_close(self) -> bool:
        return self.is_valid and abs(self.cents) <= CLOSE_CENTS

    @property
    def tuning_direction(self) -> int:
        # -1 flat, 0 in tune (or nothing to tune), +1 sharp
        if not self.is_valid or abs(self.cents) <= IN_TUNE_CENTS:
            return 0
        return 1 if self.cents > 0 else -1

    def to_event(self) -> dict[str, object]:
        return {
            "type": "tuning_update",
            "hz": float(self.frequency_hz),
            "note": self.pitch.note.display_name,
            "octave": int(self.pitch.octave),
            "midi": int(self.pitch.midi_number),
            "cents": float(self.cents),
            "confidence": float(self.confidence),
            "amplitude": float(self.amplitude),
            "level": float(self.input_level),
            "valid": bool(self.is_valid),
            "inTune": bool(self.is_in_tune),
            "direction": int(self.tuning_direction),
            "phase": self.phase.value,
        }


def exponential_smooth(previous: float, raw: float, alpha: float) -> float:
    return previous * alpha + raw * (1.0 - alpha)


class DisplaySmoother:
    """
    Turns per-window gate outcomes into display-ready tuning states.

    Cents are smoothed only while the signal is valid. An invalid window shows
    0 cents straight away but leaves the accumulator alone, so the next valid
    window carries on from where the display left off. The input level is
    smoothed on its own cadence, once per incoming audio block.
    """

    def __init__(self, cents_alpha: float = CENTS_SMOOTHING, level_alpha: float = LEVEL_SMOOTHING) -> None:
        self._cents_alpha = float(cents_alpha)
        self._level_alpha = float(level_alpha)
        self._smoothed_cents = 0.0
        self._level = 0.0
        self._pitch = DEFAULT_PITCH
        self._phase = DetectorPhase.IDLE

    @property
    def phase(self) -> DetectorPhase:
        return self._phase

    @property
    def smoothed_cents(self) -> float:
        return self._smoothed_cents

    @property
    def level(self) -> float:
        return self._level

    def update_level(self, block_rms: float) -> float:
        self._level = exponential_smooth(self._level, float(block_rms), self._level_alpha)
        return self._level

    def accept(self, result: DetectionResult, pitch: Pitch, raw_cents: float) -> TuningState:
        self._smoothed_cents = exponential_smooth(self._smoothed_cents, float(raw_cents), self._cents_alpha)
        self._pitch = pitch
        self._phase = DetectorPhase.VALID
        return TuningState(
            frequency_hz=float(result.frequency_hz),
            pitch=pitch,
            cents=self._smoothed_cents,
            confidence=float(result.confidence),
            amplitude=float(result.amplitude),
            is_valid=True,
            raw_cents=float(raw_cents),
            input_level=self._level,
            phase=self._phase,
        )

    def reject(self, result: DetectionResult) -> TuningState:
        self._phase = DetectorPhase.INVALID
        return TuningState(
            frequency_hz=0.0,
            pitch=self._pitch,
            cents=0.0,
            confidence=float(result.confidence),
            amplitude=float(result.amplitude),
            is_valid=False,
            input_level=self._level,
            phase=self._phase,
        )

    def relevel(self, state: TuningState) -> TuningState:
        return replace(state, input_level=self._level)

    def reset(self) -> None:
        self._smoothed_cents = 0.0
        self._level = 0.0
        self._pitch = DEFAULT_PITCH
        self._phase = DetectorPhase.IDLE
