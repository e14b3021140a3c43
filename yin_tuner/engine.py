from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

import numpy as np

from yin_tuner.accumulator import SampleAccumulator
from yin_tuner.gate import DEFAULT_SENSITIVITY, GateThresholds, SignalGate, clamp_sensitivity
from yin_tuner.notes import STANDARD_A4, Calibration, NoteOffsets, TuningMapper
from yin_tuner.pitch import DetectionResult, TunerConfigError, YinConfig, YinPitchDetector, rms
from yin_tuner.smoothing import (
    CENTS_SMOOTHING,
    LEVEL_SMOOTHING,
    DetectorPhase,
    DisplaySmoother,
    TuningState,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TunerConfig:
    sample_rate: int = 44100
    window_size: int = 4096
    yin_threshold: float = 0.15
    cents_smoothing: float = CENTS_SMOOTHING
    level_smoothing: float = LEVEL_SMOOTHING

    def __post_init__(self) -> None:
        for name in ("cents_smoothing", "level_smoothing"):
            alpha = getattr(self, name)
            if not (0.0 <= alpha < 1.0):
                raise TunerConfigError(f"{name} must be in [0, 1), got {alpha}")
        # Sample rate and window checks live with the detector config.
        self.yin()

    def yin(self) -> YinConfig:
        return YinConfig(
            sample_rate=int(self.sample_rate),
            window_size=int(self.window_size),
            threshold=float(self.yin_threshold),
        )

    @property
    def window_seconds(self) -> float:
        return self.window_size / float(self.sample_rate)


@dataclass(frozen=True)
class _Settings:
    calibration: Calibration
    sensitivity: float


class TunerEngine:
    """
    Streaming tuner core: sample blocks in, one published TuningState out.

    ``push`` is meant to be called from a single capture thread; it runs the
    whole pipeline (accumulate, YIN, gate, map, smooth) inline and swaps in a
    new immutable snapshot after every analysis window. ``current_state`` can
    be called from any other thread and always sees a complete snapshot.

    Calibration and sensitivity may be changed from any thread. A change is
    picked up by the next window to start, never by one already running.
    """

    def __init__(
        self,
        config: TunerConfig | None = None,
        *,
        calibration: Calibration | None = None,
        sensitivity: float = DEFAULT_SENSITIVITY,
    ) -> None:
        self._cfg = config or TunerConfig()
        self._detector = YinPitchDetector(self._cfg.yin())
        self._accumulator = SampleAccumulator(self._cfg.window_size)
        self._gate = SignalGate()
        self._mapper = TuningMapper()
        self._smoother = DisplaySmoother(self._cfg.cents_smoothing, self._cfg.level_smoothing)

        self._settings = _Settings(
            calibration=calibration or Calibration(),
            sensitivity=clamp_sensitivity(sensitivity),
        )
        self._state = TuningState.empty()
        self._windows = 0
        self._last_detection: DetectionResult | None = None

        # Guards the published snapshot and the settings; held only to swap references.
        self._lock = threading.Lock()
        # Serialises push() against reset().
        self._stream_lock = threading.Lock()

        logger.info(
            "Tuner engine ready: %d Hz, %d-sample windows (%.1f ms), lowest pitch %.1f Hz",
            self._cfg.sample_rate,
            self._cfg.window_size,
            1000.0 * self._cfg.window_seconds,
            self._detector.config.min_detectable_hz,
        )

    @property
    def config(self) -> TunerConfig:
        return self._cfg

    @property
    def sample_rate(self) -> int:
        return self._cfg.sample_rate

    @property
    def window_size(self) -> int:
        return self._cfg.window_size

    @property
    def calibration(self) -> Calibration:
        with self._lock:
            return self._settings.calibration

    @property
    def sensitivity(self) -> float:
        with self._lock:
            return self._settings.sensitivity

    @property
    def thresholds(self) -> GateThresholds:
        return GateThresholds.for_sensitivity(self.sensitivity)

    @property
    def phase(self) -> DetectorPhase:
        return self.current_state().phase

    @property
    def input_level(self) -> float:
        return self.current_state().input_level

    @property
    def windows_processed(self) -> int:
        return self._windows

    @property
    def last_detection(self) -> DetectionResult | None:
        return self._last_detection

    def set_calibration(
        self,
        reference_pitch_hz: float = STANDARD_A4,
        note_offsets: NoteOffsets | None = None,
    ) -> Calibration:
        calibration = Calibration.build(reference_pitch_hz, note_offsets)
        self.apply_calibration(calibration)
        return calibration

    def apply_calibration(self, calibration: Calibration) -> None:
        with self._lock:
            self._settings = _Settings(calibration=calibration, sensitivity=self._settings.sensitivity)
        logger.info(
            "Calibration set: A4=%.1f Hz, offsets=%s",
            calibration.reference_pitch_hz,
            {note.settings_name: cents for note, cents in calibration.offsets_by_note().items()},
        )

    def set_sensitivity(self, value: float) -> float:
        sensitivity = clamp_sensitivity(value)
        with self._lock:
            self._settings = _Settings(calibration=self._settings.calibration, sensitivity=sensitivity)
        logger.info("Sensitivity set to %.2f", sensitivity)
        return sensitivity

    def current_state(self) -> TuningState:
        with self._lock:
            return self._state

    def push(self, samples: np.ndarray) -> int:
        """
        Feed one block of mono samples; returns how many windows were analysed.

        Short blocks are simply buffered. A block holding several windows'
        worth of audio is analysed window by window, in order, before this
        returns.
        """
        x = np.asarray(samples, dtype=np.float32)
        if x.ndim != 1:
            raise ValueError(f"expected a 1-D sample block, got shape {x.shape}")
        if x.size == 0:
            return 0
        finite = np.isfinite(x)
        if not finite.all():
            # NaN/inf would stick in the smoothed level forever; treat them as silence.
            logger.debug("Zeroed %d non-finite samples", int(x.size - np.count_nonzero(finite)))
            x = np.where(finite, x, np.float32(0.0))

        with self._stream_lock:
            self._smoother.update_level(rms(x))
            self._accumulator.push(x)
            processed = 0
            for window in self._accumulator.drain():
                self._publish(self._process_window(window))
                processed += 1
            if processed == 0:
                self._publish(self._smoother.relevel(self.current_state()))
            return processed

    def reset(self) -> None:
        with self._stream_lock:
            dropped = self._accumulator.pending
            self._accumulator.clear()
            self._mapper.reset()
            self._smoother.reset()
            self._last_detection = None
            self._publish(TuningState.empty())
        logger.info("Tuner reset (%d buffered samples dropped)", dropped)

    def _process_window(self, window: np.ndarray) -> TuningState:
        with self._lock:
            settings = self._settings
        limits = GateThresholds.for_sensitivity(settings.sensitivity)
        result = self._detector.detect(window, input_threshold=limits.input_threshold)
        self._last_detection = result
        self._windows += 1

        before = self._smoother.phase
        if self._gate.accepts(result, settings.sensitivity):
            pitch, cents = self._mapper.map(result.frequency_hz, settings.calibration)
            state = self._smoother.accept(result, pitch, cents)
        else:
            state = self._smoother.reject(result)

        if state.phase is not before:
            logger.debug(
                "Phase %s -> %s: %.2f Hz, confidence %.2f, rms %.4f",
                before.value,
                state.phase.value,
                result.frequency_hz,
                result.confidence,
                result.amplitude,
            )
        return state

    def _publish(self, state: TuningState) -> None:
        with self._lock:
            self._state = state


def analyze_signal(
    samples: np.ndarray,
    config: TunerConfig | None = None,
    *,
    calibration: Calibration | None = None,
    sensitivity: float = DEFAULT_SENSITIVITY,
) -> list[tuple[float, TuningState]]:
    """Run a whole recording through a fresh engine; returns (window start seconds, state) per window."""
    engine = TunerEngine(config, calibration=calibration, sensitivity=sensitivity)
    audio = np.asarray(samples, dtype=np.float32)
    step = engine.window_size
    out: list[tuple[float, TuningState]] = []
    for i in range(0, audio.size - step + 1, step):
        engine.push(audio[i : i + step])
        out.append((i / float(engine.sample_rate), engine.current_state()))
    return out


__all__ = ["TunerConfig", "TunerConfigError", "TunerEngine", "analyze_signal"]
