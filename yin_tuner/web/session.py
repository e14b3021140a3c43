from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Mapping

import numpy as np

from yin_tuner.engine import TunerConfig, TunerEngine
from yin_tuner.notes import Calibration

logger = logging.getLogger(__name__)


class TunerSession:
    """
    One connected client: its own engine, its own sample clock.

    The client's sample rate is fixed by ``init``; changing it rebuilds the
    engine because YIN buffers and lag-to-Hz conversion depend on it.
    """

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        self.engine = TunerEngine()
        self._samples_seen = 0

    @property
    def clock(self) -> float:
        return self._samples_seen / float(self.engine.sample_rate)

    def init(
        self,
        *,
        sample_rate: int,
        window_size: int,
        reference_pitch: float,
        note_offsets: Mapping[str, float],
        sensitivity: float,
    ) -> None:
        config = TunerConfig(sample_rate=int(sample_rate), window_size=int(window_size))
        calibration = Calibration.build(reference_pitch, dict(note_offsets))
        self.engine = TunerEngine(config, calibration=calibration, sensitivity=sensitivity)
        self._samples_seen = 0
        logger.info("Session %s initialised at %d Hz", self.session_id, config.sample_rate)

    def set_calibration(self, *, reference_pitch: float, note_offsets: Mapping[str, float]) -> None:
        self.engine.set_calibration(reference_pitch, dict(note_offsets))

    def set_sensitivity(self, value: float) -> float:
        return self.engine.set_sensitivity(value)

    def reset(self) -> None:
        self.engine.reset()

    def process_audio_bytes(self, payload: bytes) -> list[dict[str, object]]:
        if not payload:
            return []
        # Raises ValueError when the payload is not whole float32 samples.
        frame = np.frombuffer(payload, dtype=np.float32)
        if frame.size == 0:
            return []

        processed = self.engine.push(frame)
        self._samples_seen += int(frame.size)
        if processed == 0:
            return []
        event = self.engine.current_state().to_event()
        event["t"] = self.clock
        return [event]


class SessionManager:
    def __init__(self) -> None:
        self._sessions: dict[str, TunerSession] = {}
        self._lock = threading.Lock()

    def create(self) -> TunerSession:
        session_id = uuid.uuid4().hex
        session = TunerSession(session_id)
        with self._lock:
            self._sessions[session_id] = session
        return session

    def remove(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    @property
    def active_count(self) -> int:
        with self._lock:
            return len(self._sessions)
