from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from yin_tuner.notes import MAX_CENT_OFFSET, MAX_REFERENCE_PITCH, MIN_CENT_OFFSET, MIN_REFERENCE_PITCH

# The YIN pass runs inline on the event loop; the upper bound caps its cost per window.
MIN_WINDOW_SIZE = 256
MAX_WINDOW_SIZE = 16_384

CentOffset = Annotated[float, Field(ge=MIN_CENT_OFFSET, le=MAX_CENT_OFFSET)]


class _Model(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class InitMessage(_Model):
    type: Literal["init"]
    sample_rate: int = Field(alias="sampleRate", ge=8_000, le=192_000)
    window_size: int = Field(alias="windowSize", default=4096, ge=MIN_WINDOW_SIZE, le=MAX_WINDOW_SIZE)
    reference_pitch: float = Field(
        alias="referencePitch", default=440.0, ge=MIN_REFERENCE_PITCH, le=MAX_REFERENCE_PITCH
    )
    note_offsets: dict[str, CentOffset] = Field(alias="noteOffsets", default_factory=dict)
    sensitivity: float = Field(default=0.5, ge=0.0, le=1.0)


class SetCalibrationMessage(_Model):
    type: Literal["set_calibration"]
    reference_pitch: float = Field(
        alias="referencePitch", default=440.0, ge=MIN_REFERENCE_PITCH, le=MAX_REFERENCE_PITCH
    )
    note_offsets: dict[str, CentOffset] = Field(alias="noteOffsets", default_factory=dict)


class SetSensitivityMessage(_Model):
    type: Literal["set_sensitivity"]
    # Out-of-range values are clamped by the engine, not rejected.
    value: float


class ResetMessage(_Model):
    type: Literal["reset"]


class TransportPingMessage(_Model):
    type: Literal["transport_ping"]
    client_ts: float = Field(alias="clientTs")


class StatusEvent(_Model):
    type: Literal["status"] = "status"
    message: str


class ErrorEvent(_Model):
    type: Literal["error"] = "error"
    code: str
    message: str


class TuningUpdateEvent(_Model):
    type: Literal["tuning_update"] = "tuning_update"
    t: float
    hz: float
    note: str
    octave: int
    midi: int
    cents: float
    confidence: float
    amplitude: float
    level: float
    valid: bool
    in_tune: bool = Field(alias="inTune")
    direction: int = Field(ge=-1, le=1)
    phase: Literal["idle", "valid", "invalid"]


class AnalyzedWindow(_Model):
    t: float
    hz: float
    note: str | None
    cents: float | None
    confidence: float
    amplitude: float
    valid: bool


class AnalysisReport(_Model):
    sample_rate: int = Field(alias="sampleRate")
    window_size: int = Field(alias="windowSize")
    duration: float
    median_hz: float | None = Field(alias="medianHz", default=None)
    note: str | None = None
    cents: float | None = None
    windows: list[AnalyzedWindow]
