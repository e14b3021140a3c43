"""
yin_tuner - real-time monophonic tuner core built on the YIN pitch estimator
"""

from .accumulator import SampleAccumulator
from .engine import TunerConfig, TunerEngine, analyze_signal
from .gate import GateThresholds, SignalGate, confidence_threshold, input_threshold
from .notes import Calibration, Note, Pitch, TuningMapper, nearest_pitch
from .pitch import DetectionResult, TunerConfigError, YinConfig, YinPitchDetector
from .smoothing import DetectorPhase, DisplaySmoother, TuningState

__version__ = "0.1.0"
__all__ = [
    "TunerEngine",
    "TunerConfig",
    "TunerConfigError",
    "analyze_signal",
    "SampleAccumulator",
    "YinPitchDetector",
    "YinConfig",
    "DetectionResult",
    "SignalGate",
    "GateThresholds",
    "input_threshold",
    "confidence_threshold",
    "TuningMapper",
    "Calibration",
    "Note",
    "Pitch",
    "nearest_pitch",
    "DisplaySmoother",
    "DetectorPhase",
    "TuningState",
]
