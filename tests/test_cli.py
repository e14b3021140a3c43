from __future__ import annotations

import argparse

import pytest

from yin_tuner.cli import _device_arg, _parse_offset, build_parser, main, render
from yin_tuner.notes import Note, Pitch
from yin_tuner.presets import InstrumentType
from yin_tuner.smoothing import DetectorPhase, TuningState


def _state(hz: float, pitch: Pitch, cents: float) -> TuningState:
    return TuningState(
        frequency_hz=hz,
        pitch=pitch,
        cents=cents,
        confidence=0.95,
        amplitude=0.1,
        is_valid=True,
        raw_cents=cents,
        input_level=0.05,
        phase=DetectorPhase.VALID,
    )


def test_parse_offset() -> None:
    assert _parse_offset("F#=-3.5") == (Note.F_SHARP, -3.5)
    with pytest.raises(argparse.ArgumentTypeError):
        _parse_offset("F#")
    with pytest.raises(argparse.ArgumentTypeError):
        _parse_offset("H=2")


def test_parser_defaults() -> None:
    args = build_parser().parse_args(["--offset", "Bb=2", "--instrument", "Violin", "--device", "3"])
    assert args.window_size == 4096
    assert args.offset == [(Note.A_SHARP, 2.0)]
    assert args.instrument == "Violin"
    assert not args.list_devices
    assert _device_arg(args.device) == 3
    assert _device_arg("USB Audio") == "USB Audio"
    assert _device_arg(None) is None


def test_render_lines() -> None:
    idle = render(TuningState.empty(), InstrumentType.CHROMATIC, 440.0)
    assert "---" in idle

    line = render(_state(110.5, Pitch(Note.A, 2), 7.8), InstrumentType.ACOUSTIC_GUITAR, 440.0)
    assert "A2" in line
    assert "sharp" in line
    assert "string A2" in line

    flat = render(_state(439.0, Pitch(Note.A, 4), -3.9), InstrumentType.CHROMATIC, 440.0)
    assert "flat" in flat
    assert "string" not in flat


def test_main_rejects_bad_calibration(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--reference", "500"]) == 2
    assert "yin-tuner:" in capsys.readouterr().err


def test_main_rejects_odd_window(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--window-size", "4095"]) == 2
    assert "even" in capsys.readouterr().err
