from __future__ import annotations

import argparse
import sys
import time

from yin_tuner.engine import TunerConfig, TunerEngine
from yin_tuner.gate import DEFAULT_SENSITIVITY
from yin_tuner.logging_config import setup_logging
from yin_tuner.notes import STANDARD_A4, Calibration, Note, format_cents, format_frequency
from yin_tuner.presets import InstrumentType, cents_to_string, preset_for, target_string
from yin_tuner.smoothing import TuningState

_METER_WIDTH = 20


def _parse_offset(text: str) -> tuple[Note, float]:
    name, sep, cents = text.partition("=")
    if not sep:
        raise argparse.ArgumentTypeError(f"expected NOTE=CENTS, got {text!r}")
    try:
        return Note.parse(name), float(cents)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="yin-tuner", description="Chromatic tuner for the default microphone.")
    parser.add_argument("--sample-rate", type=int, default=44100)
    parser.add_argument("--block-size", type=int, default=1024, help="capture block size in samples")
    parser.add_argument("--window-size", type=int, default=4096, help="analysis window in samples (even)")
    parser.add_argument("--reference", type=float, default=STANDARD_A4, help="A4 reference pitch in Hz")
    parser.add_argument("--sensitivity", type=float, default=DEFAULT_SENSITIVITY, help="0 (strict) .. 1 (lenient)")
    parser.add_argument(
        "--offset",
        type=_parse_offset,
        action="append",
        default=[],
        metavar="NOTE=CENTS",
        help="per-note calibration offset, e.g. --offset F#=-3.5 (repeatable)",
    )
    parser.add_argument(
        "--instrument",
        choices=[t.value for t in InstrumentType],
        default=InstrumentType.CHROMATIC.value,
    )
    parser.add_argument("--refresh-hz", type=float, default=15.0)
    parser.add_argument("--device", default=None, help="input device index or part of its name")
    parser.add_argument("--list-devices", action="store_true", help="list input devices and exit")
    parser.add_argument("--log-level", default=None)
    return parser


def render(state: TuningState, instrument_type: InstrumentType, reference_pitch_hz: float) -> str:
    filled = int(round(min(1.0, state.input_level * 10.0) * _METER_WIDTH))
    meter = "#" * filled + "." * (_METER_WIDTH - filled)
    if not state.is_valid:
        return f"{state.pitch.display_name:>4}   ---         [{meter}]"

    arrow = {-1: "flat ", 0: " OK  ", 1: "sharp"}[state.tuning_direction]
    line = (
        f"{state.pitch.display_name:>4} {format_cents(state.cents):>5} c {arrow} "
        f"{format_frequency(state.frequency_hz):>10} [{meter}]"
    )
    string = target_string(preset_for(instrument_type), state.pitch)
    if string is not None:
        to_string = cents_to_string(state.frequency_hz, string, reference_pitch_hz)
        line += f"  string {string.pitch.display_name} {format_cents(to_string)} c"
    return line


def _list_devices() -> int:
    from yin_tuner.audio import input_devices

    for device in input_devices():
        print(f"{device.index:>3}  {device.name}  ({device.channels} ch, {device.default_sample_rate:.0f} Hz)")
    return 0


def _device_arg(text: str | None) -> int | str | None:
    if text is None:
        return None
    return int(text) if text.isdigit() else text


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    if args.list_devices:
        return _list_devices()

    try:
        calibration = Calibration.build(args.reference, dict(args.offset))
        engine = TunerEngine(
            TunerConfig(sample_rate=args.sample_rate, window_size=args.window_size),
            calibration=calibration,
            sensitivity=args.sensitivity,
        )
    except ValueError as exc:
        print(f"yin-tuner: {exc}", file=sys.stderr)
        return 2

    # PortAudio is only needed once we actually open the microphone.
    from yin_tuner.audio import CaptureConfig, MicrophoneCapture

    capture = MicrophoneCapture(
        engine.push,
        CaptureConfig(
            sample_rate=args.sample_rate,
            block_size=args.block_size,
            device=_device_arg(args.device),
        ),
    )
    instrument_type = InstrumentType(args.instrument)
    period = 1.0 / max(1.0, float(args.refresh_hz))

    try:
        with capture:
            while True:
                line = render(engine.current_state(), instrument_type, calibration.reference_pitch_hz)
                sys.stdout.write("\r" + line.ljust(72))
                sys.stdout.flush()
                time.sleep(period)
    except KeyboardInterrupt:
        sys.stdout.write("\n")
    finally:
        engine.reset()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
