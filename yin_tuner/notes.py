from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Union

STANDARD_A4 = 440.0
A4_MIDI = 69
CENTS_PER_OCTAVE = 1200.0
SEMITONES_PER_OCTAVE = 12

MIN_REFERENCE_PITCH = 415.0
MAX_REFERENCE_PITCH = 466.0
MIN_CENT_OFFSET = -50.0
MAX_CENT_OFFSET = 50.0

IN_TUNE_CENTS = 2.0
CLOSE_CENTS = 5.0

MIN_TUNABLE_HZ = 20.0
MAX_TUNABLE_HZ = 5000.0

_SHARP_NAMES = ["C", "C♯", "D", "D♯", "E", "F", "F♯", "G", "G♯", "A", "A♯", "B"]
_FLAT_NAMES = ["C", "D♭", "D", "E♭", "E", "F", "G♭", "G", "A♭", "A", "B♭", "B"]
_SETTINGS_NAMES = [
    "C", "C#/Db", "D", "D#/Eb", "E", "F", "F#/Gb", "G", "G#/Ab", "A", "A#/Bb", "B",
]
_LETTER_CLASS = {"C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11}
_ACCIDENTALS = {"#": 1, "♯": 1, "b": -1, "♭": -1}


class Note(IntEnum):
    C = 0
    C_SHARP = 1
    D = 2
    D_SHARP = 3
    E = 4
    F = 5
    F_SHARP = 6
    G = 7
    G_SHARP = 8
    A = 9
    A_SHARP = 10
    B = 11

    @property
    def display_name(self) -> str:
        return _SHARP_NAMES[self.value]

    @property
    def flat_name(self) -> str:
        return _FLAT_NAMES[self.value]

    @property
    def settings_name(self) -> str:
        return _SETTINGS_NAMES[self.value]

    @classmethod
    def parse(cls, text: str) -> Note:
        """Parse "A", "C#", "Db", "F♯" and friends."""
        name = text.strip()
        if not name:
            raise ValueError("empty note name")
        letter = name[0].upper()
        if letter not in _LETTER_CLASS:
            raise ValueError(f"unknown note name: {text!r}")
        value = _LETTER_CLASS[letter]
        for ch in name[1:]:
            if ch not in _ACCIDENTALS:
                raise ValueError(f"unknown note name: {text!r}")
            value += _ACCIDENTALS[ch]
        return cls(value % SEMITONES_PER_OCTAVE)


@dataclass(frozen=True)
class Pitch:
    note: Note
    octave: int

    def __post_init__(self) -> None:
        # Accept plain ints for the note class.
        object.__setattr__(self, "note", Note(int(self.note) % SEMITONES_PER_OCTAVE))
        object.__setattr__(self, "octave", int(self.octave))

    @property
    def midi_number(self) -> int:
        return (self.octave + 1) * SEMITONES_PER_OCTAVE + int(self.note)

    @property
    def display_name(self) -> str:
        return f"{self.note.display_name}{self.octave}"

    @classmethod
    def from_midi(cls, midi_number: int) -> Pitch:
        midi_number = int(midi_number)
        # Floor division keeps the note class in 0..11 for negative numbers too.
        octave = midi_number // SEMITONES_PER_OCTAVE - 1
        return cls(Note(midi_number % SEMITONES_PER_OCTAVE), octave)

    def __str__(self) -> str:
        return self.display_name


DEFAULT_PITCH = Pitch(Note.A, 4)

NoteOffsets = Union[Mapping[Union[Note, int], float], Sequence[float]]


@dataclass(frozen=True)
class Calibration:
    """
    Reference pitch plus one cent offset per note class.

    Offsets live in a 12-slot tuple indexed by note class; a missing note
    means 0 cents.
    """

    reference_pitch_hz: float = STANDARD_A4
    note_offsets: tuple[float, ...] = field(default=(0.0,) * SEMITONES_PER_OCTAVE)

    def __post_init__(self) -> None:
        ref = float(self.reference_pitch_hz)
        if not (MIN_REFERENCE_PITCH <= ref <= MAX_REFERENCE_PITCH):
            raise ValueError(
                f"reference pitch must be within [{MIN_REFERENCE_PITCH}, {MAX_REFERENCE_PITCH}] Hz, got {ref}"
            )
        offsets = tuple(float(v) for v in self.note_offsets)
        if len(offsets) != SEMITONES_PER_OCTAVE:
            raise ValueError(f"expected {SEMITONES_PER_OCTAVE} note offsets, got {len(offsets)}")
        for i, cents in enumerate(offsets):
            if not (MIN_CENT_OFFSET <= cents <= MAX_CENT_OFFSET):
                raise ValueError(
                    f"offset for {Note(i).settings_name} must be within "
                    f"[{MIN_CENT_OFFSET}, {MAX_CENT_OFFSET}] cents, got {cents}"
                )
        object.__setattr__(self, "reference_pitch_hz", ref)
        object.__setattr__(self, "note_offsets", offsets)

    @classmethod
    def build(cls, reference_pitch_hz: float = STANDARD_A4, offsets: NoteOffsets | None = None) -> Calibration:
        return cls(reference_pitch_hz=reference_pitch_hz, note_offsets=_offsets_tuple(offsets))

    def offset(self, note: Note | int) -> float:
        return self.note_offsets[int(note) % SEMITONES_PER_OCTAVE]

    def with_offset(self, note: Note | int, cents: float) -> Calibration:
        offsets = list(self.note_offsets)
        offsets[int(note) % SEMITONES_PER_OCTAVE] = float(cents)
        return Calibration(self.reference_pitch_hz, tuple(offsets))

    def with_reference(self, reference_pitch_hz: float) -> Calibration:
        return Calibration(reference_pitch_hz, self.note_offsets)

    def offsets_by_note(self) -> dict[Note, float]:
        return {Note(i): cents for i, cents in enumerate(self.note_offsets) if cents != 0.0}


def _offsets_tuple(offsets: NoteOffsets | None) -> tuple[float, ...]:
    if offsets is None:
        return (0.0,) * SEMITONES_PER_OCTAVE
    if isinstance(offsets, Mapping):
        values = [0.0] * SEMITONES_PER_OCTAVE
        for key, cents in offsets.items():
            note = Note.parse(key) if isinstance(key, str) else Note(int(key))
            values[int(note)] = float(cents)
        return tuple(values)
    return tuple(float(v) for v in offsets)


def round_half_away(x: float) -> int:
    return int(math.copysign(math.floor(abs(x) + 0.5), x))


class TuningMapper:
    """
    Nearest equal-tempered pitch and signed cents deviation for a frequency.

    Positive cents mean sharp. The per-note offset moves the target, so a note
    calibrated +10 cents reads 0 when played 10 cents above equal temperament.
    """

    def __init__(self) -> None:
        self._last_pitch = DEFAULT_PITCH

    @property
    def last_pitch(self) -> Pitch:
        return self._last_pitch

    def reset(self) -> None:
        self._last_pitch = DEFAULT_PITCH

    def map(self, frequency_hz: float, calibration: Calibration) -> tuple[Pitch, float]:
        if not frequency_hz > 0.0:
            # The gate should never let this through.
            return self._last_pitch, 0.0
        pitch, base_cents = nearest_pitch(frequency_hz, calibration.reference_pitch_hz)
        self._last_pitch = pitch
        return pitch, base_cents - calibration.offset(pitch.note)


def nearest_pitch(frequency_hz: float, reference_pitch_hz: float = STANDARD_A4) -> tuple[Pitch, float]:
    if frequency_hz <= 0.0:
        return DEFAULT_PITCH, 0.0
    semitones = SEMITONES_PER_OCTAVE * math.log2(frequency_hz / reference_pitch_hz)
    rounded = round_half_away(semitones)
    cents = (semitones - rounded) * 100.0
    return Pitch.from_midi(rounded + A4_MIDI), cents


def frequency_for(pitch: Pitch, reference_pitch_hz: float = STANDARD_A4) -> float:
    distance = pitch.midi_number - A4_MIDI
    return float(reference_pitch_hz * 2.0 ** (distance / SEMITONES_PER_OCTAVE))


def cents_between(detected_hz: float, target_hz: float) -> float:
    if detected_hz <= 0.0 or target_hz <= 0.0:
        return 0.0
    return CENTS_PER_OCTAVE * math.log2(detected_hz / target_hz)


def cents_from_target(
    frequency_hz: float,
    target: Pitch,
    reference_pitch_hz: float = STANDARD_A4,
    note_offset: float = 0.0,
) -> float:
    target_hz = frequency_for(target, reference_pitch_hz) * 2.0 ** (note_offset / CENTS_PER_OCTAVE)
    return cents_between(frequency_hz, target_hz)


def is_valid_frequency(frequency_hz: float) -> bool:
    return MIN_TUNABLE_HZ <= frequency_hz <= MAX_TUNABLE_HZ


def is_near_target(detected: Pitch, target: Pitch, tolerance: int = 1) -> bool:
    return abs(detected.midi_number - target.midi_number) <= tolerance


def format_cents(cents: float) -> str:
    rounded = round_half_away(cents)
    return f"+{rounded}" if rounded > 0 else str(rounded)


def format_frequency(frequency_hz: float) -> str:
    return f"{frequency_hz:.1f} Hz"
