from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from yin_tuner.notes import STANDARD_A4, Note, Pitch, cents_from_target


class InstrumentType(str, Enum):
    CHROMATIC = "Chromatic"
    ACOUSTIC_GUITAR = "Acoustic Guitar"
    ELECTRIC_GUITAR = "Electric Guitar"
    ELECTRIC_BASS = "Electric Bass"
    BANJO = "Banjo"
    MANDOLIN = "Mandolin"
    VIOLIN = "Violin"


@dataclass(frozen=True)
class StringTuning:
    pitch: Pitch
    cent_offset: float = 0.0

    @classmethod
    def of(cls, note: Note, octave: int, cent_offset: float = 0.0) -> StringTuning:
        return cls(Pitch(note, octave), cent_offset)


@dataclass(frozen=True)
class Instrument:
    type: InstrumentType
    name: str
    strings: tuple[StringTuning, ...] = ()
    built_in: bool = True


def _strings(*names: str) -> tuple[StringTuning, ...]:
    # "E4" -> E, 4; listed highest string first
    out = []
    for name in names:
        out.append(StringTuning.of(Note.parse(name[:-1]), int(name[-1])))
    return tuple(out)


CHROMATIC = Instrument(InstrumentType.CHROMATIC, "Chromatic")
ACOUSTIC_GUITAR = Instrument(
    InstrumentType.ACOUSTIC_GUITAR, "Acoustic Guitar", _strings("E4", "B3", "G3", "D3", "A2", "E2")
)
ELECTRIC_GUITAR = Instrument(
    InstrumentType.ELECTRIC_GUITAR, "Electric Guitar", _strings("E4", "B3", "G3", "D3", "A2", "E2")
)
ELECTRIC_BASS = Instrument(InstrumentType.ELECTRIC_BASS, "Electric Bass", _strings("G2", "D2", "A1", "E1"))
# Open G; the 5th (short) string is the high G.
BANJO = Instrument(InstrumentType.BANJO, "Banjo (5-string)", _strings("D4", "B3", "G3", "D3", "G4"))
MANDOLIN = Instrument(InstrumentType.MANDOLIN, "Mandolin", _strings("E5", "A4", "D4", "G3"))
VIOLIN = Instrument(InstrumentType.VIOLIN, "Violin", _strings("E5", "A4", "D4", "G3"))

INSTRUMENTS: dict[InstrumentType, Instrument] = {
    inst.type: inst
    for inst in (CHROMATIC, ACOUSTIC_GUITAR, ELECTRIC_GUITAR, ELECTRIC_BASS, BANJO, MANDOLIN, VIOLIN)
}


def preset_for(instrument_type: InstrumentType | str) -> Instrument:
    try:
        return INSTRUMENTS[InstrumentType(instrument_type)]
    except ValueError:
        return CHROMATIC


def target_string(instrument: Instrument, detected: Pitch) -> StringTuning | None:
    """Closest string to ``detected`` by semitone distance; None in chromatic mode."""
    if not instrument.strings:
        return None
    return min(instrument.strings, key=lambda s: abs(s.pitch.midi_number - detected.midi_number))


class ReferencePitchPreset(float, Enum):
    BAROQUE = 415.0
    VERDI = 432.0
    STANDARD = 440.0
    ORCHESTRA_LOW = 442.0
    ORCHESTRA_HIGH = 444.0

    @property
    def display_name(self) -> str:
        labels = {
            ReferencePitchPreset.BAROQUE: "Baroque",
            ReferencePitchPreset.VERDI: "Verdi",
            ReferencePitchPreset.STANDARD: "Standard",
            ReferencePitchPreset.ORCHESTRA_LOW: "Orchestra",
            ReferencePitchPreset.ORCHESTRA_HIGH: "Orchestra+",
        }
        return f"{self.short_name} ({labels[self]})"

    @property
    def short_name(self) -> str:
        return f"A = {int(self.value)} Hz"


def cents_to_string(frequency_hz: float, string: StringTuning, reference_pitch_hz: float = STANDARD_A4) -> float:
    return cents_from_target(frequency_hz, string.pitch, reference_pitch_hz, string.cent_offset)
