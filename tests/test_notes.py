from __future__ import annotations

import pytest

from yin_tuner.notes import (
    Calibration,
    Note,
    Pitch,
    TuningMapper,
    cents_between,
    cents_from_target,
    format_cents,
    format_frequency,
    frequency_for,
    is_near_target,
    is_valid_frequency,
    nearest_pitch,
    round_half_away,
)


def test_a4_round_trip_at_440() -> None:
    a4 = Pitch(Note.A, 4)
    mapper = TuningMapper()

    pitch, cents = mapper.map(frequency_for(a4, 440.0), Calibration())

    assert pitch == a4
    assert cents == pytest.approx(0.0, abs=1e-9)


@pytest.mark.parametrize("midi", [24, 40, 45, 60, 69, 76, 88, 100])
def test_equal_tempered_pitches_map_back_to_themselves(midi: int) -> None:
    pitch = Pitch.from_midi(midi)
    mapped, cents = nearest_pitch(frequency_for(pitch, 442.0), 442.0)
    assert mapped == pitch
    assert cents == pytest.approx(0.0, abs=1e-6)


def test_midi_number_and_back() -> None:
    assert Pitch(Note.A, 4).midi_number == 69
    assert Pitch(Note.C, 4).midi_number == 60
    assert Pitch.from_midi(61) == Pitch(Note.C_SHARP, 4)
    assert Pitch.from_midi(0) == Pitch(Note.C, -1)
    # Negative MIDI numbers still give a note class in 0..11.
    assert Pitch.from_midi(-1) == Pitch(Note.B, -2)


def test_sign_convention_sharp_is_positive() -> None:
    _, sharp = nearest_pitch(445.0)
    _, flat = nearest_pitch(435.0)
    assert sharp > 0
    assert flat < 0
    assert sharp == pytest.approx(cents_between(445.0, 440.0))


def test_quarter_tone_boundary_picks_the_nearer_note() -> None:
    pitch, cents = nearest_pitch(451.0)
    assert pitch == Pitch(Note.A, 4)
    assert cents == pytest.approx(42.75, abs=0.05)

    # +51.6 cents over A4 is nearer to A#4.
    pitch, cents = nearest_pitch(453.3)
    assert pitch == Pitch(Note.A_SHARP, 4)
    assert cents == pytest.approx(-48.45, abs=0.1)


def test_half_semitone_ties_round_away_from_zero() -> None:
    assert round_half_away(0.5) == 1
    assert round_half_away(-0.5) == -1
    assert round_half_away(2.4) == 2
    assert round_half_away(-2.6) == -3


def test_note_offset_shifts_the_target() -> None:
    mapper = TuningMapper()
    calibration = Calibration.build(440.0, {Note.A: 10.0})

    pitch, cents = mapper.map(440.0, calibration)
    assert pitch == Pitch(Note.A, 4)
    assert cents == pytest.approx(-10.0)

    # Offsets for other notes do not leak.
    _, e_cents = mapper.map(frequency_for(Pitch(Note.E, 4)), calibration)
    assert e_cents == pytest.approx(0.0, abs=1e-9)


def test_reference_pitch_moves_every_note() -> None:
    mapper = TuningMapper()
    pitch, cents = mapper.map(432.0, Calibration(reference_pitch_hz=432.0))
    assert pitch == Pitch(Note.A, 4)
    assert cents == pytest.approx(0.0, abs=1e-9)


def test_non_positive_frequency_keeps_previous_pitch() -> None:
    mapper = TuningMapper()
    mapper.map(frequency_for(Pitch(Note.G, 3)), Calibration())

    pitch, cents = mapper.map(0.0, Calibration())

    assert pitch == Pitch(Note.G, 3)
    assert cents == 0.0


def test_calibration_limits() -> None:
    with pytest.raises(ValueError):
        Calibration(reference_pitch_hz=400.0)
    with pytest.raises(ValueError):
        Calibration(reference_pitch_hz=470.0)
    with pytest.raises(ValueError):
        Calibration.build(440.0, {Note.C: 60.0})
    with pytest.raises(ValueError):
        Calibration.build(440.0, [0.0] * 11)
    assert Calibration(reference_pitch_hz=415.0).reference_pitch_hz == 415.0
    assert Calibration(reference_pitch_hz=466.0).reference_pitch_hz == 466.0


def test_calibration_accepts_names_ints_and_sequences() -> None:
    by_name = Calibration.build(440.0, {"F#": -3.5, "Bb": 2.0})
    by_int = Calibration.build(440.0, {6: -3.5, 10: 2.0})
    seq = [0.0] * 12
    seq[6], seq[10] = -3.5, 2.0

    assert by_name == by_int == Calibration.build(440.0, seq)
    assert by_name.offset(Note.F_SHARP) == -3.5
    assert by_name.offset(Note.C) == 0.0
    assert by_name.offsets_by_note() == {Note.F_SHARP: -3.5, Note.A_SHARP: 2.0}


def test_calibration_is_replaced_not_mutated() -> None:
    base = Calibration()
    tweaked = base.with_offset(Note.E, 4.0).with_reference(442.0)
    assert base.offset(Note.E) == 0.0
    assert base.reference_pitch_hz == 440.0
    assert tweaked.offset(Note.E) == 4.0
    assert tweaked.reference_pitch_hz == 442.0


def test_note_names() -> None:
    assert Note.parse("C#") is Note.C_SHARP
    assert Note.parse("Db") is Note.C_SHARP
    assert Note.parse("f♯") is Note.F_SHARP
    assert Note.parse("B#") is Note.C
    assert Note.A_SHARP.display_name == "A♯"
    assert Note.A_SHARP.flat_name == "B♭"
    assert Note.A_SHARP.settings_name == "A#/Bb"
    assert Pitch(Note.C_SHARP, 3).display_name == "C♯3"
    with pytest.raises(ValueError):
        Note.parse("H")
    with pytest.raises(ValueError):
        Note.parse("")


def test_tuning_math_helpers() -> None:
    assert frequency_for(Pitch(Note.A, 5)) == pytest.approx(880.0)
    assert frequency_for(Pitch(Note.C, 4)) == pytest.approx(261.6256, abs=1e-3)
    assert cents_between(880.0, 440.0) == pytest.approx(1200.0)
    assert cents_between(0.0, 440.0) == 0.0
    assert cents_from_target(440.0, Pitch(Note.A, 4), note_offset=5.0) == pytest.approx(-5.0)
    assert is_valid_frequency(20.0)
    assert not is_valid_frequency(5000.1)
    assert is_near_target(Pitch(Note.A, 4), Pitch(Note.G_SHARP, 4))
    assert not is_near_target(Pitch(Note.A, 4), Pitch(Note.G, 4))
    assert format_cents(4.6) == "+5"
    assert format_cents(-12.2) == "-12"
    assert format_cents(0.2) == "0"
    assert format_frequency(440.04) == "440.0 Hz"
