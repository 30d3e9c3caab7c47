import re

import numpy as np
import pytest

from syncopate.errors import InvalidNoteName, TrainingError
from syncopate.theory import (
	A4_FREQ,
	A4_MIDI,
	CHORD_TYPES,
	INTERVALS,
	chord_arity,
	chord_notes,
	interval_note,
	interval_semitones,
	midi_to_freq,
	midi_to_note_name,
	normalize_note_name,
	note_name_to_midi,
	note_to_freq,
	random_chord_type,
	random_interval,
	random_note,
	transpose_note,
)


def test_midi_to_freq_a4():
	assert midi_to_freq(A4_MIDI) == A4_FREQ
	assert note_to_freq("A4") == A4_FREQ
	assert note_to_freq("Bb4") == note_to_freq("A#4")


def test_known_note_names():
	assert midi_to_note_name(60) == "C4"
	assert midi_to_note_name(61) == "C#4"
	assert midi_to_note_name(0) == "C-1"
	assert midi_to_note_name(-1) == "B-2"
	assert note_name_to_midi("C4") == 60
	assert note_name_to_midi("A4") == 69
	assert note_name_to_midi("C-1") == 0


def test_round_trip_over_playable_range():
	for n in range(12, 109):
		assert note_name_to_midi(midi_to_note_name(n)) == n


@pytest.mark.parametrize("name", ["H4", "C", "c4", "Bb4", "E#4", "B#3", "C#", "4C", ""])
def test_invalid_note_names(name):
	with pytest.raises(InvalidNoteName):
		note_name_to_midi(name)


def test_invalid_note_name_is_a_value_error():
	with pytest.raises(ValueError):
		note_name_to_midi("X9")


def test_flats_normalize_to_sharps():
	assert normalize_note_name("Bb4") == "A#4"
	assert normalize_note_name("Db") == "C#"
	assert normalize_note_name("Eb-1") == "D#-1"
	assert normalize_note_name("F#3") == "F#3"
	assert note_name_to_midi(normalize_note_name("Db4")) == 61
	with pytest.raises(InvalidNoteName):
		normalize_note_name("Fb4")


def test_transpose_identity_and_inverse():
	for n in range(12, 109):
		name = midi_to_note_name(n)
		assert transpose_note(name, 0) == name
		for k in (1, 5, 12, 19):
			assert transpose_note(transpose_note(name, k), -k) == name


def test_transpose_crosses_octaves():
	assert transpose_note("B3", 1) == "C4"
	assert transpose_note("C4", -1) == "B3"
	assert transpose_note("C4", 24) == "C6"


def test_interval_notes():
	assert interval_note("C4", "Perfect 5th") == "G4"
	assert interval_note("A3", "Minor 3rd") == "C4"
	assert interval_note("C4", "Octave") == "C5"
	assert interval_note("C4", "Major 9th") == "D5"


def test_interval_table():
	assert len(INTERVALS) == 12
	assert INTERVALS["Minor 2nd"] == 1
	assert INTERVALS["Octave"] == 12
	assert interval_semitones("Tritone") == 6
	assert interval_semitones("Major 9th") == 14
	with pytest.raises(TrainingError):
		interval_semitones("Major 13th")


def test_chord_cardinality():
	for chord_type in CHORD_TYPES:
		expected = 4 if "7th" in chord_type else 3
		assert chord_arity(chord_type) == expected
		assert len(chord_notes("D4", chord_type)) == expected


def test_chord_notes_root_first():
	assert chord_notes("C4", "Major") == ["C4", "E4", "G4"]
	assert chord_notes("A3", "Minor 7th") == ["A3", "C4", "E4", "G4"]
	assert chord_notes("B4", "Diminished") == ["B4", "D5", "F5"]
	with pytest.raises(TrainingError):
		chord_notes("C4", "Sus4")


def test_random_note_octave_bounds():
	rng = np.random.default_rng(7)
	seen = set()
	for _ in range(300):
		name = random_note(3, 5, rng=rng)
		m = re.match(r"^([A-G]#?)(-?\d+)$", name)
		assert m is not None
		assert 3 <= int(m.group(2)) <= 5
		seen.add(m.group(1))
	assert len(seen) == 12


def test_random_pickers_draw_from_tables():
	rng = np.random.default_rng(11)
	assert {random_chord_type(rng) for _ in range(200)} == set(CHORD_TYPES)
	assert {random_interval(rng) for _ in range(300)} == set(INTERVALS)
