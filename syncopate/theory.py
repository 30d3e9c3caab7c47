from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple

import numpy as np

from .errors import InvalidNoteName, TrainingError


NOTE_NAMES: Tuple[str, ...] = ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B")

FLAT_TO_SHARP: Dict[str, str] = {
	"Db": "C#",
	"Eb": "D#",
	"Gb": "F#",
	"Ab": "G#",
	"Bb": "A#",
}

INTERVALS: Dict[str, int] = {
	"Minor 2nd": 1,
	"Major 2nd": 2,
	"Minor 3rd": 3,
	"Major 3rd": 4,
	"Perfect 4th": 5,
	"Tritone": 6,
	"Perfect 5th": 7,
	"Minor 6th": 8,
	"Major 6th": 9,
	"Minor 7th": 10,
	"Major 7th": 11,
	"Octave": 12,
}

# Anything above an octave
COMPOUND_INTERVALS: Dict[str, int] = {
	"Minor 9th": 13,
	"Major 9th": 14,
	"Minor 10th": 15,
	"Major 10th": 16,
	"Perfect 11th": 17,
	"Augmented 11th": 18,
	"Perfect 12th": 19,
	"Double Octave": 24,
}

CHORD_TYPES: Dict[str, Tuple[int, ...]] = {
	"Major": (0, 4, 7),
	"Minor": (0, 3, 7),
	"Dominant 7th": (0, 4, 7, 10),
	"Major 7th": (0, 4, 7, 11),
	"Minor 7th": (0, 3, 7, 10),
	"Diminished": (0, 3, 6),
	"Augmented": (0, 4, 8),
}

A4_MIDI = 69
A4_FREQ = 440.0

_NOTE_RE = re.compile(r"^([A-G]#?)(-?\d+)$")
_FLAT_RE = re.compile(r"^([A-G]b)(-?\d+)?$")


def midi_to_note_name(midi: int) -> str:
	octave = midi // 12 - 1
	return f"{NOTE_NAMES[midi % 12]}{octave}"


def note_name_to_midi(name: str) -> int:
	"""Parse a sharp-spelled note name like 'C4', 'F#3' or 'B-1' (C4 = 60)."""
	match = _NOTE_RE.match(name)
	if match is None:
		raise InvalidNoteName(f"Invalid note name: {name!r}")
	letter, octave = match.groups()
	if letter not in NOTE_NAMES:
		raise InvalidNoteName(f"Invalid note: {letter!r}")
	return (int(octave) + 1) * 12 + NOTE_NAMES.index(letter)


def normalize_note_name(name: str) -> str:
	"""Respell a flat ('Bb4', 'Eb') with its sharp equivalent; other names pass through."""
	match = _FLAT_RE.match(name)
	if match is None:
		return name
	flat, octave = match.groups()
	sharp = FLAT_TO_SHARP.get(flat)
	if sharp is None:
		raise InvalidNoteName(f"Unsupported flat spelling: {name!r}")
	return sharp + (octave or "")


def transpose_note(name: str, semitones: int) -> str:
	return midi_to_note_name(note_name_to_midi(name) + semitones)


def interval_semitones(interval_name: str) -> int:
	if interval_name in INTERVALS:
		return INTERVALS[interval_name]
	if interval_name in COMPOUND_INTERVALS:
		return COMPOUND_INTERVALS[interval_name]
	raise TrainingError(f"Unknown interval: {interval_name!r}")


def interval_note(root: str, interval_name: str) -> str:
	return transpose_note(root, interval_semitones(interval_name))


def chord_offsets(chord_type: str) -> Tuple[int, ...]:
	try:
		return CHORD_TYPES[chord_type]
	except KeyError:
		raise TrainingError(f"Unknown chord type: {chord_type!r}") from None


def chord_arity(chord_type: str) -> int:
	return len(chord_offsets(chord_type))


def chord_notes(root: str, chord_type: str) -> List[str]:
	"""Notes of a chord built on root, root first, in template order."""
	return [transpose_note(root, offset) for offset in chord_offsets(chord_type)]


def resolve_rng(rng: Optional[np.random.Generator]) -> np.random.Generator:
	return rng if rng is not None else np.random.default_rng()


def random_note(min_octave: int = 3, max_octave: int = 5, rng: Optional[np.random.Generator] = None) -> str:
	rng = resolve_rng(rng)
	octave = int(rng.integers(min_octave, max_octave + 1))
	index = int(rng.integers(0, len(NOTE_NAMES)))
	return f"{NOTE_NAMES[index]}{octave}"


def random_chord_type(rng: Optional[np.random.Generator] = None) -> str:
	names = list(CHORD_TYPES)
	return names[int(resolve_rng(rng).integers(0, len(names)))]


def random_interval(rng: Optional[np.random.Generator] = None) -> str:
	names = list(INTERVALS)
	return names[int(resolve_rng(rng).integers(0, len(names)))]


def midi_to_freq(m: int) -> float:
	return float(A4_FREQ * (2.0 ** ((m - A4_MIDI) / 12.0)))


def note_to_freq(name: str) -> float:
	return midi_to_freq(note_name_to_midi(normalize_note_name(name)))
