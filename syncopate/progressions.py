"""Keys, scale degrees and Roman numeral chords.

Roman numerals follow the usual convention: uppercase for major quality,
lowercase for minor, a trailing degree sign for diminished. Every chord is
voiced in root position with its root in octave 4.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple

import numpy as np

from .errors import TrainingError
from .models import Key, RomanNumeralChord
from .theory import normalize_note_name, resolve_rng, transpose_note


BASE_OCTAVE = 4

MAJOR_SCALE_DEGREES: Tuple[int, ...] = (0, 2, 4, 5, 7, 9, 11)
MINOR_SCALE_DEGREES: Tuple[int, ...] = (0, 2, 3, 5, 7, 8, 10)

_MAJOR = (0, 4, 7)
_MINOR = (0, 3, 7)
_DIMINISHED = (0, 3, 6)
_DOMINANT_7TH = (0, 4, 7, 10)


def _chord(numeral: str, intervals: Tuple[int, ...]) -> RomanNumeralChord:
	return RomanNumeralChord(numeral=numeral, intervals=intervals, label=numeral)


MAJOR_DIATONIC_CHORDS: Tuple[RomanNumeralChord, ...] = (
	_chord("I", _MAJOR),
	_chord("ii", _MINOR),
	_chord("iii", _MINOR),
	_chord("IV", _MAJOR),
	_chord("V", _MAJOR),
	_chord("vi", _MINOR),
	_chord("vii°", _DIMINISHED),
)

MINOR_DIATONIC_CHORDS: Tuple[RomanNumeralChord, ...] = (
	_chord("i", _MINOR),
	_chord("ii°", _DIMINISHED),
	_chord("III", _MAJOR),
	_chord("iv", _MINOR),
	_chord("v", _MINOR),
	_chord("VI", _MAJOR),
	_chord("VII", _MAJOR),
)

# Borrowed chords and secondary dominants
MAJOR_NON_DIATONIC_CHORDS: Tuple[RomanNumeralChord, ...] = (
	_chord("V7", _DOMINANT_7TH),
	_chord("V7/V", _DOMINANT_7TH),
	_chord("bVII", _MAJOR),
	_chord("iv", _MINOR),
)

MINOR_NON_DIATONIC_CHORDS: Tuple[RomanNumeralChord, ...] = (
	_chord("V", _MAJOR),
	_chord("V7", _DOMINANT_7TH),
	_chord("IV", _MAJOR),
	_chord("II7", _DOMINANT_7TH),
)

# Chromatic numerals whose root is a fixed distance above the tonic rather
# than a degree of the key's own scale.
FIXED_ROOT_OFFSETS: Dict[str, int] = {
	"V7/V": 2,
	"bVII": 10,
	"II7": 2,
}

MAJOR_KEYS: Tuple[str, ...] = ("C", "D", "E", "F", "G", "A", "B")
MINOR_KEYS: Tuple[str, ...] = tuple(f"{root}m" for root in MAJOR_KEYS)

TONIC_NUMERALS = ("I", "i")

_DEGREES: Dict[str, int] = {
	"i": 1,
	"ii": 2,
	"iii": 3,
	"iv": 4,
	"v": 5,
	"vi": 6,
	"vii": 7,
}
_DECORATION_RE = re.compile(r"[°7b]")


def parse_key(key: str) -> Key:
	"""'Dm' -> D minor, 'G' -> G major."""
	if key.endswith("m"):
		return Key(root=key[:-1], mode="minor")
	return Key(root=key, mode="major")


def scale_degrees(mode: str) -> Tuple[int, ...]:
	return MAJOR_SCALE_DEGREES if mode == "major" else MINOR_SCALE_DEGREES


def numeral_degree(numeral: str) -> int:
	base = _DECORATION_RE.sub("", numeral.split("/")[0]).lower()
	try:
		return _DEGREES[base]
	except KeyError:
		raise TrainingError(f"Unknown Roman numeral: {numeral!r}") from None


def scale_degree_root(key_root: str, degree: int, mode: str) -> str:
	tonic = f"{normalize_note_name(key_root)}{BASE_OCTAVE}"
	return transpose_note(tonic, scale_degrees(mode)[degree - 1])


def resolve_root(key_root: str, numeral: str, mode: str) -> str:
	if numeral in FIXED_ROOT_OFFSETS:
		tonic = f"{normalize_note_name(key_root)}{BASE_OCTAVE}"
		return transpose_note(tonic, FIXED_ROOT_OFFSETS[numeral])
	return scale_degree_root(key_root, numeral_degree(numeral), mode)


def roman_numeral_to_chord(chord: RomanNumeralChord, key: str) -> List[str]:
	parsed = parse_key(key)
	root = resolve_root(parsed.root, chord.numeral, parsed.mode)
	return [transpose_note(root, offset) for offset in chord.intervals]


def get_diatonic_chords(key: str) -> List[RomanNumeralChord]:
	if parse_key(key).mode == "major":
		return list(MAJOR_DIATONIC_CHORDS)
	return list(MINOR_DIATONIC_CHORDS)


def get_non_diatonic_chords(key: str) -> List[RomanNumeralChord]:
	if parse_key(key).mode == "major":
		return list(MAJOR_NON_DIATONIC_CHORDS)
	return list(MINOR_NON_DIATONIC_CHORDS)


def get_all_chords(key: str) -> List[RomanNumeralChord]:
	return get_diatonic_chords(key) + get_non_diatonic_chords(key)


def find_chord(numeral: str, key: str) -> Optional[RomanNumeralChord]:
	for chord in get_all_chords(key):
		if chord.numeral == numeral:
			return chord
	return None


def available_keys() -> List[str]:
	return list(MAJOR_KEYS + MINOR_KEYS)


def random_key(include_minor: bool = True, rng: Optional[np.random.Generator] = None) -> str:
	rng = resolve_rng(rng)
	keys = MAJOR_KEYS + MINOR_KEYS if include_minor else MAJOR_KEYS
	return keys[int(rng.integers(0, len(keys)))]
