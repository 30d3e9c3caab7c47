from __future__ import annotations

from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from .analytics import calculate_accuracy  # noqa: F401
from .errors import CompoundDisabled, EmptySelection, NoChordsAvailable, TrainingError
from .models import (
	ChordPool,
	ChordQuestion,
	Direction,
	IntervalQuestion,
	OctaveRange,
	ProgressionQuestion,
	Question,
	RomanNumeralChord,
)
from .progressions import (
	TONIC_NUMERALS,
	get_all_chords,
	get_diatonic_chords,
	get_non_diatonic_chords,
	random_key,
	roman_numeral_to_chord,
)
from .theory import chord_notes, interval_semitones, midi_to_note_name, note_name_to_midi, random_note, resolve_rng


CHORD_ROOT_OCTAVES = (3, 5)

# Playback window for interval targets (C0..C8)
LOWEST_TARGET_MIDI = 12
HIGHEST_TARGET_MIDI = 108

PROGRESSION_LENGTHS = {
	"easy": (2, 4),
	"hard": (5, 8),
}
BPM_RANGE = (80, 120)


def _pick(items: Sequence, rng: np.random.Generator):
	return items[int(rng.integers(0, len(items)))]


def generate_chord_question(selected_types: Sequence[str], rng: Optional[np.random.Generator] = None) -> ChordQuestion:
	if not selected_types:
		raise EmptySelection("At least one chord type must be selected")
	rng = resolve_rng(rng)
	chord_type = _pick(selected_types, rng)
	root = random_note(*CHORD_ROOT_OCTAVES, rng=rng)
	return ChordQuestion(root_note=root, chord_type=chord_type, chord_notes=tuple(chord_notes(root, chord_type)))


def _resolve_direction(direction: str, harmonic_mode: bool, rng: np.random.Generator) -> Direction:
	if harmonic_mode:
		return "harmonic"
	if direction == "random":
		return "ascending" if rng.random() < 0.5 else "descending"
	return direction  # type: ignore[return-value]


def _octave_bounds(octave_range: Union[OctaveRange, Tuple[int, int]]) -> Tuple[int, int]:
	if isinstance(octave_range, OctaveRange):
		return octave_range.min, octave_range.max
	lo, hi = octave_range
	return lo, hi


def generate_interval_question(
	selected_intervals: Sequence[str],
	direction: str = "ascending",
	harmonic_mode: bool = False,
	compound_intervals: bool = False,
	octave_range: Union[OctaveRange, Tuple[int, int]] = (3, 5),
	rng: Optional[np.random.Generator] = None,
) -> IntervalQuestion:
	"""Draw one interval from the selection and place it on a random root.

	Harmonic questions are spelled low-to-high like ascending ones. For
	descending questions note2 is the root and note1 the lower target. A target
	outside C0..C8 is folded back by an octave instead of failing.

	The compound check runs on the drawn interval, so a selection mixing
	simple and compound intervals with compound_intervals off fails only on
	some draws.
	"""
	if not selected_intervals:
		raise EmptySelection("At least one interval must be selected")
	rng = resolve_rng(rng)
	interval_name = _pick(selected_intervals, rng)
	semitones = interval_semitones(interval_name)
	if not compound_intervals and semitones > 12:
		raise CompoundDisabled(
			f"Compound interval {interval_name!r} selected but compound intervals are disabled"
		)

	actual_direction = _resolve_direction(direction, harmonic_mode, rng)
	lo, hi = _octave_bounds(octave_range)
	root = random_note(lo, hi, rng=rng)
	root_midi = note_name_to_midi(root)

	if actual_direction == "descending":
		target = root_midi - semitones
		if target < LOWEST_TARGET_MIDI:
			target += 12
		note1, note2 = midi_to_note_name(target), root
	else:
		target = root_midi + semitones
		if target > HIGHEST_TARGET_MIDI:
			target -= 12
		note1, note2 = root, midi_to_note_name(target)

	return IntervalQuestion(note1=note1, note2=note2, interval_name=interval_name, direction=actual_direction)


def available_chords(chord_pool: ChordPool, key: str) -> List[RomanNumeralChord]:
	diatonic, non_diatonic = chord_pool.diatonic, chord_pool.non_diatonic
	if diatonic and non_diatonic:
		return get_all_chords(key)
	if diatonic:
		return get_diatonic_chords(key)
	if non_diatonic:
		return get_non_diatonic_chords(key)
	return []


def random_bpm(rng: Optional[np.random.Generator] = None) -> int:
	lo, hi = BPM_RANGE
	return int(resolve_rng(rng).integers(lo, hi + 1))


def generate_progression_question(
	difficulty: str = "easy",
	chord_pool: Optional[ChordPool] = None,
	key: str = "random",
	rng: Optional[np.random.Generator] = None,
) -> ProgressionQuestion:
	"""Random Roman numeral progression, ending on the tonic when the pool has one."""
	rng = resolve_rng(rng)
	chord_pool = chord_pool if chord_pool is not None else ChordPool()
	if difficulty not in PROGRESSION_LENGTHS:
		raise TrainingError(f"Unknown difficulty: {difficulty!r}")
	lo, hi = PROGRESSION_LENGTHS[difficulty]
	length = int(rng.integers(lo, hi + 1))
	selected_key = random_key(rng=rng) if key == "random" else key

	chords = available_chords(chord_pool, selected_key)
	if not chords:
		raise NoChordsAvailable("No chords available with current settings")
	tonic = next((c for c in chords if c.numeral in TONIC_NUMERALS), None)

	progression: List[RomanNumeralChord] = []
	for i in range(length):
		if i == length - 1 and tonic is not None:
			progression.append(tonic)
		else:
			progression.append(_pick(chords, rng))

	return ProgressionQuestion(
		key=selected_key,
		progression=tuple(progression),
		chord_notes=tuple(tuple(roman_numeral_to_chord(c, selected_key)) for c in progression),
		bpm=random_bpm(rng),
	)


def correct_answer(question: Question) -> Union[str, List[str]]:
	if isinstance(question, ChordQuestion):
		return question.chord_type
	if isinstance(question, IntervalQuestion):
		return question.interval_name
	return [chord.numeral for chord in question.progression]


def validate_progression_answer(question: ProgressionQuestion, user_answer: Sequence[str]) -> bool:
	if len(user_answer) != len(question.progression):
		return False
	return all(answer == chord.numeral for answer, chord in zip(user_answer, question.progression))


def validate_answer(question: Question, user_answer: Union[str, Sequence[str]]) -> bool:
	"""Exact, case-sensitive comparison against the question's answer."""
	if isinstance(question, ProgressionQuestion):
		if isinstance(user_answer, str):
			return False
		return validate_progression_answer(question, user_answer)
	return correct_answer(question) == user_answer
