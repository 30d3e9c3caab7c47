"""Render questions to sample buffers for an external player.

Nothing here plays sound; callers hand the buffer (or its WAV bytes) to
whatever player the front end uses.
"""

SR = 44100

import io
from typing import List, Sequence, cast

import numpy as np
import numpy.typing as npt
import soundfile as sf

from .models import ChordQuestion, IntervalQuestion, ProgressionQuestion, Question
from .theory import note_to_freq

Buffer = npt.NDArray[np.float32]


def _envelope(n: int) -> Buffer:
	# 5ms attack, 50ms release
	env = np.ones(n, dtype=np.float32)
	attack = min(int(0.005 * SR), n)
	release = min(int(0.050 * SR), n - attack)
	if attack > 0:
		env[:attack] = np.linspace(0.0, 1.0, attack, endpoint=False, dtype=np.float32)
	if release > 0:
		env[n - release:] = np.linspace(1.0, 0.0, release, endpoint=False, dtype=np.float32)
	return env


def tone(freq: float, dur: float, waveform: str = "sine") -> Buffer:
	"""Single enveloped tone.

	Args:
		freq: Frequency in Hz
		dur: Duration in seconds
		waveform: One of {"sine","triangle","saw"}
	"""
	t = np.linspace(0.0, dur, int(SR * dur), endpoint=False, dtype=np.float32)
	omega = 2.0 * np.pi * freq
	if waveform == "sine":
		x = np.sin(omega * t)
	elif waveform == "triangle":
		x = (2.0 / np.pi) * np.arcsin(np.sin(omega * t))
	elif waveform == "saw":
		phase = freq * t
		x = 2.0 * (phase - np.floor(phase + 0.5))
	else:
		raise ValueError(f"Unknown waveform: {waveform!r}")
	return cast(Buffer, (x * _envelope(len(t))).astype(np.float32))


def _normalize(x: Buffer) -> Buffer:
	peak = float(np.max(np.abs(x))) if x.size else 0.0
	if peak > 1.0:
		x = x / peak
	return cast(Buffer, x.astype(np.float32))


def harmonic(freqs: Sequence[float], dur: float = 1.0, waveform: str = "sine") -> Buffer:
	"""All frequencies sounding together."""
	if not freqs:
		return np.zeros(int(SR * dur), dtype=np.float32)
	x = np.sum([tone(f, dur, waveform) for f in freqs], axis=0)
	return _normalize(x / len(freqs))


def melodic(freqs: Sequence[float], gap: float = 0.10, dur: float = 0.60, waveform: str = "sine") -> Buffer:
	"""Frequencies one after another, separated by `gap` seconds of silence."""
	silence = np.zeros(int(SR * gap), dtype=np.float32)
	parts: List[Buffer] = []
	for i, f in enumerate(freqs):
		if i:
			parts.append(silence)
		parts.append(tone(f, dur, waveform))
	if not parts:
		return np.zeros(0, dtype=np.float32)
	return np.concatenate(parts)


def render_chord_question(q: ChordQuestion, dur: float = 1.5, waveform: str = "sine") -> Buffer:
	return harmonic([note_to_freq(n) for n in q.chord_notes], dur=dur, waveform=waveform)


def render_interval_question(q: IntervalQuestion, dur: float = 0.60, waveform: str = "sine") -> Buffer:
	f1, f2 = note_to_freq(q.note1), note_to_freq(q.note2)
	if q.direction == "harmonic":
		return harmonic([f1, f2], dur=2 * dur, waveform=waveform)
	if q.direction == "descending":
		# note2 holds the root, which sounds first
		return melodic([f2, f1], dur=dur, waveform=waveform)
	return melodic([f1, f2], dur=dur, waveform=waveform)


def render_progression_question(q: ProgressionQuestion, waveform: str = "sine") -> Buffer:
	"""One beat per chord at the question's tempo."""
	beat = 60.0 / q.bpm
	chords = [harmonic([note_to_freq(n) for n in notes], dur=beat, waveform=waveform) for notes in q.chord_notes]
	return np.concatenate(chords) if chords else np.zeros(0, dtype=np.float32)


def render_question(q: Question, waveform: str = "sine") -> Buffer:
	if isinstance(q, ChordQuestion):
		return render_chord_question(q, waveform=waveform)
	if isinstance(q, IntervalQuestion):
		return render_interval_question(q, waveform=waveform)
	return render_progression_question(q, waveform=waveform)


def wav_bytes(x: Buffer) -> bytes:
	buf = io.BytesIO()
	sf.write(buf, x, SR, format="WAV")
	return buf.getvalue()
