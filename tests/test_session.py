import itertools

import numpy as np
import pytest
from pydantic import TypeAdapter

from syncopate.errors import EmptySelection, TrainingError
from syncopate.models import (
	ChordConfig,
	ChordPool,
	ChordQuestion,
	DetailedLifetimeStats,
	IntervalConfig,
	IntervalQuestion,
	ProgressionConfig,
	SessionConfig,
)
from syncopate.session import TrainingSession, generate_questions, record_session
from syncopate.storage import DETAILED_STORAGE_KEY, MemoryStore, StatsRepository
from syncopate.trainer import correct_answer, generate_progression_question


def _clock(start=1_000, step=500):
	ticks = itertools.count(start, step)
	return lambda: next(ticks)


def _chord_questions():
	return [
		ChordQuestion(root_note="C4", chord_type="Major", chord_notes=("C4", "E4", "G4")),
		ChordQuestion(root_note="A3", chord_type="Minor", chord_notes=("A3", "C4", "E4")),
		ChordQuestion(root_note="D4", chord_type="Major", chord_notes=("D4", "F#4", "A4")),
	]


def test_config_union_parses_camel_case():
	adapter = TypeAdapter(SessionConfig)
	config = adapter.validate_python({
		"mode": "interval",
		"numQuestions": 5,
		"selectedIntervals": ["Octave"],
		"harmonicMode": True,
		"octaveRange": {"min": 2, "max": 4},
	})
	assert isinstance(config, IntervalConfig)
	assert config.num_questions == 5
	assert config.harmonic_mode
	assert config.octave_range.max == 4
	assert isinstance(adapter.validate_python({"mode": "progression"}), ProgressionConfig)


def test_config_validation():
	with pytest.raises(ValueError):
		IntervalConfig(octave_range={"min": 5, "max": 3})
	with pytest.raises(ValueError):
		ChordConfig(num_questions=0)


def test_generate_questions_count():
	rng = np.random.default_rng(0)
	questions = generate_questions(ChordConfig(num_questions=7), rng=rng)
	assert len(questions) == 7
	assert {q.chord_type for q in questions} <= {"Major", "Minor"}
	intervals = generate_questions(IntervalConfig(num_questions=4, harmonic_mode=True), rng=rng)
	assert all(isinstance(q, IntervalQuestion) and q.direction == "harmonic" for q in intervals)


def test_configuration_errors_propagate():
	with pytest.raises(EmptySelection):
		generate_questions(ChordConfig(selected_chord_types=[]))


def test_compound_draws_are_skipped():
	config = IntervalConfig(num_questions=5, selected_intervals=["Major 9th"], compound_intervals=False)
	assert generate_questions(config) == []
	with pytest.raises(TrainingError, match="No questions could be generated"):
		TrainingSession(config)


def test_full_chord_session():
	session = TrainingSession(ChordConfig(num_questions=3), clock=_clock(), questions=_chord_questions())
	assert session.start_time == 1_000
	assert not session.is_answered

	record = session.answer("Major")
	assert record.is_correct
	assert record.correct_answer == "Major"
	assert record.root_note == "C4"
	assert session.is_answered
	assert session.advance()

	assert not session.answer("Major").is_correct
	assert session.advance()
	assert not session.is_finished

	session.answer("Major")
	assert session.is_finished
	assert not session.advance()

	stats = session.finish(session_id="session_1_abc")
	assert stats.session_id == "session_1_abc"
	assert stats.mode == "chord"
	assert stats.correct_answers == 2
	assert stats.total_questions == 3
	assert stats.accuracy == 67
	assert stats.session_start_time == 1_000
	assert stats.session_end_time == 3_000
	assert stats.duration == 2_000
	assert stats.timestamp == stats.session_end_time
	assert [a.question_index for a in stats.answers] == [0, 1, 2]
	assert stats.config["mode"] == "chord"
	assert stats.config["numQuestions"] == 3


def test_answering_twice_is_rejected():
	session = TrainingSession(ChordConfig(), questions=_chord_questions())
	session.answer("Minor")
	with pytest.raises(TrainingError):
		session.answer("Major")
	with pytest.raises(TrainingError):
		session.give_up()


def test_give_up_counts_as_wrong():
	session = TrainingSession(ChordConfig(), questions=_chord_questions())
	record = session.give_up()
	assert not record.is_correct
	assert record.user_answer == ""
	assert session.correct_answers == 0


def test_interval_session_records():
	q = IntervalQuestion(note1="E4", note2="C4", interval_name="Major 3rd", direction="descending")
	session = TrainingSession(IntervalConfig(num_questions=1), clock=_clock(), questions=[q])
	record = session.answer("Major 3rd")
	assert record.is_correct
	assert record.direction == "descending"
	assert (record.note1, record.note2) == ("E4", "C4")
	assert session.finish().session_id.startswith("session_")


def test_progression_session_records_difficulty():
	q = generate_progression_question("hard", ChordPool(), "G", rng=np.random.default_rng(1))
	config = ProgressionConfig(num_questions=1, difficulty="hard", key="G")
	session = TrainingSession(config, clock=_clock(), questions=[q])
	record = session.answer(correct_answer(q))
	assert record.is_correct
	assert record.difficulty == "hard"
	assert record.key == "G"
	assert record.progression_length == len(q.progression)
	assert record.bpm == q.bpm

	other = TrainingSession(config, questions=[q])
	assert other.give_up().user_answer == []


def test_record_session_saves_outside_guest_mode():
	store = MemoryStore()
	repo = StatsRepository(store)
	session = TrainingSession(ChordConfig(), clock=_clock(), questions=_chord_questions()[:1])
	session.answer("Major")
	finished = session.finish()

	updated = record_session(repo, DetailedLifetimeStats(), finished, guest_mode=False)
	assert updated.chord.total_sessions == 1
	assert finished.session_id in updated.session_history
	assert repo.load() == updated


def test_record_session_guest_mode_leaves_everything_alone():
	store = MemoryStore()
	repo = StatsRepository(store)
	stats = DetailedLifetimeStats()
	session = TrainingSession(ChordConfig(guest_mode=True), questions=_chord_questions()[:1])
	session.answer("Major")

	assert record_session(repo, stats, session.finish(), guest_mode=True) is stats
	assert DETAILED_STORAGE_KEY not in store.data
	assert stats.chord.total_sessions == 0


def test_record_session_reads_guest_mode_from_config():
	store = MemoryStore()
	repo = StatsRepository(store)
	stats = DetailedLifetimeStats()

	guest = TrainingSession(ChordConfig(guest_mode=True), clock=_clock(), questions=_chord_questions()[:1])
	guest.answer("Major")
	assert record_session(repo, stats, guest.finish()) is stats
	assert DETAILED_STORAGE_KEY not in store.data

	regular = TrainingSession(ChordConfig(), clock=_clock(), questions=_chord_questions()[:1])
	regular.answer("Major")
	updated = record_session(repo, stats, regular.finish())
	assert updated.chord.total_sessions == 1
	assert repo.load() == updated
