from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence, Union

import numpy as np

from .analytics import calculate_accuracy, update_detailed_lifetime_stats
from .errors import CompoundDisabled, TrainingError, UnknownMode
from .models import (
	AnswerRecord,
	ChordAnswerRecord,
	ChordConfig,
	ChordQuestion,
	DetailedLifetimeStats,
	DetailedSessionStats,
	IntervalAnswerRecord,
	IntervalConfig,
	IntervalQuestion,
	ProgressionAnswerRecord,
	ProgressionConfig,
	ProgressionQuestion,
	Question,
)
from .storage import StatsRepository, generate_session_id, now_ms
from .theory import resolve_rng
from .trainer import (
	correct_answer,
	generate_chord_question,
	generate_interval_question,
	generate_progression_question,
	validate_answer,
)


logger = logging.getLogger(__name__)

Config = Union[ChordConfig, IntervalConfig, ProgressionConfig]
UserAnswer = Union[str, Sequence[str]]


def generate_question(config: Config, rng: Optional[np.random.Generator] = None) -> Question:
	if isinstance(config, ChordConfig):
		return generate_chord_question(config.selected_chord_types, rng=rng)
	if isinstance(config, IntervalConfig):
		return generate_interval_question(
			config.selected_intervals,
			config.direction,
			config.harmonic_mode,
			config.compound_intervals,
			config.octave_range,
			rng=rng,
		)
	if isinstance(config, ProgressionConfig):
		return generate_progression_question(config.difficulty, config.chord_pool, config.key, rng=rng)
	raise UnknownMode(f"Unknown session configuration: {type(config).__name__}")


def generate_questions(config: Config, rng: Optional[np.random.Generator] = None) -> List[Question]:
	"""num_questions questions for the configured mode.

	Configuration errors propagate. A compound interval drawn while compound
	intervals are off only costs that one question.
	"""
	rng = resolve_rng(rng)
	questions: List[Question] = []
	for _ in range(config.num_questions):
		try:
			questions.append(generate_question(config, rng))
		except CompoundDisabled as exc:
			logger.error("Error generating %s question: %s", config.mode, exc)
	return questions


class TrainingSession:
	"""One run through a set of questions, collecting an answer record per question."""

	def __init__(
		self,
		config: Config,
		rng: Optional[np.random.Generator] = None,
		clock: Optional[Callable[[], int]] = None,
		questions: Optional[Sequence[Question]] = None,
	) -> None:
		self.config = config
		self.clock = clock or now_ms
		self.questions: List[Question] = list(questions) if questions is not None else generate_questions(config, rng)
		if not self.questions:
			raise TrainingError("No questions could be generated with current settings")
		self.answers: List[AnswerRecord] = []
		self.correct_answers = 0
		self.current_index = 0
		self.start_time = self.clock()

	@property
	def current_question(self) -> Question:
		return self.questions[self.current_index]

	@property
	def is_answered(self) -> bool:
		return any(a.question_index == self.current_index for a in self.answers)

	@property
	def is_finished(self) -> bool:
		return self.current_index == len(self.questions) - 1 and self.is_answered

	def _record(self, user_answer: UserAnswer, is_correct: bool) -> AnswerRecord:
		if self.is_answered:
			raise TrainingError(f"Question {self.current_index} has already been answered")
		q = self.current_question
		common = dict(question_index=self.current_index, timestamp=self.clock(), is_correct=is_correct)
		record: AnswerRecord
		if isinstance(q, ChordQuestion):
			record = ChordAnswerRecord(
				**common, correct_answer=q.chord_type, user_answer=str(user_answer),
				root_note=q.root_note, chord_type=q.chord_type,
			)
		elif isinstance(q, IntervalQuestion):
			record = IntervalAnswerRecord(
				**common, correct_answer=q.interval_name, user_answer=str(user_answer),
				interval_name=q.interval_name, direction=q.direction, note1=q.note1, note2=q.note2,
			)
		elif isinstance(q, ProgressionQuestion) and isinstance(self.config, ProgressionConfig):
			record = ProgressionAnswerRecord(
				**common, correct_answer=correct_answer(q), user_answer=list(user_answer),
				key=q.key, progression_length=len(q.progression), bpm=q.bpm,
				difficulty=self.config.difficulty,
			)
		else:
			raise UnknownMode(f"{type(q).__name__} does not belong to a {self.config.mode} session")
		self.answers.append(record)
		if is_correct:
			self.correct_answers += 1
		return record

	def answer(self, user_answer: UserAnswer) -> AnswerRecord:
		return self._record(user_answer, validate_answer(self.current_question, user_answer))

	def give_up(self) -> AnswerRecord:
		"""Counts as a wrong answer with an empty response."""
		empty: UserAnswer = [] if isinstance(self.current_question, ProgressionQuestion) else ""
		return self._record(empty, False)

	def advance(self) -> bool:
		if self.current_index + 1 >= len(self.questions):
			return False
		self.current_index += 1
		return True

	def finish(self, session_id: Optional[str] = None) -> DetailedSessionStats:
		end = self.clock()
		total = len(self.questions)
		return DetailedSessionStats(
			session_id=session_id or generate_session_id(end),
			mode=self.config.mode,
			correct_answers=self.correct_answers,
			total_questions=total,
			accuracy=calculate_accuracy(self.correct_answers, total),
			timestamp=end,
			session_start_time=self.start_time,
			session_end_time=end,
			duration=end - self.start_time,
			answers=list(self.answers),
			config=self.config.model_dump(by_alias=True),
		)


def record_session(
	repository: StatsRepository,
	stats: DetailedLifetimeStats,
	session: DetailedSessionStats,
	guest_mode: Optional[bool] = None,
) -> DetailedLifetimeStats:
	"""Fold a finished session into the lifetime stats and persist them, unless in guest mode.

	guest_mode defaults to the guestMode flag of the session's config snapshot.
	"""
	if guest_mode is None:
		guest_mode = bool(session.config.get("guestMode", False))
	if guest_mode:
		return stats
	updated = update_detailed_lifetime_stats(stats, session)
	repository.save(updated)
	return updated
