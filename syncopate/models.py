from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


Mode = Literal["chord", "interval", "progression"]
Direction = Literal["ascending", "descending", "harmonic"]
DirectionChoice = Literal["random", "ascending", "descending"]
Difficulty = Literal["easy", "hard"]
KeyMode = Literal["major", "minor"]

MODES: Tuple[str, ...] = ("chord", "interval", "progression")
DIRECTIONS: Tuple[str, ...] = ("ascending", "descending", "harmonic")
DIFFICULTIES: Tuple[str, ...] = ("easy", "hard")

STATS_VERSION = 1


def _round_percent(value: Any) -> Any:
	# older stores hold raw (correct / total) * 100 floats
	if isinstance(value, float):
		return int(value + 0.5) if value >= 0 else -int(-value + 0.5)
	return value


class CamelModel(BaseModel):
	"""Base for everything that ends up in storage: camelCase on the wire."""

	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FrozenModel(CamelModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# --- session configuration -------------------------------------------------


class OctaveRange(CamelModel):
	min: int = Field(default=3, ge=-1, le=9)
	max: int = Field(default=5, ge=-1, le=9)

	@model_validator(mode="after")
	def check_order(self) -> "OctaveRange":
		if self.min > self.max:
			raise ValueError(f"octave range min ({self.min}) is above max ({self.max})")
		return self


class ChordPool(CamelModel):
	diatonic: bool = True
	non_diatonic: bool = False


class ChordConfig(CamelModel):
	mode: Literal["chord"] = "chord"
	num_questions: int = Field(default=10, ge=1, le=200)
	guest_mode: bool = False
	selected_chord_types: List[str] = Field(default=["Major", "Minor"])


class IntervalConfig(CamelModel):
	mode: Literal["interval"] = "interval"
	num_questions: int = Field(default=10, ge=1, le=200)
	guest_mode: bool = False
	selected_intervals: List[str] = Field(default=["Major 3rd", "Perfect 5th"])
	direction: DirectionChoice = Field(default="random")
	harmonic_mode: bool = False
	compound_intervals: bool = False
	octave_range: OctaveRange = Field(default_factory=OctaveRange)


class ProgressionConfig(CamelModel):
	mode: Literal["progression"] = "progression"
	num_questions: int = Field(default=10, ge=1, le=200)
	guest_mode: bool = False
	difficulty: Difficulty = Field(default="easy")
	chord_pool: ChordPool = Field(default_factory=ChordPool)
	key: str = Field(default="random")


SessionConfig = Annotated[
	Union[ChordConfig, IntervalConfig, ProgressionConfig],
	Field(discriminator="mode"),
]


# --- theory values ----------------------------------------------------------


class Key(FrozenModel):
	root: str
	mode: KeyMode


class RomanNumeralChord(FrozenModel):
	numeral: str
	intervals: Tuple[int, ...]
	label: str


# --- questions --------------------------------------------------------------


class ChordQuestion(FrozenModel):
	root_note: str
	chord_type: str
	chord_notes: Tuple[str, ...]


class IntervalQuestion(FrozenModel):
	note1: str
	note2: str
	interval_name: str
	direction: Direction


class ProgressionQuestion(FrozenModel):
	key: str
	progression: Tuple[RomanNumeralChord, ...]
	chord_notes: Tuple[Tuple[str, ...], ...]
	bpm: int


Question = Union[ChordQuestion, IntervalQuestion, ProgressionQuestion]


# --- answer records ---------------------------------------------------------


class ChordAnswerRecord(FrozenModel):
	mode: Literal["chord"] = "chord"
	question_index: int
	timestamp: int
	is_correct: bool
	correct_answer: str
	user_answer: str
	root_note: str
	chord_type: str


class IntervalAnswerRecord(FrozenModel):
	mode: Literal["interval"] = "interval"
	question_index: int
	timestamp: int
	is_correct: bool
	correct_answer: str
	user_answer: str
	interval_name: str
	direction: Direction
	note1: str
	note2: str


class ProgressionAnswerRecord(FrozenModel):
	mode: Literal["progression"] = "progression"
	question_index: int
	timestamp: int
	is_correct: bool
	correct_answer: List[str]
	user_answer: List[str]
	key: str
	progression_length: int
	bpm: int
	difficulty: Difficulty


AnswerRecord = Annotated[
	Union[ChordAnswerRecord, IntervalAnswerRecord, ProgressionAnswerRecord],
	Field(discriminator="mode"),
]


# --- statistics -------------------------------------------------------------


class CategoryBreakdown(CamelModel):
	correct: int = 0
	total: int = 0
	accuracy: int = 0

	round_accuracy = field_validator("accuracy", mode="before")(_round_percent)


def _breakdowns(names: Tuple[str, ...]) -> Dict[str, CategoryBreakdown]:
	return {name: CategoryBreakdown() for name in names}


class ModeStats(CamelModel):
	"""Flat per-mode totals, the shape of the legacy store."""

	total_sessions: int = 0
	total_questions: int = 0
	total_correct: int = 0
	overall_accuracy: float = 0


class LegacyLifetimeStats(CamelModel):
	chord: ModeStats = Field(default_factory=ModeStats)
	interval: ModeStats = Field(default_factory=ModeStats)
	progression: ModeStats = Field(default_factory=ModeStats)


class DetailedModeStats(CamelModel):
	total_sessions: int = 0
	total_questions: int = 0
	total_correct: int = 0
	overall_accuracy: int = 0
	last_played: Optional[int] = None
	best_session_accuracy: Optional[int] = None
	worst_session_accuracy: Optional[int] = None
	average_session_accuracy: Optional[int] = None
	recent_sessions: List[str] = Field(default_factory=list)

	round_accuracies = field_validator(
		"overall_accuracy",
		"best_session_accuracy",
		"worst_session_accuracy",
		"average_session_accuracy",
		mode="before",
	)(_round_percent)


class DetailedChordStats(DetailedModeStats):
	chord_type_breakdown: Dict[str, CategoryBreakdown] = Field(default_factory=dict)


class DetailedIntervalStats(DetailedModeStats):
	interval_breakdown: Dict[str, CategoryBreakdown] = Field(default_factory=dict)
	direction_breakdown: Dict[str, CategoryBreakdown] = Field(
		default_factory=lambda: _breakdowns(DIRECTIONS)
	)


class DetailedProgressionStats(DetailedModeStats):
	key_breakdown: Dict[str, CategoryBreakdown] = Field(default_factory=dict)
	difficulty_breakdown: Dict[str, CategoryBreakdown] = Field(
		default_factory=lambda: _breakdowns(DIFFICULTIES)
	)


class DetailedSessionStats(FrozenModel):
	session_id: str
	mode: Mode
	correct_answers: int = Field(ge=0)
	total_questions: int = Field(ge=0)
	accuracy: int = Field(default=0, ge=0, le=100)
	timestamp: int
	session_start_time: int
	session_end_time: int
	duration: int = 0
	answers: List[AnswerRecord] = Field(default_factory=list)
	config: Dict[str, Any] = Field(default_factory=dict)

	round_accuracy = field_validator("accuracy", mode="before")(_round_percent)

	@model_validator(mode="before")
	@classmethod
	def tag_answers(cls, data: Any) -> Any:
		# answer records stored without a mode tag take the session's mode
		if not isinstance(data, dict):
			return data
		mode, answers = data.get("mode"), data.get("answers")
		if mode is None or not isinstance(answers, list):
			return data
		tagged = [
			dict(a, mode=mode) if isinstance(a, dict) and "mode" not in a else a
			for a in answers
		]
		return {**data, "answers": tagged}

	@model_validator(mode="after")
	def check_answer_modes(self) -> "DetailedSessionStats":
		for record in self.answers:
			if record.mode != self.mode:
				raise ValueError(
					f"{record.mode} answer record in a {self.mode} session {self.session_id}"
				)
		return self


class DetailedLifetimeStats(CamelModel):
	version: int = STATS_VERSION
	chord: DetailedChordStats = Field(default_factory=DetailedChordStats)
	interval: DetailedIntervalStats = Field(default_factory=DetailedIntervalStats)
	progression: DetailedProgressionStats = Field(default_factory=DetailedProgressionStats)
	session_history: Dict[str, DetailedSessionStats] = Field(default_factory=dict)


# --- read-only report shapes ------------------------------------------------


class ModeSummary(BaseModel):
	sessions: int
	accuracy: int


class OverallSummary(BaseModel):
	total_sessions: int
	total_questions: int
	total_correct: int
	overall_accuracy: int
	by_mode: Dict[str, ModeSummary]


class TrainingTime(BaseModel):
	total_milliseconds: int
	total_seconds: int
	total_minutes: int
	total_hours: int
	formatted: str
	formatted_detailed: str


class ModeTrainingTime(BaseModel):
	duration: int
	formatted: str


class AverageTime(BaseModel):
	milliseconds: int
	seconds: int
	formatted: str


class TrendPoint(BaseModel):
	session_id: str
	timestamp: int
	accuracy: int


class StorageInfo(BaseModel):
	used: int
	available: int
	percentage: int
	session_count: int
