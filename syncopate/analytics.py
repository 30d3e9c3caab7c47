"""Folding completed sessions into lifetime statistics, and reporting on them.

Every function here is pure: the stats passed in are never mutated, updates
come back as new model instances that share untouched sub-objects with the
input.
"""

from __future__ import annotations

from typing import Dict, List, Tuple, Type, TypeVar

from .errors import UnknownMode
from .models import (
	MODES,
	AverageTime,
	CategoryBreakdown,
	ChordAnswerRecord,
	DetailedChordStats,
	DetailedIntervalStats,
	DetailedLifetimeStats,
	DetailedModeStats,
	DetailedProgressionStats,
	DetailedSessionStats,
	IntervalAnswerRecord,
	ModeSummary,
	ModeTrainingTime,
	OverallSummary,
	ProgressionAnswerRecord,
	TrainingTime,
	TrendPoint,
)


RECENT_SESSIONS_LIMIT = 100
MIN_SAMPLE_SIZE = 3

R = TypeVar("R", ChordAnswerRecord, IntervalAnswerRecord, ProgressionAnswerRecord)

Ranked = List[Tuple[str, CategoryBreakdown]]


def _round_ratio(numerator: int, denominator: int) -> int:
	# round half away from zero, exact for non-negative integers
	return (2 * numerator + denominator) // (2 * denominator)


def calculate_accuracy(correct: int, total: int) -> int:
	"""Percentage of correct answers, rounded to the nearest integer.

	Returns 0 when there were no questions, and never leaves [0, 100] even for
	inconsistent counts.
	"""
	if total <= 0:
		return 0
	return max(0, min(100, _round_ratio(100 * max(correct, 0), total)))


# --- breakdowns ---------------------------------------------------------------


def update_category_breakdown(breakdown: CategoryBreakdown, is_correct: bool) -> CategoryBreakdown:
	correct = breakdown.correct + (1 if is_correct else 0)
	total = breakdown.total + 1
	return CategoryBreakdown(correct=correct, total=total, accuracy=calculate_accuracy(correct, total))


def merge_breakdowns(a: CategoryBreakdown, b: CategoryBreakdown) -> CategoryBreakdown:
	correct = a.correct + b.correct
	total = a.total + b.total
	return CategoryBreakdown(correct=correct, total=total, accuracy=calculate_accuracy(correct, total))


def _tally(breakdown: Dict[str, CategoryBreakdown], category: str, is_correct: bool) -> None:
	breakdown[category] = update_category_breakdown(breakdown.get(category, CategoryBreakdown()), is_correct)


# --- per-mode folds -----------------------------------------------------------


def _answers(session: DetailedSessionStats, mode: str, record_type: Type[R]) -> List[R]:
	if session.mode != mode:
		raise ValueError(f"cannot fold a {session.mode} session into {mode} stats")
	return [a for a in session.answers if isinstance(a, record_type)]


def _session_totals(current: DetailedModeStats, session: DetailedSessionStats) -> Dict[str, object]:
	total_questions = current.total_questions + session.total_questions
	total_correct = current.total_correct + session.correct_answers
	return {
		"total_sessions": current.total_sessions + 1,
		"total_questions": total_questions,
		"total_correct": total_correct,
		"overall_accuracy": calculate_accuracy(total_correct, total_questions),
		"last_played": session.timestamp,
		"recent_sessions": (current.recent_sessions + [session.session_id])[-RECENT_SESSIONS_LIMIT:],
	}


def update_chord_stats(current: DetailedChordStats, session: DetailedSessionStats) -> DetailedChordStats:
	by_type = dict(current.chord_type_breakdown)
	for answer in _answers(session, "chord", ChordAnswerRecord):
		_tally(by_type, answer.chord_type, answer.is_correct)
	update = _session_totals(current, session)
	update["chord_type_breakdown"] = by_type
	return current.model_copy(update=update)


def update_interval_stats(current: DetailedIntervalStats, session: DetailedSessionStats) -> DetailedIntervalStats:
	by_interval = dict(current.interval_breakdown)
	by_direction = dict(current.direction_breakdown)
	for answer in _answers(session, "interval", IntervalAnswerRecord):
		_tally(by_interval, answer.interval_name, answer.is_correct)
		_tally(by_direction, answer.direction, answer.is_correct)
	update = _session_totals(current, session)
	update["interval_breakdown"] = by_interval
	update["direction_breakdown"] = by_direction
	return current.model_copy(update=update)


def update_progression_stats(
	current: DetailedProgressionStats, session: DetailedSessionStats
) -> DetailedProgressionStats:
	by_key = dict(current.key_breakdown)
	by_difficulty = dict(current.difficulty_breakdown)
	for answer in _answers(session, "progression", ProgressionAnswerRecord):
		_tally(by_key, answer.key, answer.is_correct)
		_tally(by_difficulty, answer.difficulty, answer.is_correct)
	update = _session_totals(current, session)
	update["key_breakdown"] = by_key
	update["difficulty_breakdown"] = by_difficulty
	return current.model_copy(update=update)


def _session_accuracy_stats(sessions: List[DetailedSessionStats]) -> Dict[str, int]:
	if not sessions:
		return {}
	accuracies = [s.accuracy for s in sessions]
	return {
		"best_session_accuracy": max(accuracies),
		"worst_session_accuracy": min(accuracies),
		"average_session_accuracy": _round_ratio(sum(accuracies), len(accuracies)),
	}


def update_detailed_lifetime_stats(
	current: DetailedLifetimeStats, session: DetailedSessionStats
) -> DetailedLifetimeStats:
	history = dict(current.session_history)
	history[session.session_id] = session
	updated = current.model_copy(update={"session_history": history})

	mode_stats: DetailedModeStats
	if session.mode == "chord":
		mode_stats = update_chord_stats(current.chord, session)
	elif session.mode == "interval":
		mode_stats = update_interval_stats(current.interval, session)
	elif session.mode == "progression":
		mode_stats = update_progression_stats(current.progression, session)
	else:
		raise UnknownMode(f"Unknown training mode: {session.mode!r}")

	accuracy = _session_accuracy_stats(get_sessions_by_mode(updated, session.mode))
	mode_stats = mode_stats.model_copy(update=accuracy)
	return updated.model_copy(update={session.mode: mode_stats})


# --- queries --------------------------------------------------------------------


def _newest_first(sessions) -> List[DetailedSessionStats]:
	return sorted(sessions, key=lambda s: s.timestamp, reverse=True)


def get_sessions_by_mode(stats: DetailedLifetimeStats, mode: str) -> List[DetailedSessionStats]:
	return _newest_first(s for s in stats.session_history.values() if s.mode == mode)


def get_recent_sessions(stats: DetailedLifetimeStats, limit: int = 10) -> List[DetailedSessionStats]:
	return _newest_first(stats.session_history.values())[:limit]


def get_sessions_by_date_range(stats: DetailedLifetimeStats, start: int, end: int) -> List[DetailedSessionStats]:
	return _newest_first(s for s in stats.session_history.values() if start <= s.timestamp <= end)


def get_accuracy_trend(stats: DetailedLifetimeStats, mode: str, number_of_sessions: int = 10) -> List[TrendPoint]:
	"""Accuracy of the last few sessions of a mode, oldest first."""
	recent = get_sessions_by_mode(stats, mode)[:number_of_sessions]
	return [
		TrendPoint(session_id=s.session_id, timestamp=s.timestamp, accuracy=s.accuracy)
		for s in reversed(recent)
	]


def _rank(breakdown: Dict[str, CategoryBreakdown], limit: int, best: bool) -> Ranked:
	eligible = [(name, b) for name, b in breakdown.items() if b.total >= MIN_SAMPLE_SIZE]
	eligible.sort(key=lambda item: item[1].accuracy, reverse=best)
	return eligible[:limit]


def get_best_chord_types(breakdown: Dict[str, CategoryBreakdown], limit: int = 5) -> Ranked:
	return _rank(breakdown, limit, best=True)


def get_worst_chord_types(breakdown: Dict[str, CategoryBreakdown], limit: int = 5) -> Ranked:
	return _rank(breakdown, limit, best=False)


def get_best_intervals(breakdown: Dict[str, CategoryBreakdown], limit: int = 5) -> Ranked:
	return _rank(breakdown, limit, best=True)


def get_worst_intervals(breakdown: Dict[str, CategoryBreakdown], limit: int = 5) -> Ranked:
	return _rank(breakdown, limit, best=False)


def get_best_keys(breakdown: Dict[str, CategoryBreakdown], limit: int = 5) -> Ranked:
	return _rank(breakdown, limit, best=True)


def get_worst_keys(breakdown: Dict[str, CategoryBreakdown], limit: int = 5) -> Ranked:
	return _rank(breakdown, limit, best=False)


def get_chord_type_stats(stats: DetailedLifetimeStats, chord_type: str) -> CategoryBreakdown:
	return stats.chord.chord_type_breakdown.get(chord_type, CategoryBreakdown())


def get_interval_stats(stats: DetailedLifetimeStats, interval_name: str) -> CategoryBreakdown:
	return stats.interval.interval_breakdown.get(interval_name, CategoryBreakdown())


def get_key_stats(stats: DetailedLifetimeStats, key: str) -> CategoryBreakdown:
	return stats.progression.key_breakdown.get(key, CategoryBreakdown())


def _mode_stats(stats: DetailedLifetimeStats) -> List[Tuple[str, DetailedModeStats]]:
	return [(mode, getattr(stats, mode)) for mode in MODES]


def get_overall_summary(stats: DetailedLifetimeStats) -> OverallSummary:
	per_mode = _mode_stats(stats)
	total_questions = sum(m.total_questions for _, m in per_mode)
	total_correct = sum(m.total_correct for _, m in per_mode)
	return OverallSummary(
		total_sessions=sum(m.total_sessions for _, m in per_mode),
		total_questions=total_questions,
		total_correct=total_correct,
		overall_accuracy=calculate_accuracy(total_correct, total_questions),
		by_mode={
			mode: ModeSummary(sessions=m.total_sessions, accuracy=m.overall_accuracy)
			for mode, m in per_mode
		},
	)


def format_duration(milliseconds: int, detailed: bool = False) -> str:
	"""'1h 5m' style; detailed adds seconds and drops empty leading units."""
	seconds = milliseconds // 1000
	minutes = seconds // 60
	hours = minutes // 60
	if not detailed:
		return f"{hours}h {minutes % 60}m" if hours > 0 else f"{minutes % 60}m"
	if hours > 0:
		return f"{hours}h {minutes % 60}m {seconds % 60}s"
	if minutes > 0:
		return f"{minutes}m {seconds % 60}s"
	return f"{seconds}s"


def get_total_training_time(stats: DetailedLifetimeStats) -> TrainingTime:
	total_ms = sum(s.duration or 0 for s in stats.session_history.values())
	return TrainingTime(
		total_milliseconds=total_ms,
		total_seconds=total_ms // 1000,
		total_minutes=total_ms // 60_000,
		total_hours=total_ms // 3_600_000,
		formatted=format_duration(total_ms),
		formatted_detailed=format_duration(total_ms, detailed=True),
	)


def get_average_time_per_question(stats: DetailedLifetimeStats) -> AverageTime:
	total_questions = sum(m.total_questions for _, m in _mode_stats(stats))
	if total_questions == 0:
		return AverageTime(milliseconds=0, seconds=0, formatted="0s")
	avg_ms = get_total_training_time(stats).total_milliseconds // total_questions
	return AverageTime(milliseconds=avg_ms, seconds=avg_ms // 1000, formatted=f"{avg_ms // 1000}s")


def get_training_time_by_mode(stats: DetailedLifetimeStats) -> Dict[str, ModeTrainingTime]:
	totals = {mode: 0 for mode in MODES}
	for session in stats.session_history.values():
		totals[session.mode] += session.duration or 0
	return {mode: ModeTrainingTime(duration=ms, formatted=format_duration(ms)) for mode, ms in totals.items()}
