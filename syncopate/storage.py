"""Persistence of lifetime statistics against a key-value backend.

Nothing in here raises to the caller: a failed load falls back to empty stats,
a failed save is logged and dropped. The in-memory stats are never modified.
"""

from __future__ import annotations

import json
import logging
import os
import secrets
import time
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from .analytics import calculate_accuracy
from .errors import StorageQuotaExceeded, UnknownMode
from .models import (
	MODES,
	DetailedChordStats,
	DetailedIntervalStats,
	DetailedLifetimeStats,
	DetailedModeStats,
	DetailedProgressionStats,
	LegacyLifetimeStats,
	ModeStats,
	StorageInfo,
)


logger = logging.getLogger(__name__)

LEGACY_STORAGE_KEY = "syncopate_lifetime_stats"
DETAILED_STORAGE_KEY = "syncopate_detailed_stats"

MAX_SESSIONS_IN_HISTORY = 200
REDUCED_SESSIONS_IN_HISTORY = 50
# Browsers give localStorage roughly 5MB, the budget the history cap was sized for
ASSUMED_CAPACITY_BYTES = 5 * 1024 * 1024

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


class KeyValueStore(Protocol):
	def get(self, key: str) -> Optional[str]: ...

	def set(self, key: str, value: str) -> None: ...

	def remove(self, key: str) -> None: ...


class MemoryStore:
	"""Dict-backed store. With max_bytes set, writes beyond it raise StorageQuotaExceeded."""

	def __init__(self, max_bytes: Optional[int] = None) -> None:
		self.max_bytes = max_bytes
		self.data: Dict[str, str] = {}

	def get(self, key: str) -> Optional[str]:
		return self.data.get(key)

	def set(self, key: str, value: str) -> None:
		if self.max_bytes is not None:
			used = sum(len(v.encode("utf-8")) for k, v in self.data.items() if k != key)
			if used + len(value.encode("utf-8")) > self.max_bytes:
				raise StorageQuotaExceeded(f"writing {key!r} would exceed {self.max_bytes} bytes")
		self.data[key] = value

	def remove(self, key: str) -> None:
		self.data.pop(key, None)


def _data_path(base_dir: Optional[Path] = None) -> Path:
	if base_dir is None:
		env_dir = os.environ.get("SYNCOPATE_HOME")
		base_dir = Path(env_dir) if env_dir else Path.home() / ".syncopate"
	base_dir.mkdir(parents=True, exist_ok=True)
	return base_dir / "data.json"


class JsonFileStore:
	"""All keys live in one JSON document on disk (~/.syncopate/data.json by default)."""

	def __init__(self, path: Optional[Path] = None, max_bytes: Optional[int] = None) -> None:
		self.path = Path(path) if path is not None else _data_path()
		self.max_bytes = max_bytes

	def _load_raw(self) -> Dict[str, Any]:
		if not self.path.exists():
			return {}
		try:
			data = json.loads(self.path.read_text(encoding="utf-8"))
		except (ValueError, OSError) as exc:
			logger.warning("Ignoring unreadable store %s: %s", self.path, exc)
			return {}
		return data if isinstance(data, dict) else {}

	def _save_raw(self, data: Dict[str, Any]) -> None:
		text = json.dumps(data, indent=2)
		if self.max_bytes is not None and len(text.encode("utf-8")) > self.max_bytes:
			raise StorageQuotaExceeded(f"{self.path} would exceed {self.max_bytes} bytes")
		self.path.parent.mkdir(parents=True, exist_ok=True)
		self.path.write_text(text, encoding="utf-8")

	def get(self, key: str) -> Optional[str]:
		value = self._load_raw().get(key)
		return value if isinstance(value, str) else None

	def set(self, key: str, value: str) -> None:
		raw = self._load_raw()
		raw[key] = value
		self._save_raw(raw)

	def remove(self, key: str) -> None:
		raw = self._load_raw()
		if raw.pop(key, None) is not None:
			self._save_raw(raw)


# --- pure helpers ---------------------------------------------------------------


def now_ms() -> int:
	return int(time.time() * 1000)


def generate_session_id(timestamp: Optional[int] = None) -> str:
	"""'session_<unix ms>_<9 random base36 chars>'."""
	stamp = now_ms() if timestamp is None else timestamp
	suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
	return f"session_{stamp}_{suffix}"


def session_id_timestamp(session_id: str) -> int:
	prefix, stamp, _ = session_id.split("_", 2)
	if prefix != "session":
		raise ValueError(f"Not a session id: {session_id!r}")
	return int(stamp)


def trim_session_history(stats: DetailedLifetimeStats, keep: int) -> DetailedLifetimeStats:
	"""Keep only the newest `keep` sessions by timestamp."""
	if len(stats.session_history) <= keep:
		return stats
	newest = sorted(stats.session_history.values(), key=lambda s: s.timestamp, reverse=True)[:keep]
	return stats.model_copy(update={"session_history": {s.session_id: s for s in newest}})


def _from_legacy(stats_cls, old: ModeStats) -> DetailedModeStats:
	return stats_cls(
		total_sessions=old.total_sessions,
		total_questions=old.total_questions,
		total_correct=old.total_correct,
		overall_accuracy=calculate_accuracy(old.total_correct, old.total_questions),
	)


def migrate_legacy_stats(legacy: LegacyLifetimeStats) -> DetailedLifetimeStats:
	"""Wrap flat per-mode totals into the detailed shape, with empty breakdowns and history."""
	return DetailedLifetimeStats(
		chord=_from_legacy(DetailedChordStats, legacy.chord),
		interval=_from_legacy(DetailedIntervalStats, legacy.interval),
		progression=_from_legacy(DetailedProgressionStats, legacy.progression),
	)


_DEFAULT_MODE_STATS = {
	"chord": DetailedChordStats,
	"interval": DetailedIntervalStats,
	"progression": DetailedProgressionStats,
}


# --- repository -----------------------------------------------------------------


class StatsRepository:
	def __init__(
		self,
		backend: Optional[KeyValueStore] = None,
		max_sessions: int = MAX_SESSIONS_IN_HISTORY,
		reduced_max_sessions: int = REDUCED_SESSIONS_IN_HISTORY,
	) -> None:
		self.backend: KeyValueStore = backend if backend is not None else JsonFileStore()
		self.max_sessions = max_sessions
		self.reduced_max_sessions = reduced_max_sessions

	def load(self) -> DetailedLifetimeStats:
		"""Stored stats, else migrated legacy stats, else empty stats."""
		try:
			stored = self.backend.get(DETAILED_STORAGE_KEY)
			if stored:
				return DetailedLifetimeStats.model_validate_json(stored)
			legacy = self.backend.get(LEGACY_STORAGE_KEY)
			if legacy:
				migrated = migrate_legacy_stats(LegacyLifetimeStats.model_validate_json(legacy))
				logger.info("Migrated legacy lifetime stats to version %d", migrated.version)
				self.save(migrated)
				return migrated
		except Exception as exc:  # noqa: BLE001
			logger.error("Failed to load detailed lifetime stats: %s", exc)
		return DetailedLifetimeStats()

	def _write(self, stats: DetailedLifetimeStats, cap: int) -> None:
		trimmed = trim_session_history(stats, cap)
		self.backend.set(DETAILED_STORAGE_KEY, trimmed.model_dump_json(by_alias=True))

	def save(self, stats: DetailedLifetimeStats) -> bool:
		"""Write stats, capping the session history. Returns False if nothing was written."""
		try:
			self._write(stats, self.max_sessions)
			return True
		except StorageQuotaExceeded:
			logger.warning(
				"Storage quota exceeded, retrying with the newest %d sessions", self.reduced_max_sessions
			)
		except Exception as exc:  # noqa: BLE001
			logger.error("Failed to save detailed lifetime stats: %s", exc)
			return False
		try:
			self._write(stats, self.reduced_max_sessions)
			return True
		except Exception as exc:  # noqa: BLE001
			logger.error("Failed to save detailed stats even after reduction: %s", exc)
			return False

	def clear(self) -> None:
		for key in (DETAILED_STORAGE_KEY, LEGACY_STORAGE_KEY):
			try:
				self.backend.remove(key)
			except Exception as exc:  # noqa: BLE001
				logger.error("Failed to clear %s: %s", key, exc)

	def prune_old_sessions(self, keep_count: int = 100) -> None:
		stats = self.load()
		if len(stats.session_history) <= keep_count:
			return
		self.save(trim_session_history(stats, keep_count))

	def reset_mode(self, mode: str) -> DetailedLifetimeStats:
		"""Stats with one mode zeroed and its sessions dropped. The caller decides whether to save."""
		if mode not in MODES:
			raise UnknownMode(f"Unknown training mode: {mode!r}")
		stats = self.load()
		history = {sid: s for sid, s in stats.session_history.items() if s.mode != mode}
		return stats.model_copy(update={"session_history": history, mode: _DEFAULT_MODE_STATS[mode]()})

	def storage_info(self) -> StorageInfo:
		try:
			stats = self.load()
			used = len(stats.model_dump_json(by_alias=True).encode("utf-8"))
			return StorageInfo(
				used=used,
				available=ASSUMED_CAPACITY_BYTES,
				percentage=calculate_accuracy(used, ASSUMED_CAPACITY_BYTES),
				session_count=len(stats.session_history),
			)
		except Exception as exc:  # noqa: BLE001
			logger.error("Failed to get storage info: %s", exc)
			return StorageInfo(used=0, available=ASSUMED_CAPACITY_BYTES, percentage=0, session_count=0)
