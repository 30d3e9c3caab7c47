class TrainingError(ValueError):
	"""Invalid input passed to the theory engine or a question generator."""


class InvalidNoteName(TrainingError):
	pass


class EmptySelection(TrainingError):
	pass


class CompoundDisabled(TrainingError):
	pass


class NoChordsAvailable(TrainingError):
	pass


class UnknownMode(TrainingError):
	pass


class StorageQuotaExceeded(Exception):
	"""Raised by a storage backend when a write would exceed its capacity."""
