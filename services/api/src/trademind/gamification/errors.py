"""Gamification domain errors."""


class InvalidTradeOutcomeError(ValueError):
    """Raised when a trade outcome is rejected before any state is written."""


class StorageUnavailableError(RuntimeError):
    """Raised when the backing store cannot be reached. Safe to retry."""
