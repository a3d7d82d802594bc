"""Exceptions raised by the study core."""


class FlashdeckError(Exception):
    """Base class for errors scoped to a single study operation."""


class EmptySessionError(FlashdeckError):
    """No cards qualify for a new session."""


class PersistenceError(FlashdeckError):
    """An atomic write against the store failed; nothing was applied."""
