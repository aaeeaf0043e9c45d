"""Error taxonomy surfaced by match, season and player operations."""

from __future__ import annotations


class KickerError(Exception):
    """Base class for every rejected kicker operation."""


class ValidationError(KickerError):
    """Caller-supplied data violates a precondition; fix the input, do not retry."""


class NotFoundError(ValidationError):
    """A referenced kicker, player, match or season does not exist."""


class ConflictError(KickerError):
    """Current state contradicts the request, e.g. an active match already exists."""


class PersistenceError(KickerError):
    """The database rejected a read or write; nothing from the operation was applied."""


__all__ = [
    "ConflictError",
    "KickerError",
    "NotFoundError",
    "PersistenceError",
    "ValidationError",
]
