"""
Error types raised by the game core.

Every error carries a user-facing message. The Socket.IO layer reports it to
the originating connection only; none of these are raised after a room has
started to change.
"""


class GameError(Exception):
    """Base class for errors reported back to a single connection."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(GameError):
    """Malformed display name, room code or number."""


class StateError(GameError):
    """Action not allowed in the room's current state."""


class NotFoundError(GameError):
    """Room or player record is missing."""


class RateLimitError(GameError):
    """Too many actions from one connection inside the window."""
