"""
Engine errors.

Every rejection is a local validation failure: nothing is mutated before
one of these is raised, and the caller is expected to resubmit.
"""

from __future__ import annotations


class EggBattleError(Exception):
    """Base class for all engine rejections."""
    code = "ENGINE_ERROR"

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidParticipant(EggBattleError):
    """Unknown or dead participant referenced as actor or target."""
    code = "INVALID_PARTICIPANT"


class MoveNotAllowed(EggBattleError):
    """The limited-use guard rejected the move."""
    code = "MOVE_NOT_ALLOWED"


class MalformedSnapshot(EggBattleError):
    """A replica received a snapshot outside the documented shape."""
    code = "MALFORMED_SNAPSHOT"


class RoundClosed(EggBattleError):
    """Commit against a round that already resolved, or a finished match."""
    code = "ROUND_CLOSED"


class MatchNotFound(EggBattleError):
    """No live session/match with the requested id."""
    code = "MATCH_NOT_FOUND"
