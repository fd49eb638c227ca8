"""Domain errors raised by the lifecycle, aggregators and boundary validation."""

from __future__ import annotations


class CopaError(Exception):
    """Base class for tournament domain errors."""


class InvalidScoreError(CopaError):
    """Raised when a score is missing or negative where one is required."""


class InvalidTransitionError(CopaError):
    """Raised when a match cannot move from its current status to the target."""


class ReopenDeniedError(InvalidTransitionError, PermissionError):
    """Raised when someone without admin rights tries to reopen a finished match."""


class DanglingReferenceError(CopaError):
    """Raised when a snapshot references a team, player or match it does not contain."""


class ValidationError(CopaError, ValueError):
    """Raised when a Supabase row or a form payload fails validation."""


class DuplicateTeamError(CopaError):
    """Raised when a team name is already taken."""


class TeamInUseError(CopaError):
    """Raised when deleting a team that is still referenced by a match."""


__all__ = [
    "CopaError",
    "InvalidScoreError",
    "InvalidTransitionError",
    "ReopenDeniedError",
    "DanglingReferenceError",
    "ValidationError",
    "DuplicateTeamError",
    "TeamInUseError",
]
