"""Match lifecycle: which status moves are allowed and what they do to the score.

::

    scheduled -> live -> finished
        |         |   (reopen, admin only: finished -> live)
        +---------+--> postponed -> scheduled (reschedule)
        +---------+--> cancelled

Every operation returns a new :class:`~copa.models.Match`; the input is never
touched, so a rejected transition leaves the caller's match exactly as it was.
Goals only count for the scorer table while their match is ``finished``, which
means leaving ``finished`` (reopen) drops them from the totals without any
bookkeeping here.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from copa.errors import (
    InvalidScoreError,
    InvalidTransitionError,
    ReopenDeniedError,
    ValidationError,
)
from copa.models import GoalEvent, Match, MatchStatus, Stage

S = MatchStatus

# target -> statuses it may be entered from (reopen handled separately)
_ALLOWED_FROM: Dict[MatchStatus, frozenset] = {
    S.LIVE: frozenset({S.SCHEDULED}),
    S.FINISHED: frozenset({S.LIVE, S.SCHEDULED}),
    S.POSTPONED: frozenset({S.SCHEDULED, S.LIVE}),
    S.CANCELLED: frozenset({S.SCHEDULED, S.LIVE}),
    S.SCHEDULED: frozenset({S.POSTPONED}),
}

HOME = "home"
AWAY = "away"


def can_transition(current: MatchStatus, target: MatchStatus, *, is_admin: bool = False) -> bool:
    if current is S.FINISHED and target is S.LIVE:
        return is_admin
    return current in _ALLOWED_FROM.get(target, frozenset())


def _require(match: Match, target: MatchStatus) -> None:
    if match.status not in _ALLOWED_FROM[target]:
        raise InvalidTransitionError(
            f"match {match.id}: cannot move from {match.status.value} to {target.value}"
        )


def _check_score(value: Optional[int], side: str, match_id: str) -> int:
    if value is None:
        raise InvalidScoreError(f"match {match_id}: {side} score is missing")
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidScoreError(f"match {match_id}: {side} score must be an integer, got {value!r}")
    if value < 0:
        raise InvalidScoreError(f"match {match_id}: {side} score cannot be negative ({value})")
    return value


def start(match: Match) -> Match:
    """Kick off a scheduled match; the running score starts at 0-0."""
    _require(match, S.LIVE)
    return replace(match, status=S.LIVE, home_score=0, away_score=0)


def set_score(match: Match, home_score: int, away_score: int) -> Match:
    """Correct the running score of a live match."""
    if match.status is not S.LIVE:
        raise InvalidTransitionError(
            f"match {match.id}: score can only change while live (status {match.status.value})"
        )
    return replace(
        match,
        home_score=_check_score(home_score, HOME, match.id),
        away_score=_check_score(away_score, AWAY, match.id),
    )


def record_goal(
    match: Match, side: str, player_id: Optional[str] = None
) -> Tuple[Match, Optional[GoalEvent]]:
    """Add one goal for ``side`` ("home" or "away") to a live match.

    Returns the updated match and, when a scorer is named, the goal event to
    persist. Own goals and unattributed goals pass ``player_id=None``.
    """
    if match.status is not S.LIVE:
        raise InvalidTransitionError(
            f"match {match.id}: goals can only be recorded while live (status {match.status.value})"
        )
    if side not in (HOME, AWAY):
        raise ValueError(f"side must be {HOME!r} or {AWAY!r}, got {side!r}")
    home = (match.home_score or 0) + (1 if side == HOME else 0)
    away = (match.away_score or 0) + (1 if side == AWAY else 0)
    updated = replace(match, home_score=home, away_score=away)
    event = GoalEvent(player_id=player_id, match_id=match.id) if player_id else None
    return updated, event


def finish(
    match: Match, home_score: Optional[int] = None, away_score: Optional[int] = None
) -> Match:
    """Close a match and freeze its score.

    Explicit scores override the running ones, which is how results are
    back-filled straight from ``scheduled``.
    """
    _require(match, S.FINISHED)
    home = match.home_score if home_score is None else home_score
    away = match.away_score if away_score is None else away_score
    return replace(
        match,
        status=S.FINISHED,
        home_score=_check_score(home, HOME, match.id),
        away_score=_check_score(away, AWAY, match.id),
    )


def postpone(match: Match) -> Match:
    _require(match, S.POSTPONED)
    return replace(match, status=S.POSTPONED, home_score=None, away_score=None)


def cancel(match: Match) -> Match:
    _require(match, S.CANCELLED)
    return replace(match, status=S.CANCELLED, home_score=None, away_score=None)


def reschedule(match: Match, scheduled_at: datetime, venue: Optional[str] = None) -> Match:
    """Put a postponed match back on the calendar."""
    _require(match, S.SCHEDULED)
    return replace(
        match,
        status=S.SCHEDULED,
        scheduled_at=scheduled_at,
        venue=match.venue if venue is None else venue,
    )


_FIXTURE_FIELDS = frozenset({"home_team_id", "away_team_id", "scheduled_at", "venue", "stage"})


def edit_fixture(match: Match, **changes) -> Match:
    """Change date, venue, teams or stage of a match that has not started."""
    if match.status is not S.SCHEDULED:
        raise InvalidTransitionError(
            f"match {match.id}: only scheduled matches can be edited (status {match.status.value})"
        )
    unknown = set(changes) - _FIXTURE_FIELDS
    if unknown:
        raise ValueError(f"cannot edit {', '.join(sorted(unknown))}")
    if "stage" in changes and not isinstance(changes["stage"], Stage):
        try:
            changes["stage"] = Stage(changes["stage"])
        except ValueError:
            raise ValidationError(f"unknown stage {changes['stage']!r}") from None
    return replace(match, **changes)


def reopen(match: Match, is_admin: bool) -> Match:
    """Administrative correction: move a finished match back to live.

    The score stays as the new running score; the match's goals drop out of
    the scorer totals until it is finished again. Without admin rights this
    raises :class:`~copa.errors.ReopenDeniedError`, which is both an
    ``InvalidTransitionError`` and a ``PermissionError``.
    """
    if not is_admin:
        raise ReopenDeniedError(f"match {match.id}: only administrators can reopen a finished match")
    if match.status is not S.FINISHED:
        raise InvalidTransitionError(
            f"match {match.id}: only finished matches can be reopened (status {match.status.value})"
        )
    return replace(match, status=S.LIVE)


def transition(match: Match, target: MatchStatus | str, *, is_admin: bool = False, **kwargs) -> Match:
    """Dispatch a status change by name; extra keyword arguments go to the operation."""
    target = MatchStatus(target)
    if match.status is S.FINISHED and target is S.LIVE:
        return reopen(match, is_admin)
    if target is S.LIVE:
        return start(match)
    if target is S.FINISHED:
        return finish(match, **kwargs)
    if target is S.POSTPONED:
        return postpone(match)
    if target is S.CANCELLED:
        return cancel(match)
    if "scheduled_at" not in kwargs:
        raise InvalidTransitionError(f"match {match.id}: rescheduling needs a new scheduled_at")
    return reschedule(match, **kwargs)


def _kickoff_key(m: Match):
    # unscheduled matches sort last, id keeps the order stable
    return (m.scheduled_at is None, m.scheduled_at or datetime.min, m.id)


def group_by_status(matches: Iterable[Match]) -> Dict[str, List[Match]]:
    """Split matches into the ``upcoming`` / ``live`` / ``finished`` listings.

    Upcoming and live are ordered by kickoff, finished most recent first.
    Postponed and cancelled matches are listed under their own keys.
    """
    groups: Dict[str, List[Match]] = {
        "upcoming": [],
        "live": [],
        "finished": [],
        "postponed": [],
        "cancelled": [],
    }
    key_for = {
        S.SCHEDULED: "upcoming",
        S.LIVE: "live",
        S.FINISHED: "finished",
        S.POSTPONED: "postponed",
        S.CANCELLED: "cancelled",
    }
    for m in matches:
        groups[key_for[m.status]].append(m)
    for key, items in groups.items():
        items.sort(key=_kickoff_key)
    finished = groups["finished"]
    dated = [m for m in finished if m.scheduled_at is not None]
    undated = [m for m in finished if m.scheduled_at is None]
    groups["finished"] = sorted(dated, key=lambda m: (m.scheduled_at, m.id), reverse=True) + undated
    return groups


__all__ = [
    "HOME",
    "AWAY",
    "can_transition",
    "start",
    "set_score",
    "record_goal",
    "finish",
    "postpone",
    "cancel",
    "reschedule",
    "edit_fixture",
    "reopen",
    "transition",
    "group_by_status",
]
