"""Typed records for the tournament tables.

Supabase returns plain dicts; everything entering the lifecycle or the
aggregators goes through one of the ``from_row`` constructors below so that a
malformed row fails here, with the table and column in the message, instead of
deep inside a computation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from copa.errors import ValidationError
from copa.time_utils import parse_timestamp, utc_iso


class MatchStatus(str, Enum):
    SCHEDULED = "scheduled"
    LIVE = "live"
    FINISHED = "finished"
    POSTPONED = "postponed"
    CANCELLED = "cancelled"


class Stage(str, Enum):
    GROUP_STAGE = "group_stage"
    SEMI_FINALS = "semi_finals"
    FINAL = "final"


class Position(str, Enum):
    GOALKEEPER = "goalkeeper"
    DEFENDER = "defender"
    MIDFIELDER = "midfielder"
    FORWARD = "forward"


SCORED_STATUSES = frozenset({MatchStatus.LIVE, MatchStatus.FINISHED})

# older rows were written before "scheduled" replaced "upcoming"
_STATUS_ALIASES = {"upcoming": MatchStatus.SCHEDULED}


def _text(row: Dict[str, Any], key: str, table: str, *, required: bool = True) -> Optional[str]:
    value = row.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"{table}.{key} is required")
        return None
    return str(value).strip()


def _int(value: Any, what: str) -> Optional[int]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{what} must be an integer, got {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{what} must be an integer, got {value!r}") from None
    if number != value and not isinstance(value, str):
        raise ValidationError(f"{what} must be an integer, got {value!r}")
    return number


def _enum(cls, value: Any, what: str, aliases: Optional[Dict[str, Any]] = None):
    raw = str(value or "").strip().lower()
    if aliases and raw in aliases:
        return aliases[raw]
    try:
        return cls(raw)
    except ValueError:
        allowed = "|".join(m.value for m in cls)
        raise ValidationError(f"{what} must be one of {allowed}, got {value!r}") from None


@dataclass(frozen=True)
class Team:
    id: str
    name: str
    logo_url: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Team":
        return cls(
            id=_text(row, "id", "teams"),
            name=_text(row, "name", "teams"),
            logo_url=_text(row, "logo_url", "teams", required=False),
        )


@dataclass(frozen=True)
class Player:
    id: str
    name: str
    jersey_number: int
    position: Position
    team_id: str
    photo_url: Optional[str] = None
    goals: int = 0

    def __post_init__(self) -> None:
        if not 1 <= self.jersey_number <= 99:
            raise ValidationError(
                f"players.jersey_number must be between 1 and 99, got {self.jersey_number}"
            )
        if self.goals < 0:
            raise ValidationError(f"players.goals cannot be negative, got {self.goals}")

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Player":
        jersey = _int(row.get("jersey_number"), "players.jersey_number")
        if jersey is None:
            raise ValidationError("players.jersey_number is required")
        return cls(
            id=_text(row, "id", "players"),
            name=_text(row, "name", "players"),
            jersey_number=jersey,
            position=_enum(Position, row.get("position"), "players.position"),
            team_id=_text(row, "team_id", "players"),
            photo_url=_text(row, "photo_url", "players", required=False),
            goals=_int(row.get("goals"), "players.goals") or 0,
        )


@dataclass(frozen=True)
class Match:
    id: str
    home_team_id: str
    away_team_id: str
    scheduled_at: Optional[datetime] = None
    stage: Stage = Stage.GROUP_STAGE
    status: MatchStatus = MatchStatus.SCHEDULED
    venue: Optional[str] = None
    home_score: Optional[int] = None
    away_score: Optional[int] = None

    def __post_init__(self) -> None:
        if self.home_team_id == self.away_team_id:
            raise ValidationError(f"match {self.id}: home and away team must differ")

    @property
    def team_ids(self) -> Tuple[str, str]:
        return (self.home_team_id, self.away_team_id)

    @property
    def is_finished(self) -> bool:
        return self.status is MatchStatus.FINISHED

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Match":
        status = _enum(MatchStatus, row.get("status") or "scheduled", "matches.status", _STATUS_ALIASES)
        kickoff = row.get("match_date", row.get("scheduled_at"))
        try:
            scheduled_at = parse_timestamp(kickoff) if kickoff else None
        except ValueError:
            raise ValidationError(f"matches.match_date is not a timestamp: {kickoff!r}") from None
        home_score = _int(row.get("home_score"), "matches.home_score")
        away_score = _int(row.get("away_score"), "matches.away_score")
        if status not in SCORED_STATUSES:
            home_score = away_score = None
        venue = _text(row, "location", "matches", required=False)
        if venue is None:
            venue = _text(row, "venue", "matches", required=False)
        return cls(
            id=_text(row, "id", "matches"),
            home_team_id=_text(row, "home_team_id", "matches"),
            away_team_id=_text(row, "away_team_id", "matches"),
            scheduled_at=scheduled_at,
            stage=_enum(Stage, row.get("stage") or "group_stage", "matches.stage"),
            status=status,
            venue=venue,
            home_score=home_score,
            away_score=away_score,
        )

    def to_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "home_team_id": self.home_team_id,
            "away_team_id": self.away_team_id,
            "match_date": utc_iso(self.scheduled_at),
            "location": self.venue,
            "stage": self.stage.value,
            "status": self.status.value,
            "home_score": self.home_score,
            "away_score": self.away_score,
        }


@dataclass(frozen=True)
class GoalEvent:
    player_id: str
    match_id: str
    count: int = 1
    id: Optional[str] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if self.count < 1:
            raise ValidationError(f"goals.count must be at least 1, got {self.count}")

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "GoalEvent":
        count = _int(row.get("count"), "goals.count")
        return cls(
            player_id=_text(row, "player_id", "goals"),
            match_id=_text(row, "match_id", "goals"),
            count=1 if count is None else count,
            id=_text(row, "id", "goals", required=False),
        )

    def to_row(self) -> Dict[str, Any]:
        row: Dict[str, Any] = {
            "player_id": self.player_id,
            "match_id": self.match_id,
            "count": self.count,
        }
        if self.id:
            row["id"] = self.id
        return row


@dataclass(frozen=True)
class Snapshot:
    """Everything the aggregators need, fetched at one point in time."""

    teams: Tuple[Team, ...] = ()
    players: Tuple[Player, ...] = ()
    matches: Tuple[Match, ...] = ()
    goals: Tuple[GoalEvent, ...] = ()


__all__ = [
    "MatchStatus",
    "Stage",
    "Position",
    "SCORED_STATUSES",
    "Team",
    "Player",
    "Match",
    "GoalEvent",
    "Snapshot",
]
