"""League table computed from finished matches."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from copa.config import Settings, load_settings
from copa.errors import DanglingReferenceError, InvalidScoreError
from copa.models import Match, Team

WIN_POINTS = 3
DRAW_POINTS = 1

QUALIFIED = "qualified"
PLAYOFF = "playoff"
ELIMINATED = "eliminated"
NEUTRAL = "neutral"


@dataclass(frozen=True)
class TeamStanding:
    team_id: str
    team_name: str
    played: int
    wins: int
    draws: int
    losses: int
    goals_for: int
    goals_against: int
    goal_difference: int
    points: int
    rank: int


class _Record:
    __slots__ = ("played", "wins", "draws", "losses", "goals_for", "goals_against")

    def __init__(self) -> None:
        self.played = self.wins = self.draws = self.losses = 0
        self.goals_for = self.goals_against = 0

    def add(self, scored: int, conceded: int) -> None:
        self.played += 1
        self.goals_for += scored
        self.goals_against += conceded
        if scored > conceded:
            self.wins += 1
        elif scored == conceded:
            self.draws += 1
        else:
            self.losses += 1

    @property
    def points(self) -> int:
        return WIN_POINTS * self.wins + DRAW_POINTS * self.draws


def _finished_scores(match: Match) -> Tuple[int, int]:
    home, away = match.home_score, match.away_score
    if home is None or away is None or home < 0 or away < 0:
        raise InvalidScoreError(
            f"finished match {match.id} has an invalid score ({home!r}-{away!r})"
        )
    return home, away


def compute_standings(
    matches: Iterable[Match], teams: Iterable[Team], all_teams: bool = False
) -> Tuple[TeamStanding, ...]:
    """Rank teams by points, goal difference, goals scored, then name.

    Only ``finished`` matches count. With ``all_teams`` every team in ``teams``
    gets a row, even without a finished match. Raises
    :class:`DanglingReferenceError` if a finished match names a team that is not
    in ``teams``.
    """
    by_id: Dict[str, Team] = {t.id: t for t in teams}
    finished = [m for m in matches if m.is_finished]

    missing = sorted({tid for m in finished for tid in m.team_ids if tid not in by_id})
    if missing:
        raise DanglingReferenceError(f"standings reference unknown team(s): {', '.join(missing)}")

    records: Dict[str, _Record] = {}
    if all_teams:
        for tid in by_id:
            records[tid] = _Record()
    for m in finished:
        home, away = _finished_scores(m)
        records.setdefault(m.home_team_id, _Record()).add(home, away)
        records.setdefault(m.away_team_id, _Record()).add(away, home)

    def sort_key(tid: str):
        r = records[tid]
        diff = r.goals_for - r.goals_against
        return (-r.points, -diff, -r.goals_for, by_id[tid].name, tid)

    table: List[TeamStanding] = []
    for rank, tid in enumerate(sorted(records, key=sort_key), start=1):
        r = records[tid]
        table.append(
            TeamStanding(
                team_id=tid,
                team_name=by_id[tid].name,
                played=r.played,
                wins=r.wins,
                draws=r.draws,
                losses=r.losses,
                goals_for=r.goals_for,
                goals_against=r.goals_against,
                goal_difference=r.goals_for - r.goals_against,
                points=r.points,
                rank=rank,
            )
        )
    return tuple(table)


def zone_for(rank: int, table_size: int, settings: Optional[Settings] = None) -> str:
    """Qualification band of a table position.

    Top slots qualify directly, the next ones go to the playoff, the last ones
    are eliminated. Qualification wins over elimination on short tables.
    """
    settings = settings or load_settings()
    if rank < 1 or rank > table_size:
        raise ValueError(f"rank {rank} outside table of {table_size}")
    if rank <= settings.qualified_slots:
        return QUALIFIED
    if rank <= settings.qualified_slots + settings.playoff_slots:
        return PLAYOFF
    if rank > table_size - settings.eliminated_slots:
        return ELIMINATED
    return NEUTRAL


STANDINGS_COLUMNS = ["Pos", "Team", "P", "W", "D", "L", "GF", "GA", "GD", "Pts", "Zone"]


def standings_frame(
    table: Sequence[TeamStanding], settings: Optional[Settings] = None
) -> pd.DataFrame:
    if not table:
        return pd.DataFrame(columns=STANDINGS_COLUMNS)
    settings = settings or load_settings()
    size = len(table)
    rows = [
        {
            "Pos": s.rank,
            "Team": s.team_name,
            "P": s.played,
            "W": s.wins,
            "D": s.draws,
            "L": s.losses,
            "GF": s.goals_for,
            "GA": s.goals_against,
            "GD": s.goal_difference,
            "Pts": s.points,
            "Zone": zone_for(s.rank, size, settings),
        }
        for s in table
    ]
    return pd.DataFrame(rows, columns=STANDINGS_COLUMNS)


__all__ = [
    "TeamStanding",
    "WIN_POINTS",
    "DRAW_POINTS",
    "QUALIFIED",
    "PLAYOFF",
    "ELIMINATED",
    "NEUTRAL",
    "STANDINGS_COLUMNS",
    "compute_standings",
    "zone_for",
    "standings_frame",
]
