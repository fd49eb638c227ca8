"""Top-scorer table and derived goal totals."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from copa.errors import DanglingReferenceError
from copa.models import GoalEvent, Match, Player, Team


@dataclass(frozen=True)
class ScorerEntry:
    player_id: str
    player_name: str
    team_id: str
    team_name: str
    goals: int
    matches_played: int
    rank: int


@dataclass(frozen=True)
class ScorerSummary:
    total_goals: int
    leader: Optional[str]
    goals_per_match: float


def player_goal_totals(matches: Iterable[Match], goals: Iterable[GoalEvent]) -> Dict[str, int]:
    """Sum goal events per player over finished matches.

    Events of a match that is not finished (live, reopened, postponed...) are
    ignored, so totals follow the match status without incremental patching.
    A goal event for a match missing from ``matches`` raises
    :class:`DanglingReferenceError`.
    """
    by_id = {m.id: m for m in matches}
    totals: Counter = Counter()
    for g in goals:
        match = by_id.get(g.match_id)
        if match is None:
            raise DanglingReferenceError(f"goal for player {g.player_id} references unknown match {g.match_id}")
        if match.is_finished:
            totals[g.player_id] += g.count
    return dict(totals)


def with_goal_totals(
    players: Iterable[Player], matches: Iterable[Match], goals: Iterable[GoalEvent]
) -> Tuple[Player, ...]:
    """Return ``players`` with ``goals`` replaced by the derived totals."""
    totals = player_goal_totals(matches, goals)
    return tuple(replace(p, goals=totals.get(p.id, 0)) for p in players)


def _team_match_counts(matches: Sequence[Match]) -> Counter:
    counts: Counter = Counter()
    for m in matches:
        if m.is_finished:
            counts[m.home_team_id] += 1
            counts[m.away_team_id] += 1
    return counts


def compute_top_scorers(
    matches: Iterable[Match],
    players: Iterable[Player],
    goals: Optional[Iterable[GoalEvent]] = None,
    teams: Optional[Iterable[Team]] = None,
) -> Tuple[ScorerEntry, ...]:
    """Rank players with at least one goal.

    Goals come from ``goals`` (events in finished matches) or, when no events
    are given, from each player's stored counter. ``matches_played`` is the
    number of finished matches of the player's team. Ties on goals are broken
    by player name then id; ranks are positional and never shared.
    """
    matches = list(matches)
    by_player: Dict[str, Player] = {p.id: p for p in players}

    if goals is None:
        totals = {pid: p.goals for pid, p in by_player.items()}
    else:
        goals = list(goals)
        unknown = sorted({g.player_id for g in goals if g.player_id not in by_player})
        if unknown:
            raise DanglingReferenceError(f"goals reference unknown player(s): {', '.join(unknown)}")
        totals = player_goal_totals(matches, goals)

    team_names: Optional[Dict[str, str]] = None
    if teams is not None:
        team_names = {t.id: t.name for t in teams}

    scorers = [by_player[pid] for pid, n in totals.items() if n > 0]
    if team_names is not None:
        orphans = sorted({p.team_id for p in scorers if p.team_id not in team_names})
        if orphans:
            raise DanglingReferenceError(f"scorers reference unknown team(s): {', '.join(orphans)}")

    played = _team_match_counts(matches)
    scorers.sort(key=lambda p: (-totals[p.id], p.name, p.id))

    table: List[ScorerEntry] = []
    for rank, p in enumerate(scorers, start=1):
        table.append(
            ScorerEntry(
                player_id=p.id,
                player_name=p.name,
                team_id=p.team_id,
                team_name=team_names[p.team_id] if team_names is not None else "",
                goals=totals[p.id],
                matches_played=played.get(p.team_id, 0),
                rank=rank,
            )
        )
    return tuple(table)


def scorer_summary(entries: Sequence[ScorerEntry]) -> ScorerSummary:
    """Total goals, the leader and goals per match over ``entries``."""
    if not entries:
        return ScorerSummary(total_goals=0, leader=None, goals_per_match=0.0)
    total = sum(e.goals for e in entries)
    matches = sum(e.matches_played for e in entries)
    per_match = round(total / matches, 1) if matches else 0.0
    return ScorerSummary(total_goals=total, leader=entries[0].player_name, goals_per_match=per_match)


SCORER_COLUMNS = ["Rank", "Player", "Team", "Goals", "Matches"]


def scorers_frame(entries: Sequence[ScorerEntry]) -> pd.DataFrame:
    if not entries:
        return pd.DataFrame(columns=SCORER_COLUMNS)
    return pd.DataFrame(
        [
            {
                "Rank": e.rank,
                "Player": e.player_name,
                "Team": e.team_name,
                "Goals": e.goals,
                "Matches": e.matches_played,
            }
            for e in entries
        ],
        columns=SCORER_COLUMNS,
    )


__all__ = [
    "ScorerEntry",
    "ScorerSummary",
    "SCORER_COLUMNS",
    "player_goal_totals",
    "with_goal_totals",
    "compute_top_scorers",
    "scorer_summary",
    "scorers_frame",
]
