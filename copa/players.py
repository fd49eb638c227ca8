"""Player listing with team names and free-text search."""

from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

from copa.errors import DanglingReferenceError
from copa.models import Player, Team


def with_team_names(players: Iterable[Player], teams: Iterable[Team]) -> List[Tuple[Player, str]]:
    """Pair each player with the name of their team, keeping the input order."""
    names = {t.id: t.name for t in teams}
    out: List[Tuple[Player, str]] = []
    for p in players:
        if p.team_id not in names:
            raise DanglingReferenceError(f"player {p.id} references unknown team {p.team_id}")
        out.append((p, names[p.team_id]))
    return out


def search_players(
    players: Iterable[Player], teams: Iterable[Team], term: Optional[str] = None
) -> List[Tuple[Player, str]]:
    """Players whose name, team name or position contains ``term``.

    Matching is case-insensitive; a blank term returns everyone.
    """
    listing = with_team_names(players, teams)
    needle = (term or "").strip().casefold()
    if not needle:
        return listing
    return [
        (p, team_name)
        for p, team_name in listing
        if needle in p.name.casefold()
        or needle in team_name.casefold()
        or needle in p.position.value.casefold()
    ]


__all__ = ["with_team_names", "search_players"]
