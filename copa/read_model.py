"""Cached standings / scorers that are rebuilt whenever the data changes.

The change feed calls :meth:`ReadModel.invalidate_and_recompute` for every
insert, update or delete. Each call takes the next version number before it
loads, and a result is applied only if no newer version has been applied in
the meantime, so a slow refresh finishing late never overwrites a fresher one.
"""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional, Tuple, Union

from copa.models import Snapshot
from copa.scorers import ScorerEntry, ScorerSummary, compute_top_scorers, scorer_summary
from copa.standings import TeamStanding, compute_standings

Loader = Callable[[], Union[Snapshot, Awaitable[Snapshot]]]
Listener = Callable[["ReadModelState"], None]


@dataclass(frozen=True)
class ReadModelState:
    version: int
    standings: Tuple[TeamStanding, ...]
    scorers: Tuple[ScorerEntry, ...]
    summary: ScorerSummary
    refreshed_at: datetime


def build_state(snapshot: Snapshot, version: int, all_teams: bool = True) -> ReadModelState:
    """Compute every derived view from one snapshot; raises before returning anything partial."""
    standings = compute_standings(snapshot.matches, snapshot.teams, all_teams=all_teams)
    scorers = compute_top_scorers(
        snapshot.matches, snapshot.players, goals=snapshot.goals, teams=snapshot.teams
    )
    return ReadModelState(
        version=version,
        standings=standings,
        scorers=scorers,
        summary=scorer_summary(scorers),
        refreshed_at=datetime.now(timezone.utc),
    )


class ReadModel:
    def __init__(self, loader: Loader, *, all_teams: bool = True) -> None:
        self._loader = loader
        self._all_teams = all_teams
        self._requested = 0
        self._applied = 0
        self._state: Optional[ReadModelState] = None
        self._listeners: List[Listener] = []

    @property
    def state(self) -> Optional[ReadModelState]:
        """Last applied state, ``None`` until the first refresh succeeds."""
        return self._state

    @property
    def version(self) -> int:
        return self._applied

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def _load(self) -> Snapshot:
        if inspect.iscoroutinefunction(self._loader):
            return await self._loader()
        result = await asyncio.to_thread(self._loader)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def invalidate_and_recompute(self) -> Optional[ReadModelState]:
        """Reload and recompute; return the applied state or ``None`` if superseded.

        Loader and validation errors propagate; the previous state is kept.
        """
        self._requested += 1
        version = self._requested
        snapshot = await self._load()
        state = build_state(snapshot, version, all_teams=self._all_teams)
        if version <= self._applied:
            print(f"read model: dropped stale refresh v{version} (applied v{self._applied})")
            return None
        self._applied = version
        self._state = state
        for listener in list(self._listeners):
            listener(state)
        return state


__all__ = ["ReadModel", "ReadModelState", "build_state"]
