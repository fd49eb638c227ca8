"""Supabase access for teams, players, matches and goals.

Reads return validated records from :mod:`copa.models`; writes take the
validated payloads from :mod:`copa.payloads` or lifecycle results. Every
PostgREST failure is re-raised as ``RuntimeError`` carrying the operation name
so callers only have one error type to surface.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, time
from typing import Any, Dict, List, Optional
import uuid

from postgrest.exceptions import APIError

from copa import lifecycle
from copa.data_sanitize import assert_jsonable, clean_jsonable
from copa.db_tables import GOALS, MATCHES, PLAYERS, TEAMS
from copa.errors import DuplicateTeamError, TeamInUseError, ValidationError
from copa.models import GoalEvent, Match, MatchStatus, Player, Snapshot, Team
from copa.payloads import build_match_payload, build_player_payload, build_team_payload
from copa.scorers import player_goal_totals
from copa.utils.supa import (
    UNIQUE_VIOLATION,
    clear_data_cache,
    first_row,
    format_api_error,
    get_client,
    notify_error,
    rows_of,
)

TEAM_FIELDS = "id,name,logo_url"
PLAYER_FIELDS = "id,name,jersey_number,position,team_id,photo_url,goals"
MATCH_FIELDS = "id,home_team_id,away_team_id,match_date,location,stage,status,home_score,away_score"
GOAL_FIELDS = "id,player_id,match_id,count"


def _client():
    client = get_client()
    if client is None:  # pragma: no cover - get_client raises on bad config
        raise RuntimeError("Supabase client not configured")
    return client


def _execute(context: str, query):
    try:
        return query.execute()
    except APIError as exc:
        message = format_api_error(context, exc)
        notify_error(message)
        raise RuntimeError(message) from exc


def _payload(data: Dict[str, Any]) -> Dict[str, Any]:
    return assert_jsonable(clean_jsonable(data))


# ---------- reads ----------
def list_teams() -> List[Team]:
    """Return all teams ordered by name."""
    res = _execute("list_teams", _client().table(TEAMS).select(TEAM_FIELDS).order("name"))
    return [Team.from_row(r) for r in rows_of(res)]


def list_players(team_id: Optional[str] = None) -> List[Player]:
    query = _client().table(PLAYERS).select(PLAYER_FIELDS)
    if team_id:
        query = query.eq("team_id", team_id)
    res = _execute("list_players", query.order("name"))
    return [Player.from_row(r) for r in rows_of(res)]


def list_matches(status: MatchStatus | str | None = None) -> List[Match]:
    """Return matches by kickoff, optionally only those in ``status``."""
    query = _client().table(MATCHES).select(MATCH_FIELDS)
    if status is not None:
        query = query.eq("status", MatchStatus(status).value)
    res = _execute("list_matches", query.order("match_date"))
    return [Match.from_row(r) for r in rows_of(res)]


def list_goals(match_id: Optional[str] = None) -> List[GoalEvent]:
    query = _client().table(GOALS).select(GOAL_FIELDS)
    if match_id:
        query = query.eq("match_id", match_id)
    res = _execute("list_goals", query)
    return [GoalEvent.from_row(r) for r in rows_of(res)]


def load_snapshot() -> Snapshot:
    """Fetch all four tables; the default loader of the read model."""
    return Snapshot(
        teams=tuple(list_teams()),
        players=tuple(list_players()),
        matches=tuple(list_matches()),
        goals=tuple(list_goals()),
    )


# ---------- teams ----------
def create_team(name: str, logo_url: Optional[str] = None) -> Team:
    payload = build_team_payload(name=name, logo_url=logo_url)
    payload["id"] = str(uuid.uuid4())
    try:
        res = _client().table(TEAMS).insert(_payload(payload)).execute()
    except APIError as exc:
        if getattr(exc, "code", None) == UNIQUE_VIOLATION:
            raise DuplicateTeamError(f"A team named {payload['name']!r} already exists") from exc
        message = format_api_error("create_team", exc)
        notify_error(message)
        raise RuntimeError(message) from exc
    clear_data_cache()
    return Team.from_row(first_row(res) or payload)


def rename_team(team_id: str, name: str) -> Team:
    payload = build_team_payload(name=name)
    try:
        res = (
            _client()
            .table(TEAMS)
            .update({"name": payload["name"]})
            .eq("id", team_id)
            .execute()
        )
    except APIError as exc:
        if getattr(exc, "code", None) == UNIQUE_VIOLATION:
            raise DuplicateTeamError(f"A team named {payload['name']!r} already exists") from exc
        message = format_api_error("rename_team", exc)
        notify_error(message)
        raise RuntimeError(message) from exc
    row = first_row(res)
    if not row:
        raise RuntimeError(f"Team {team_id} not found for rename")
    clear_data_cache()
    return Team.from_row(row)


def _team_has_matches(client, team_id: str) -> bool:
    for column in ("home_team_id", "away_team_id"):
        res = _execute(
            "delete_team",
            client.table(MATCHES).select("id").eq(column, team_id).limit(1),
        )
        if rows_of(res):
            return True
    return False


def delete_team(team_id: str) -> None:
    """Delete a team that no match references."""
    if not team_id:
        raise ValueError("team_id is required")
    client = _client()
    if _team_has_matches(client, team_id):
        raise TeamInUseError(f"Team {team_id} is referenced by matches and cannot be deleted")
    _execute("delete_team", client.table(TEAMS).delete().eq("id", team_id))
    clear_data_cache()


# ---------- players ----------
def create_player(
    *,
    name: str,
    jersey_number: Any,
    position: str,
    team_id: str,
    photo_url: Optional[str] = None,
) -> Player:
    payload = build_player_payload(
        name=name,
        jersey_number=jersey_number,
        position=position,
        team_id=team_id,
        photo_url=photo_url,
    )
    client = _client()
    taken = _execute(
        "create_player",
        client.table(PLAYERS)
        .select("id")
        .eq("team_id", payload["team_id"])
        .eq("jersey_number", payload["jersey_number"])
        .limit(1),
    )
    if rows_of(taken):
        raise ValidationError(
            f"Jersey number {payload['jersey_number']} is already used in this team"
        )
    payload["id"] = str(uuid.uuid4())
    res = _execute("create_player", client.table(PLAYERS).insert(_payload(payload)))
    clear_data_cache()
    return Player.from_row(first_row(res) or payload)


def sync_player_goals(snapshot: Optional[Snapshot] = None) -> int:
    """Write the derived goal totals into ``players.goals``.

    Only players whose stored counter differs are updated. Returns the number
    of rows written.
    """
    snapshot = snapshot or load_snapshot()
    totals = player_goal_totals(snapshot.matches, snapshot.goals)
    client = _client()
    changed = 0
    for p in snapshot.players:
        derived = totals.get(p.id, 0)
        if p.goals == derived:
            continue
        _execute(
            "sync_player_goals",
            client.table(PLAYERS).update({"goals": derived}).eq("id", p.id),
        )
        changed += 1
    if changed:
        clear_data_cache()
    return changed


# ---------- matches ----------
def create_match(
    *,
    home_team_id: str,
    away_team_id: str,
    match_date: date,
    match_time: str | time,
    stage: str,
    location: Optional[str] = None,
) -> Match:
    payload = build_match_payload(
        home_team_id=home_team_id,
        away_team_id=away_team_id,
        match_date=match_date,
        match_time=match_time,
        stage=stage,
        location=location,
    )
    payload["id"] = str(uuid.uuid4())
    res = _execute("create_match", _client().table(MATCHES).insert(_payload(payload)))
    clear_data_cache()
    return Match.from_row(first_row(res) or payload)


def save_match(match: Match) -> Match:
    """Persist a lifecycle result (status, score and fixture fields)."""
    row = match.to_row()
    match_id = row.pop("id")
    res = _execute(
        "save_match",
        _client().table(MATCHES).update(_payload(row)).eq("id", match_id),
    )
    clear_data_cache()
    stored = first_row(res)
    return Match.from_row(stored) if stored else match


def change_status(
    match: Match, target: MatchStatus | str, *, is_admin: bool = False, **kwargs
) -> Match:
    """Run a lifecycle transition and persist it; nothing is written if it fails.

    Entering or leaving ``finished`` changes which goal events count, so the
    ``players.goals`` counters are re-synced afterwards.
    """
    updated = lifecycle.transition(match, target, is_admin=is_admin, **kwargs)
    saved = save_match(updated)
    if (match.status is MatchStatus.FINISHED) != (updated.status is MatchStatus.FINISHED):
        sync_player_goals()
    return saved


# ---------- goals ----------
def insert_goal(event: GoalEvent) -> GoalEvent:
    res = _execute("insert_goal", _client().table(GOALS).insert(_payload(event.to_row())))
    clear_data_cache()
    stored = first_row(res)
    return GoalEvent.from_row(stored) if stored else event


def delete_goals(match_id: str) -> None:
    if not match_id:
        raise ValueError("match_id is required")
    _execute("delete_goals", _client().table(GOALS).delete().eq("match_id", match_id))
    clear_data_cache()


def _check_scorer(client, match: Match, side: str, player_id: str) -> None:
    res = _execute(
        "record_goal",
        client.table(PLAYERS).select("id,team_id").eq("id", player_id).limit(1),
    )
    row = first_row(res)
    if not row:
        raise ValidationError(f"Unknown player {player_id}")
    scoring_team = match.home_team_id if side == lifecycle.HOME else match.away_team_id
    if row.get("team_id") != scoring_team:
        raise ValidationError(
            f"Player {player_id} does not play for the {side} team; record own goals without a scorer"
        )


def record_goal(match: Match, side: str, player_id: Optional[str] = None) -> Match:
    """Admin action: add a goal to a live match and store the scorer's event.

    The goal event is written before the score. If saving the score fails the
    event is deleted again, so stored scores and events never drift apart.
    """
    updated, event = lifecycle.record_goal(match, side, player_id)
    if event is None:
        return save_match(updated)
    client = _client()
    _check_scorer(client, match, side, event.player_id)
    event = insert_goal(replace(event, id=str(uuid.uuid4())))
    try:
        return save_match(updated)
    except RuntimeError:
        _execute("record_goal", client.table(GOALS).delete().eq("id", event.id))
        clear_data_cache()
        raise


__all__ = [
    "list_teams",
    "list_players",
    "list_matches",
    "list_goals",
    "load_snapshot",
    "create_team",
    "rename_team",
    "delete_team",
    "create_player",
    "sync_player_goals",
    "create_match",
    "save_match",
    "change_status",
    "insert_goal",
    "delete_goals",
    "record_goal",
]
