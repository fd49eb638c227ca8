"""Validation and sanitizing of admin form input before it is written to Supabase."""

from __future__ import annotations

from datetime import date, time
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from copa.config import load_settings
from copa.errors import ValidationError
from copa.models import Position, Stage
from copa.time_utils import kickoff_utc, utc_iso


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _clean_url(value: Any, field: str) -> Optional[str]:
    url = _clean_text(value)
    if url is None:
        return None
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError(f"{field} must be an http(s) URL, got {url!r}")
    return url


def build_team_payload(*, name: Any, logo_url: Any = None) -> Dict[str, Any]:
    clean_name = _clean_text(name)
    if not clean_name:
        raise ValidationError("Team name is required")
    return {"name": clean_name, "logo_url": _clean_url(logo_url, "logo_url")}


def build_player_payload(
    *,
    name: Any,
    jersey_number: Any,
    position: Any,
    team_id: Any,
    photo_url: Any = None,
) -> Dict[str, Any]:
    """Compose a ``players`` row; jersey numbers run from 1 to 99."""

    clean_name = _clean_text(name)
    if not clean_name:
        raise ValidationError("Player name is required")

    if isinstance(jersey_number, bool):
        raise ValidationError("Jersey number must be a whole number")
    try:
        number = int(str(jersey_number).strip())
    except (TypeError, ValueError):
        raise ValidationError("Jersey number must be a whole number") from None
    if not 1 <= number <= 99:
        raise ValidationError("Jersey number must be between 1 and 99")

    try:
        pos = Position(str(position or "").strip().lower())
    except ValueError:
        raise ValidationError(
            f"Position must be one of {', '.join(p.value for p in Position)}"
        ) from None

    team = _clean_text(team_id)
    if not team:
        raise ValidationError("Select a team for the player")

    return {
        "name": clean_name,
        "jersey_number": number,
        "position": pos.value,
        "team_id": team,
        "photo_url": _clean_url(photo_url, "photo_url"),
    }


def build_match_payload(
    *,
    home_team_id: Any,
    away_team_id: Any,
    match_date: date,
    match_time: str | time,
    stage: Any,
    location: Any = None,
    tz_name: Optional[str] = None,
) -> Dict[str, Any]:
    """Compose a new ``matches`` row.

    The kickoff is entered as a local day plus ``HH:MM`` in the tournament
    time zone and stored as UTC. New matches always start ``scheduled``
    without a score.
    """

    home = _clean_text(home_team_id)
    away = _clean_text(away_team_id)
    if not home:
        raise ValidationError("Select the home team")
    if not away:
        raise ValidationError("Select the away team")
    if home == away:
        raise ValidationError("Home and away team must be different")

    if not isinstance(match_date, date):
        raise ValidationError("Match date is required")
    if not match_time:
        raise ValidationError("Kickoff time is required")
    try:
        kickoff = kickoff_utc(match_date, match_time, tz_name or load_settings().timezone)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc

    try:
        stage_value = Stage(str(stage or "").strip().lower()).value
    except ValueError:
        raise ValidationError(f"Stage must be one of {', '.join(s.value for s in Stage)}") from None

    return {
        "home_team_id": home,
        "away_team_id": away,
        "match_date": utc_iso(kickoff),
        "location": _clean_text(location),
        "stage": stage_value,
        "status": "scheduled",
        "home_score": None,
        "away_score": None,
    }


__all__ = ["build_team_payload", "build_player_payload", "build_match_payload"]
