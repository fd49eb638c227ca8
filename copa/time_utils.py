"""Kickoff time helpers: matches are stored in UTC and shown in the tournament zone."""

from __future__ import annotations

import re
from datetime import date, datetime, time
from typing import Optional

from zoneinfo import ZoneInfo

from copa.config import DEFAULT_TIMEZONE

_HHMM = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse an ISO timestamp (``Z`` suffix allowed); naive values are taken as UTC."""

    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=ZoneInfo("UTC"))
    return dt


def to_tz(dt_iso: str | datetime, tz: str = DEFAULT_TIMEZONE) -> datetime:
    """Convert a timestamp to the IANA zone ``tz``."""

    return parse_timestamp(dt_iso).astimezone(ZoneInfo(tz))


def parse_hhmm(text: str) -> time:
    m = _HHMM.match(text or "")
    if not m:
        raise ValueError(f"invalid time {text!r}, expected HH:MM")
    hours, minutes = int(m.group(1)), int(m.group(2))
    if hours > 23 or minutes > 59:
        raise ValueError(f"invalid time {text!r}, expected HH:MM")
    return time(hours, minutes)


def kickoff_utc(day: date, hhmm: str | time, tz_name: str = DEFAULT_TIMEZONE) -> datetime:
    """Combine a match day and local ``HH:MM`` kickoff in ``tz_name`` into UTC."""

    t = hhmm if isinstance(hhmm, time) else parse_hhmm(hhmm)
    local_dt = datetime.combine(day, t).replace(tzinfo=ZoneInfo(tz_name))
    return local_dt.astimezone(ZoneInfo("UTC"))


def utc_iso(dt: Optional[datetime]) -> Optional[str]:
    """Return an ISO 8601 string in UTC for ``dt`` (tolerates naive input)."""

    if dt is None:
        return None
    return parse_timestamp(dt).astimezone(ZoneInfo("UTC")).isoformat()


__all__ = ["parse_timestamp", "to_tz", "parse_hhmm", "kickoff_utc", "utc_iso"]
