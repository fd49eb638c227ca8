"""Tournament settings read from Streamlit secrets with environment fallback."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

try:
    import streamlit as st
except Exception:  # pragma: no cover - headless usage
    st = None  # type: ignore

DEFAULT_TIMEZONE = "America/Sao_Paulo"


@dataclass(frozen=True)
class Settings:
    timezone: str = DEFAULT_TIMEZONE
    qualified_slots: int = 2
    playoff_slots: int = 2
    eliminated_slots: int = 2
    admin_emails: Tuple[str, ...] = ()


_ENV_KEYS = {
    "timezone": "COPA_TIMEZONE",
    "qualified_slots": "COPA_QUALIFIED_SLOTS",
    "playoff_slots": "COPA_PLAYOFF_SLOTS",
    "eliminated_slots": "COPA_ELIMINATED_SLOTS",
    "admin_emails": "COPA_ADMIN_EMAILS",
}


def _secrets_section() -> Mapping[str, Any]:
    if st is None:
        return {}
    try:
        section = st.secrets["tournament"]
    except Exception:
        return {}
    return section if hasattr(section, "get") else {}


def _raw(name: str, secrets: Mapping[str, Any]) -> Any:
    value = secrets.get(name)
    if value in (None, ""):
        value = os.getenv(_ENV_KEYS[name])
    return value


def _as_slots(value: Any, default: int) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        return default
    return n if n >= 0 else default


def _as_emails(value: Any) -> Tuple[str, ...]:
    if not value:
        return ()
    items = value.split(",") if isinstance(value, str) else list(value)
    return tuple(sorted({str(e).strip().lower() for e in items if str(e).strip()}))


def load_settings(secrets: Optional[Mapping[str, Any]] = None) -> Settings:
    """Build :class:`Settings`; bad numbers fall back to the defaults."""
    src = _secrets_section() if secrets is None else secrets
    base = Settings()
    tz = _raw("timezone", src)
    return Settings(
        timezone=str(tz).strip() if tz else base.timezone,
        qualified_slots=_as_slots(_raw("qualified_slots", src), base.qualified_slots),
        playoff_slots=_as_slots(_raw("playoff_slots", src), base.playoff_slots),
        eliminated_slots=_as_slots(_raw("eliminated_slots", src), base.eliminated_slots),
        admin_emails=_as_emails(_raw("admin_emails", src)),
    )


def is_admin_email(email: Optional[str], settings: Optional[Settings] = None) -> bool:
    if not email:
        return False
    settings = settings or load_settings()
    return email.strip().lower() in settings.admin_emails


__all__ = ["Settings", "DEFAULT_TIMEZONE", "load_settings", "is_admin_email"]
