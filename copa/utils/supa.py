"""Supabase client construction and small PostgREST helpers shared by the copa modules."""

from __future__ import annotations
from typing import Any, Dict, Optional
import os
from functools import lru_cache

import httpx

try:
    import streamlit as st
except Exception:  # pragma: no cover - allow headless usage (tests / CLI)
    st = None

from postgrest.exceptions import APIError
from supabase import AsyncClient, Client, ClientOptions, SupabaseException, acreate_client, create_client


class SupabaseConfigError(RuntimeError):
    """Raised when Supabase credentials are missing from secrets or env."""


class SupabaseConnectionError(RuntimeError):
    """Raised when the client cannot reach Supabase within the timeout window."""


_MISSING_CONFIG_MSG = (
    "Supabase secrets missing. Add `[supabase].url` and `[supabase].anon_key` to "
    "`.streamlit/secrets.toml` or set SUPABASE_URL and SUPABASE_ANON_KEY environment "
    "variables."
)
_UNREACHABLE_MSG = "Unable to reach Supabase right now. Check your internet connection and try again."

# Postgres unique_violation
UNIQUE_VIOLATION = "23505"


def read_supabase_config() -> Dict[str, str]:
    """Return ``{"url", "anon_key"}`` from Streamlit secrets or the environment.

    Streamlit secrets (``[supabase].url`` / ``[supabase].anon_key``) win over
    ``SUPABASE_URL`` / ``SUPABASE_ANON_KEY``.
    """
    url = None
    key = None

    if st is not None:
        try:
            url = st.secrets["supabase"]["url"]
            key = st.secrets["supabase"]["anon_key"]
        except Exception:
            pass

    url = url or os.getenv("SUPABASE_URL")
    key = key or os.getenv("SUPABASE_ANON_KEY")

    if not url or not key:
        raise SupabaseConfigError(_MISSING_CONFIG_MSG)

    return {"url": url, "anon_key": key}


def _timeout() -> httpx.Timeout:
    return httpx.Timeout(10.0, connect=5.0)


def _build_client_options() -> ClientOptions:
    timeout = _timeout()
    return ClientOptions(
        httpx_client=httpx.Client(timeout=timeout),
        postgrest_client_timeout=timeout,
        storage_client_timeout=timeout,
        function_client_timeout=timeout,
    )


def _http_status_message(exc: httpx.HTTPStatusError) -> str:
    status = exc.response.status_code if exc.response is not None else "unknown"
    body = None
    if exc.response is not None:
        try:
            body = exc.response.text
        except Exception:  # pragma: no cover - streamed body already consumed
            body = None
    preview = body.strip().replace("\n", " ")[:200] if body else str(exc)
    print(f"Supabase client HTTP error: {status} -> {preview}")
    return (
        "Supabase responded with HTTP "
        f"{status}. Verify the Supabase URL/anon key in your Streamlit secrets or environment."
    )


def _create_supabase_client() -> Client:
    cfg = read_supabase_config()
    options = _build_client_options()
    try:
        return create_client(cfg["url"], cfg["anon_key"], options=options)
    except (SupabaseException, httpx.HTTPError) as exc:
        if options.httpx_client is not None:
            options.httpx_client.close()
        if isinstance(exc, SupabaseException):
            raise SupabaseConfigError(str(exc) or _MISSING_CONFIG_MSG) from exc
        if isinstance(exc, httpx.HTTPStatusError):
            raise SupabaseConfigError(_http_status_message(exc)) from exc
        print(f"Supabase client connection failed: {exc}")
        raise SupabaseConnectionError(_UNREACHABLE_MSG) from exc


async def create_realtime_client() -> AsyncClient:
    """Return a fresh async client; realtime channels are only on the async API."""
    cfg = read_supabase_config()
    try:
        return await acreate_client(cfg["url"], cfg["anon_key"])
    except SupabaseException as exc:
        raise SupabaseConfigError(str(exc) or _MISSING_CONFIG_MSG) from exc
    except httpx.HTTPStatusError as exc:
        raise SupabaseConfigError(_http_status_message(exc)) from exc
    except httpx.HTTPError as exc:
        print(f"Supabase realtime connection failed: {exc}")
        raise SupabaseConnectionError(_UNREACHABLE_MSG) from exc


if st is not None:

    @st.cache_resource  # type: ignore[misc]
    def get_client() -> Client:
        """Return a cached Supabase client bound to anon key."""
        return _create_supabase_client()

else:

    @lru_cache(maxsize=1)
    def get_client() -> Client:
        """Fallback cached client when Streamlit is unavailable."""
        return _create_supabase_client()


def rows_of(res: Any) -> list:
    """Return ``res.data`` as a list of dicts (empty when missing)."""
    if res is None:
        return []
    data = getattr(res, "data", res)
    if not isinstance(data, list):
        return []
    return [dict(r) for r in data if isinstance(r, dict)]


def first_row(res: Any) -> Optional[Dict[str, Any]]:
    rows = rows_of(res)
    return rows[0] if rows else None


def format_api_error(context: str, exc: APIError) -> str:
    message = getattr(exc, "message", None) or str(exc)
    parts = [f"{context}: {message}"]
    for attr in ("code", "details", "hint"):
        value = getattr(exc, attr, None)
        if value:
            parts.append(f"{attr}={value}")
    return " | ".join(parts)


def notify_error(msg: str) -> None:
    if st is not None:
        st.error(msg)
    else:
        print(msg)


def clear_data_cache() -> None:
    """Drop Streamlit-cached query results after a write."""
    if st is not None:
        st.cache_data.clear()


__all__ = [
    "get_client",
    "create_realtime_client",
    "read_supabase_config",
    "rows_of",
    "first_row",
    "format_api_error",
    "notify_error",
    "clear_data_cache",
    "UNIQUE_VIOLATION",
    "SupabaseConfigError",
    "SupabaseConnectionError",
]
