"""Make row payloads safe for PostgREST.

Payloads are built from form input, lifecycle records and sometimes cells of a
pandas editor, so they can carry enums, dataclasses, datetimes and numpy
scalars. Everything leaves as plain JSON; datetimes always leave in UTC.
"""

from __future__ import annotations

from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from enum import Enum
import json
import math
from typing import Any

import numpy as np

from copa.time_utils import utc_iso


def _clean_value(v: Any) -> Any:
    if isinstance(v, Enum):
        return v.value
    if isinstance(v, np.generic):
        v = v.item()
    if isinstance(v, float) and not math.isfinite(v):
        return None
    if isinstance(v, datetime):
        return utc_iso(v)
    if isinstance(v, date):
        return v.isoformat()
    if isinstance(v, str):
        return v.strip()
    return v


def clean_jsonable(obj: Any) -> Any:
    """Recursively convert a payload (dict, list, dataclass or scalar) to JSON values."""
    if is_dataclass(obj) and not isinstance(obj, type):
        obj = asdict(obj)
    if isinstance(obj, dict):
        return {str(k): clean_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [clean_jsonable(v) for v in obj]
    return _clean_value(obj)


def assert_jsonable(obj: Any) -> Any:
    try:
        json.dumps(obj, ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise RuntimeError(f"Payload not JSON-serializable: {e}\nFirst part: {str(obj)[:500]}") from e
    return obj
