import json
import math
from typing import Any

from fastapi.responses import JSONResponse


# Small counters that always fit a JavaScript number; every other int is an
# on-chain amount and is rendered as a decimal string whatever its size.
_NUMERIC_INT_FIELDS = {
    "step",
    "steps",
    "current_step",
    "peak_level_step",
    "percent",
    "profit_percent",
    "royalty_profit_percent",
}


class SafeJSONResponse(JSONResponse):
    """JSONResponse that renders amounts as strings and NaN/Infinity as null."""

    def render(self, content: Any) -> bytes:
        return json.dumps(
            sanitize_for_json(content),
            ensure_ascii=False,
            allow_nan=False,
        ).encode("utf-8")


def sanitize_for_json(obj, key=None):
    """Recursively stringify amount ints and replace NaN/Infinity with None."""
    if isinstance(obj, bool):
        return obj
    if isinstance(obj, int):
        if key in _NUMERIC_INT_FIELDS:
            return obj
        return str(obj)
    if isinstance(obj, float):
        if math.isnan(obj) or math.isinf(obj):
            return None
        return obj
    if isinstance(obj, dict):
        return {k: sanitize_for_json(v, k) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [sanitize_for_json(v, key) for v in obj]
    return obj
