from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any


def safe_float(value: Any, default: float | None = 0.0) -> float | None:
    """Coerce value to a finite float with a default."""
    if isinstance(value, bool):
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(result) or math.isinf(result):
        return default
    return result


def safe_int(value: Any, default: int | None = 0) -> int | None:
    """Coerce value to int with a default."""
    result = safe_float(value, None)
    if result is None:
        return default
    return int(result)


def round_half_up(value: float | Decimal) -> int:
    """Round to the nearest integer, halves away from zero."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))
