from __future__ import annotations

import math
from typing import Any, Union


def safe_number(value: Any) -> float:
    """
    Best-effort numeric coercion for upstream JSON scalars.
    None, "NA", blanks, non-numeric strings, NaN and infinities all become 0.0.
    """
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def to_number(value: Any) -> Union[int, float]:
    """safe_number, but whole values come back as int (87155, not 87155.0)."""
    number = safe_number(value)
    return int(number) if number.is_integer() else number
