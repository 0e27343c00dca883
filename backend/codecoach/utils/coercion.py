import math
from typing import Any


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def to_number(value: Any) -> float | None:
    """Best-effort numeric conversion. Booleans, blanks and NaN/inf are rejected."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def clamp_number(value: Any, minimum: int, maximum: int, fallback: int) -> int:
    number = to_number(value)
    if number is None:
        return fallback
    return max(minimum, min(maximum, round_half_up(number)))


def string_list(value: Any) -> list[str]:
    """Keep the truthy entries of a list, stringified. Anything else -> []."""
    if not isinstance(value, (list, tuple)):
        return []
    return [str(item) for item in value if item]


def text_or(value: Any, fallback: str) -> str:
    return str(value) if value else fallback
