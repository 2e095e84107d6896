"""
Field coercion for model-extracted JSON.

Model output is loosely typed. These helpers turn one raw value into a
typed field, falling back to the supplied default when the value is
absent or unusable. Zero is a real value, not a missing one.
"""
import dataclasses
import math
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar

E = TypeVar("E", bound=Enum)

# Flags carried by category records; not evidence fields
QUALITY_FLAGS = frozenset({"is_default", "failure_reason"})


def _to_float(value: Any) -> Optional[float]:
    """Finite float or None; NaN and infinity count as unusable."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        result = float(value)
    elif isinstance(value, str):
        cleaned = value.strip().replace(",", "").rstrip("%").lstrip("$")
        try:
            result = float(cleaned)
        except ValueError:
            return None
    else:
        return None
    return result if math.isfinite(result) else None


def number(value: Any, default: float, minimum: Optional[float] = None) -> float:
    result = _to_float(value)
    if result is None:
        return default
    if minimum is not None and result < minimum:
        return minimum
    return result


def optional_number(value: Any) -> Optional[float]:
    return _to_float(value)


def score(value: Any, default: float) -> float:
    """0-100 score, clamped."""
    result = _to_float(value)
    if result is None:
        return default
    return max(0.0, min(100.0, result))


def integer(value: Any, default: int) -> int:
    result = _to_float(value)
    return default if result is None else int(result)


def flag(value: Any, default: bool) -> bool:
    return value if isinstance(value, bool) else default


def text(value: Any, default: Optional[str] = None) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def choice(value: Any, enum_cls: Type[E], default: E) -> E:
    if isinstance(value, str):
        try:
            return enum_cls(value.strip().lower())
        except ValueError:
            return default
    return default


def str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [v.strip() for v in value if isinstance(v, str) and v.strip()]


def dict_list(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, dict)]


def section(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    """Nested object under ``key``, or an empty dict."""
    value = data.get(key)
    return value if isinstance(value, dict) else {}


def count_populated_fields(record: Any, default: Any = None) -> Tuple[int, int]:
    """
    Count leaf fields of a dataclass that differ from their defaults.

    Returns (populated, total). Nested dataclasses are walked; lists count
    as one leaf that is populated when it differs from the default list.
    Quality flags are skipped.
    """
    if default is None:
        default = type(record)()

    populated = 0
    total = 0
    for f in dataclasses.fields(record):
        if f.name in QUALITY_FLAGS:
            continue
        value = getattr(record, f.name)
        default_value = getattr(default, f.name)
        if dataclasses.is_dataclass(value) and not isinstance(value, type):
            sub_populated, sub_total = count_populated_fields(value, default_value)
            populated += sub_populated
            total += sub_total
        else:
            total += 1
            if value != default_value:
                populated += 1
    return populated, total


def to_jsonable(value: Any) -> Any:
    """Dataclasses, enums and tuples into plain JSON-ready structures."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value
