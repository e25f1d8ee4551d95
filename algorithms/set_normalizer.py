from __future__ import annotations
import enum
import json
import math
import numbers
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple


class SetKind(str, enum.Enum):
    WEIGHT = "weight"
    REPS = "reps"
    DIFFICULTY = "difficulty"


class RawShape(str, enum.Enum):
    """Shapes per-set data has been stored in over time."""

    SEQUENCE = "sequence"
    ENCODED_SEQUENCE = "encoded_sequence"
    SCALAR = "scalar"
    ABSENT = "absent"


def is_finite_number(value: Any) -> bool:
    """Return ``True`` for real, finite, non-boolean numbers."""
    if not isinstance(value, numbers.Real) or isinstance(value, bool):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # ints beyond float range
        return False


def format_number(value: Any) -> str:
    """Render ``value`` without a trailing ``.0`` when it is integral."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _is_effort(value: Any) -> bool:
    if value is None or isinstance(value, (dict, list, tuple)):
        return False
    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        return is_finite_number(value)
    return True


@dataclass(frozen=True)
class SetPolicy:
    """Display rules for one kind of per-set data."""

    unit: str
    empty_message: str
    accepts: Callable[[Any], bool]
    bodyweight_unit: Optional[str] = None
    bodyweight_empty_message: Optional[str] = None
    default: Optional[float] = None
    bodyweight_default: Optional[float] = None
    numeric: bool = True

    def unit_for(self, is_bodyweight: bool) -> str:
        if is_bodyweight and self.bodyweight_unit is not None:
            return self.bodyweight_unit
        return self.unit

    def empty_for(self, is_bodyweight: bool) -> str:
        if is_bodyweight and self.bodyweight_empty_message is not None:
            return self.bodyweight_empty_message
        return self.empty_message

    def default_for(self, is_bodyweight: bool) -> Optional[float]:
        if is_bodyweight and self.bodyweight_default is not None:
            return self.bodyweight_default
        return self.default


POLICIES = {
    SetKind.WEIGHT: SetPolicy(
        unit="lbs",
        empty_message="No weight recorded",
        accepts=is_finite_number,
        default=50,
    ),
    SetKind.REPS: SetPolicy(
        unit="reps",
        empty_message="No reps recorded",
        accepts=is_finite_number,
        bodyweight_unit="seconds",
        bodyweight_empty_message="No duration recorded",
        default=10,
        bodyweight_default=30,
    ),
    SetKind.DIFFICULTY: SetPolicy(
        unit="",
        empty_message="No effort recorded",
        accepts=_is_effort,
        numeric=False,
    ),
}


def _accepts_scalar(value: Any, policy: SetPolicy) -> bool:
    if policy.numeric:
        return isinstance(value, numbers.Real) and not isinstance(value, bool)
    return value is not None and not isinstance(value, (dict, list, tuple))


_UNDECODABLE = object()


def _decode(text: str) -> Any:
    try:
        return json.loads(text)
    except (ValueError, RecursionError):
        return _UNDECODABLE


def _shape(raw: Any, policy: SetPolicy) -> Tuple[RawShape, Any]:
    if isinstance(raw, (list, tuple)):
        return RawShape.SEQUENCE, raw
    if isinstance(raw, str):
        decoded = _decode(raw)
        if decoded is _UNDECODABLE:
            return RawShape.ABSENT, None
        return RawShape.ENCODED_SEQUENCE, decoded
    if _accepts_scalar(raw, policy):
        return RawShape.SCALAR, raw
    return RawShape.ABSENT, None


def classify(raw: Any, policy: SetPolicy) -> RawShape:
    """Classify ``raw`` into one of the stored shapes."""
    return _shape(raw, policy)[0]


def coerce(raw: Any, policy: SetPolicy) -> List[Any]:
    """Reduce ``raw`` to an ordered list of unfiltered values."""
    shape, value = _shape(raw, policy)
    if shape is RawShape.SEQUENCE:
        return list(value)
    if shape is RawShape.SCALAR:
        return [value]
    if shape is RawShape.ENCODED_SEQUENCE:
        if isinstance(value, list):
            return value
        if _accepts_scalar(value, policy):
            return [value]
    return []


def normalize(raw: Any, kind: SetKind, is_bodyweight: bool = False) -> str:
    """Summarize one per-set field as a display string.

    Never raises: unreadable data yields the kind's "not recorded" message and
    sequences without a single valid entry yield the kind's default value.
    """
    policy = POLICIES[SetKind(kind)]
    values = coerce(raw, policy)
    if not values:
        return policy.empty_for(is_bodyweight)

    valid = [v for v in values if policy.accepts(v)]
    unit = policy.unit_for(is_bodyweight)
    if not valid:
        default = policy.default_for(is_bodyweight)
        if default is None:
            return policy.empty_for(is_bodyweight)
        return f"{format_number(default)} {unit}"

    if not policy.numeric:
        distinct = list(dict.fromkeys(format_number(v) for v in valid))
        return ", ".join(distinct)

    distinct_numbers = set(valid)
    if len(distinct_numbers) == 1:
        return f"{format_number(valid[0])} {unit}"
    low = format_number(min(distinct_numbers))
    high = format_number(max(distinct_numbers))
    return f"{low} - {high} {unit}"


def format_weight(raw: Any) -> str:
    return normalize(raw, SetKind.WEIGHT)


def format_reps(raw: Any, is_bodyweight: bool = False) -> str:
    return normalize(raw, SetKind.REPS, is_bodyweight)


def format_difficulty(raw: Any) -> str:
    return normalize(raw, SetKind.DIFFICULTY)


def format_duration(minutes: int) -> str:
    """Render a workout duration given in minutes, e.g. ``1h 5m``."""
    if minutes < 60:
        return f"{minutes}m"
    hours, rest = divmod(minutes, 60)
    return f"{hours}h {rest}m" if rest > 0 else f"{hours}h"
