from __future__ import annotations
import datetime
import re
from typing import Callable, List, Optional, Sequence, Tuple

from models import ExerciseCompletion, WorkoutRecord

Predicate = Callable[[ExerciseCompletion], bool]
TierBuilder = Callable[[WorkoutRecord, datetime.timedelta], Optional[Predicate]]

DEFAULT_WINDOW_HOURS: float = 12.0

_DATE_SPLIT = re.compile(r"[T\s]")


def parse_instant(timestamp: object) -> Optional[datetime.datetime]:
    """Return ``timestamp`` as a datetime or ``None`` when it cannot be parsed.

    Naive values stay naive. Use :func:`_comparable` before mixing them with
    offset-aware values.
    """
    if not isinstance(timestamp, str) or not timestamp.strip():
        return None
    try:
        return datetime.datetime.fromisoformat(timestamp.strip().replace("Z", "+00:00"))
    except ValueError:
        return None


def date_portion(timestamp: object) -> Optional[str]:
    """Return the text before the first ``T`` or whitespace of ``timestamp``."""
    if not isinstance(timestamp, str) or not timestamp:
        return None
    return _DATE_SPLIT.split(timestamp, maxsplit=1)[0]


def _comparable(
    a: datetime.datetime, b: datetime.datetime
) -> Tuple[datetime.datetime, datetime.datetime]:
    if (a.tzinfo is None) == (b.tzinfo is None):
        return a, b
    if a.tzinfo is None:
        a = a.replace(tzinfo=datetime.timezone.utc)
    else:
        b = b.replace(tzinfo=datetime.timezone.utc)
    return a, b


def by_session_guid(
    target: WorkoutRecord, _window: datetime.timedelta
) -> Optional[Predicate]:
    """Completions carrying the workout's linkage identifier."""
    guid = target.session_guid
    if not guid:
        return None

    def predicate(completion: ExerciseCompletion) -> bool:
        sid = completion.workout_session_id
        return sid is not None and str(sid) == guid

    return predicate


def within_time_window(
    target: WorkoutRecord, window: datetime.timedelta
) -> Optional[Predicate]:
    """Completions logged within ``window`` (inclusive) of the workout."""
    anchor = parse_instant(target.completed_at)
    if anchor is None:
        return None

    def predicate(completion: ExerciseCompletion) -> bool:
        instant = parse_instant(completion.completed_at)
        if instant is None:
            return False
        a, b = _comparable(anchor, instant)
        return abs(a - b) <= window

    return predicate


def on_same_day(
    target: WorkoutRecord, _window: datetime.timedelta
) -> Optional[Predicate]:
    """Completions whose date portion equals the workout's."""
    day = date_portion(target.completed_at)
    if day is None:
        return None
    return lambda completion: date_portion(completion.completed_at) == day


MATCH_TIERS: List[Tuple[str, TierBuilder]] = [
    ("session_guid", by_session_guid),
    ("time_window", within_time_window),
    ("calendar_day", on_same_day),
]


def matched_tier(
    target: WorkoutRecord,
    pool: Sequence[ExerciseCompletion],
    window_hours: float = DEFAULT_WINDOW_HOURS,
) -> Tuple[Optional[str], List[ExerciseCompletion]]:
    """Return the name of the first tier with matches and those matches.

    ``(None, [])`` when no tier selects anything.
    """
    window = datetime.timedelta(hours=window_hours)
    for name, build in MATCH_TIERS:
        predicate = build(target, window)
        if predicate is None:
            continue
        selected = [c for c in pool if predicate(c)]
        if selected:
            return name, selected
    return None, []


def match_session(
    target: WorkoutRecord,
    pool: Sequence[ExerciseCompletion],
    window_hours: float = DEFAULT_WINDOW_HOURS,
) -> List[ExerciseCompletion]:
    """Select the completions from ``pool`` that belong to ``target``.

    Pool order is preserved. The result may be empty.
    """
    return matched_tier(target, pool, window_hours)[1]
