"""
Data models for workout history.

- WorkoutRecord: one completed workout occurrence
- ExerciseCompletion: one exercise logged during some workout occurrence
- WorkoutSummary: a workout record together with its resolved exercises
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, List, Optional


@dataclass(frozen=True)
class WorkoutRecord:
    """Completed workout as stored in the history table."""
    id: int
    workout_id: int
    workout_name: str
    duration: int  # minutes
    completed_at: str  # ISO-8601, device local time
    comments: Optional[str] = None
    session_guid: Optional[str] = None  # None for rows logged before linkage ids


@dataclass(frozen=True)
class ExerciseCompletion:
    """Logged exercise. Per-set fields are kept exactly as they were stored."""
    id: int
    exercise_id: int
    exercise_name: str
    major_group: str
    sets_completed: int
    weight_per_set: Any
    reps_per_set: Any
    difficulty_per_set: Any
    completed_at: str
    bodyweight: Optional[bool] = None
    workout_session_id: Optional[str] = None
    comments: Optional[str] = None
    description: Optional[str] = None


@dataclass
class WorkoutSummary:
    """Workout record enriched with the completions that belong to it."""
    id: int
    workout_name: str
    duration: int
    completed_at: str
    comments: str = ""
    session_guid: Optional[str] = None
    exercises: List[ExerciseCompletion] = field(default_factory=list)

    @classmethod
    def from_record(
        cls, record: WorkoutRecord, exercises: List[ExerciseCompletion]
    ) -> "WorkoutSummary":
        return cls(
            id=record.id,
            workout_name=record.workout_name,
            duration=record.duration,
            completed_at=record.completed_at,
            comments=record.comments or "",
            session_guid=record.session_guid,
            exercises=list(exercises),
        )
