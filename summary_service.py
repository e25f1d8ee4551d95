from __future__ import annotations
import sqlite3
from typing import List, Optional

from loguru import logger

from algorithms.session_matcher import matched_tier
from algorithms.set_normalizer import (
    format_difficulty,
    format_duration,
    format_reps,
    format_weight,
)
from db import (
    AsyncExerciseHistoryRepository,
    AsyncUserRepository,
    AsyncWorkoutHistoryRepository,
    ExerciseHistoryRepository,
    UserRepository,
    WorkoutHistoryRepository,
)
from models import ExerciseCompletion, WorkoutRecord, WorkoutSummary
from settings_schema import SettingsSchema

DEFAULT_USER_ID = "default"

_COLLABORATOR_ERRORS = (sqlite3.Error, OSError)


class HistoryUnavailableError(RuntimeError):
    """Workout or exercise history could not be read."""


class WorkoutSummaryService:
    """Reassemble historical workouts with the exercises logged during them."""

    def __init__(
        self,
        user_repo: UserRepository,
        workout_history: WorkoutHistoryRepository,
        exercise_history: ExerciseHistoryRepository,
        settings: SettingsSchema | None = None,
        async_workout_history: AsyncWorkoutHistoryRepository | None = None,
        async_exercise_history: AsyncExerciseHistoryRepository | None = None,
        async_user_repo: AsyncUserRepository | None = None,
    ) -> None:
        self.users = user_repo
        self.workout_history = workout_history
        self.exercise_history = exercise_history
        self.settings = settings or SettingsSchema()
        self.async_workout_history = async_workout_history
        self.async_exercise_history = async_exercise_history
        self.async_users = async_user_repo

    def _identifier(self, user: dict | None) -> str:
        if user:
            if user.get("username"):
                return str(user["username"])
            if user.get("id") is not None:
                return str(user["id"])
        return self.settings.default_user or DEFAULT_USER_ID

    def resolve_user_id(self, user: dict | None = None) -> str:
        """Identifier of ``user`` or of the active user.

        Falls back to the configured default user when nobody is active.
        """
        if user is None:
            user = self.users.current()
        return self._identifier(user)

    async def resolve_user_id_async(self) -> str:
        if self.async_users is None:
            return self.resolve_user_id()
        return self._identifier(await self.async_users.current())


    def _assemble(
        self,
        workout_id: int,
        workouts: List[WorkoutRecord],
        completions: List[ExerciseCompletion],
    ) -> Optional[WorkoutSummary]:
        record = next((w for w in workouts if w.id == workout_id), None)
        if record is None:
            logger.info(f"Workout {workout_id} not found in history")
            return None
        tier, exercises = matched_tier(
            record, completions, self.settings.session_window_hours
        )
        logger.debug(
            f"Workout {workout_id}: {len(exercises)} exercise(s) matched by {tier or 'no tier'}"
        )
        return WorkoutSummary.from_record(record, exercises)

    def load_summary(
        self, workout_id: int, user_id: str | None = None
    ) -> Optional[WorkoutSummary]:
        """Return the summary for ``workout_id`` or ``None`` when it is unknown.

        Raises ``HistoryUnavailableError`` if the user lookup or either history
        read fails.
        """
        try:
            user_id = user_id or self.resolve_user_id()
            workouts = self.workout_history.fetch_for_user(
                user_id, self.settings.workout_history_limit
            )
            completions = self.exercise_history.fetch_for_user(
                user_id, self.settings.exercise_history_limit
            )
        except _COLLABORATOR_ERRORS as e:
            logger.exception(f"Error loading workout summary {workout_id}")
            raise HistoryUnavailableError(str(e)) from e
        return self._assemble(workout_id, workouts, completions)

    async def load_summary_async(
        self, workout_id: int, user_id: str | None = None
    ) -> Optional[WorkoutSummary]:
        """Asynchronous variant of :meth:`load_summary`.

        The user lookup and both history reads are awaited one after the other.
        """
        if self.async_workout_history is None or self.async_exercise_history is None:
            raise RuntimeError("async repositories not configured")
        try:
            user_id = user_id or await self.resolve_user_id_async()
            workouts = await self.async_workout_history.fetch_for_user(
                user_id, self.settings.workout_history_limit
            )
            completions = await self.async_exercise_history.fetch_for_user(
                user_id, self.settings.exercise_history_limit
            )
        except _COLLABORATOR_ERRORS as e:
            logger.exception(f"Error loading workout summary {workout_id}")
            raise HistoryUnavailableError(str(e)) from e
        return self._assemble(workout_id, workouts, completions)


def describe_exercise(completion: ExerciseCompletion) -> dict:
    bodyweight = bool(completion.bodyweight)
    return {
        "id": completion.id,
        "exercise_id": completion.exercise_id,
        "name": completion.exercise_name,
        "muscle_group": completion.major_group,
        "description": completion.description,
        "sets": completion.sets_completed,
        "weight": format_weight(completion.weight_per_set),
        "reps_label": "Seconds" if bodyweight else "Reps",
        "reps": format_reps(completion.reps_per_set, bodyweight),
        "effort": format_difficulty(completion.difficulty_per_set),
        "comments": completion.comments or None,
    }


def describe_summary(summary: WorkoutSummary) -> dict:
    """Display-ready rendering of ``summary``."""
    data = {
        "id": summary.id,
        "workout_name": summary.workout_name,
        "completed_at": summary.completed_at,
        "duration": summary.duration,
        "duration_display": format_duration(summary.duration) if summary.duration > 0 else None,
        "comments": summary.comments or None,
        "session_guid": summary.session_guid,
        "exercise_count": len(summary.exercises),
        "exercises": [describe_exercise(c) for c in summary.exercises],
    }
    if not summary.exercises:
        data["message"] = "No exercise details available"
    return data
