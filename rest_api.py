import datetime
import uuid
from typing import List, Optional, Union

from fastapi import FastAPI, HTTPException, APIRouter, Body
from loguru import logger
from pydantic import BaseModel

from db import (
    UserRepository,
    ExerciseRepository,
    WorkoutTemplateRepository,
    WorkoutHistoryRepository,
    ExerciseHistoryRepository,
    AsyncWorkoutHistoryRepository,
    AsyncExerciseHistoryRepository,
    AsyncUserRepository,
)
from settings_schema import load_settings
from summary_service import (
    HistoryUnavailableError,
    WorkoutSummaryService,
    describe_summary,
)


class ExerciseLog(BaseModel):
    exercise_id: int
    sets_completed: int
    weight_per_set: List[Optional[float]] = []
    reps_per_set: List[Optional[float]] = []
    difficulty_per_set: List[Optional[Union[str, int]]] = []
    comments: str = ""
    workout_session_id: Optional[str] = None
    completed_at: Optional[str] = None


class WorkoutLogAPI:
    """Provides REST endpoints for workout history and summaries."""

    def __init__(
        self,
        db_path: str = "workout.db",
        yaml_path: str = "settings.yaml",
    ) -> None:
        self.db_path = db_path
        self.settings = load_settings(yaml_path)
        self.users = UserRepository(db_path)
        self.exercises = ExerciseRepository(db_path)
        self.workouts = WorkoutTemplateRepository(db_path)
        self.workout_history = WorkoutHistoryRepository(db_path)
        self.exercise_history = ExerciseHistoryRepository(db_path)
        self.summaries = WorkoutSummaryService(
            self.users,
            self.workout_history,
            self.exercise_history,
            self.settings,
            async_workout_history=AsyncWorkoutHistoryRepository(db_path),
            async_exercise_history=AsyncExerciseHistoryRepository(db_path),
            async_user_repo=AsyncUserRepository(db_path),
        )
        self.app = FastAPI(
            title="Workout Log API",
            description="REST API for workout history and summaries",
        )
        self._setup_routes()

    def _user(self, user_id: Optional[str]) -> str:
        return user_id or self.summaries.resolve_user_id()

    def _setup_routes(self) -> None:
        history_router = APIRouter(prefix="/history", tags=["History"])

        @self.app.get(
            "/health",
            summary="Health check",
            description="Verify API and database connectivity.",
        )
        def health():
            """Return API and database connection status."""
            try:
                self.workouts.fetch_all()
                return {"status": "ok"}
            except Exception as e:  # pragma: no cover - connectivity failure
                raise HTTPException(status_code=500, detail=str(e))

        @self.app.post("/users")
        def create_user(username: str):
            try:
                uid = self.users.create(username)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"id": uid}

        @self.app.get("/users")
        def list_users():
            rows = self.users.fetch_all()
            return [
                {
                    "id": uid,
                    "username": name,
                    "total_workouts": workouts,
                    "total_exercises": exercises,
                    "total_sets": sets,
                    "tons_lifted": tons,
                }
                for uid, name, workouts, exercises, sets, tons in rows
            ]

        @self.app.get("/users/current")
        def current_user():
            user = self.users.current()
            if user is None:
                raise HTTPException(status_code=404, detail="no active user")
            return user

        @self.app.delete("/users/{user_id}")
        def deactivate_user(user_id: int):
            try:
                self.users.deactivate(user_id)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            return {"status": "deleted"}

        @self.app.post("/exercises")
        def add_exercise(
            name: str,
            major_group: str,
            description: str | None = None,
            bodyweight: bool = False,
        ):
            try:
                eid = self.exercises.add(name, major_group, description, bodyweight)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"id": eid}

        @self.app.get("/exercises")
        def list_exercises():
            return [
                {
                    "id": eid,
                    "name": name,
                    "description": description,
                    "major_group": group,
                    "bodyweight": bool(bw),
                }
                for eid, name, description, group, bw in self.exercises.fetch_all()
            ]

        @self.app.post("/workouts")
        def create_workout(
            name: str,
            num_exercises: int = 0,
            duration: int = 0,
            major_group: str | None = None,
        ):
            try:
                wid = self.workouts.create(name, num_exercises, duration, major_group)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"id": wid}

        @self.app.get("/workouts")
        def list_workouts():
            return [
                {
                    "id": wid,
                    "name": name,
                    "num_exercises": count,
                    "duration": duration,
                    "major_group": group,
                }
                for wid, name, count, duration, group in self.workouts.fetch_all()
            ]

        @history_router.post("/workouts")
        def record_workout(
            workout_id: int,
            duration: int,
            comments: str = "",
            completed_at: str | None = None,
            session_guid: str | None = None,
            user_id: str | None = None,
        ):
            try:
                _wid, name, *_ = self.workouts.fetch_detail(workout_id)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            guid = session_guid or str(uuid.uuid4())
            ts = completed_at or datetime.datetime.now().isoformat(timespec="seconds")
            try:
                rid = self.workout_history.record(
                    self._user(user_id),
                    workout_id,
                    name,
                    duration,
                    comments,
                    ts,
                    guid,
                )
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"id": rid, "session_guid": guid}

        @history_router.get("/workouts")
        def list_history(limit: int | None = None, user_id: str | None = None):
            records = self.workout_history.fetch_for_user(
                self._user(user_id), limit or self.settings.workout_history_limit
            )
            return [
                {
                    "id": r.id,
                    "workout_id": r.workout_id,
                    "workout_name": r.workout_name,
                    "duration": r.duration,
                    "completed_at": r.completed_at,
                    "comments": r.comments,
                    "session_guid": r.session_guid,
                }
                for r in records
            ]

        @history_router.delete("/workouts/{record_id}")
        def delete_history(record_id: int, user_id: str | None = None):
            uid = self._user(user_id)
            try:
                record = self.workout_history.fetch_detail(uid, record_id)
                if record.session_guid:
                    self.workout_history.delete_by_session_guid(uid, record.session_guid)
                else:
                    self.workout_history.delete(uid, record_id)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            return {"status": "deleted"}

        @history_router.get("/workouts/{record_id}/summary")
        async def workout_summary(record_id: int, user_id: str | None = None):
            try:
                summary = await self.summaries.load_summary_async(record_id, user_id)
            except HistoryUnavailableError:
                raise HTTPException(status_code=503, detail="history unavailable")
            if summary is None:
                raise HTTPException(status_code=404, detail="workout not found")
            return describe_summary(summary)

        @history_router.post("/exercises")
        def record_exercise(log: ExerciseLog = Body(...), user_id: str | None = None):
            try:
                self.exercises.fetch_detail(log.exercise_id)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            try:
                cid = self.exercise_history.record(
                    self._user(user_id),
                    log.exercise_id,
                    log.sets_completed,
                    log.weight_per_set,
                    log.difficulty_per_set,
                    log.reps_per_set,
                    log.comments,
                    log.workout_session_id,
                    log.completed_at,
                )
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            logger.debug(f"Recorded exercise {log.exercise_id} as completion {cid}")
            return {"id": cid}

        @history_router.get("/exercises")
        def list_exercise_history(limit: int | None = None, user_id: str | None = None):
            completions = self.exercise_history.fetch_for_user(
                self._user(user_id), limit or self.settings.exercise_history_limit
            )
            return [
                {
                    "id": c.id,
                    "exercise_id": c.exercise_id,
                    "exercise_name": c.exercise_name,
                    "major_group": c.major_group,
                    "sets_completed": c.sets_completed,
                    "weight_per_set": c.weight_per_set,
                    "reps_per_set": c.reps_per_set,
                    "difficulty_per_set": c.difficulty_per_set,
                    "completed_at": c.completed_at,
                    "workout_session_id": c.workout_session_id,
                }
                for c in completions
            ]

        self.app.include_router(history_router)


api = WorkoutLogAPI()
app = api.app

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app)
