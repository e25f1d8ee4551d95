import requests
from typing import Optional


class WorkoutLogClient:
    """Simple REST client for the workout log API."""

    def __init__(self, base_url: str = "http://localhost:8000", session=None) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()

    def create_user(self, username: str) -> int:
        resp = self.session.post(f"{self.base_url}/users", params={"username": username})
        resp.raise_for_status()
        return resp.json()["id"]

    def record_workout(
        self,
        workout_id: int,
        duration: int,
        comments: str = "",
        completed_at: Optional[str] = None,
        session_guid: Optional[str] = None,
    ) -> dict:
        params = {"workout_id": workout_id, "duration": duration, "comments": comments}
        if completed_at is not None:
            params["completed_at"] = completed_at
        if session_guid is not None:
            params["session_guid"] = session_guid
        resp = self.session.post(f"{self.base_url}/history/workouts", params=params)
        resp.raise_for_status()
        return resp.json()

    def record_exercise(
        self,
        exercise_id: int,
        weight_per_set: list,
        reps_per_set: list,
        difficulty_per_set: list,
        workout_session_id: Optional[str] = None,
        comments: str = "",
        completed_at: Optional[str] = None,
    ) -> int:
        payload = {
            "exercise_id": exercise_id,
            "sets_completed": len(reps_per_set),
            "weight_per_set": weight_per_set,
            "reps_per_set": reps_per_set,
            "difficulty_per_set": difficulty_per_set,
            "comments": comments,
            "workout_session_id": workout_session_id,
            "completed_at": completed_at,
        }
        resp = self.session.post(f"{self.base_url}/history/exercises", json=payload)
        resp.raise_for_status()
        return resp.json()["id"]

    def list_history(self, **params: str):
        resp = self.session.get(f"{self.base_url}/history/workouts", params=params)
        resp.raise_for_status()
        return resp.json()

    def workout_summary(self, record_id: int) -> Optional[dict]:
        """Return the rendered summary or ``None`` if the workout is unknown."""
        resp = self.session.get(f"{self.base_url}/history/workouts/{record_id}/summary")
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        return resp.json()
