import unittest
import sys
import os

from fastapi.testclient import TestClient

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from client import WorkoutLogClient
from rest_api import WorkoutLogAPI


class ClientTest(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_client.db"
        self.yaml_path = "test_client.yaml"
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)
        self.api = WorkoutLogAPI(db_path=self.db_path, yaml_path=self.yaml_path)
        self.client = WorkoutLogClient(
            base_url="http://testserver/", session=TestClient(self.api.app)
        )

    def tearDown(self) -> None:
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)

    def test_record_and_summarize(self) -> None:
        self.assertEqual(self.client.create_user("alice"), 1)
        wid = self.api.workouts.create("Pull", 1, 40, "back")
        eid = self.api.exercises.add("Row", "back")

        logged = self.client.record_workout(wid, 40, "solid", completed_at="2024-01-01T10:00:00")
        self.client.record_exercise(
            eid,
            [80, 90],
            [12, 10],
            ["medium", "hard"],
            workout_session_id=logged["session_guid"],
        )

        history = self.client.list_history()
        self.assertEqual([h["id"] for h in history], [logged["id"]])
        summary = self.client.workout_summary(logged["id"])
        self.assertEqual(summary["comments"], "solid")
        [exercise] = summary["exercises"]
        self.assertEqual(exercise["sets"], 2)
        self.assertEqual(exercise["weight"], "80 - 90 lbs")

    def test_unknown_summary(self) -> None:
        self.assertIsNone(self.client.workout_summary(42))

    def test_errors_raise(self) -> None:
        self.client.create_user("alice")
        with self.assertRaises(Exception):
            self.client.create_user("alice")


if __name__ == "__main__":
    unittest.main()
