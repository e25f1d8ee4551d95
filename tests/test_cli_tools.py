import io
import json
import os
import sys
import unittest
from contextlib import redirect_stdout

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from cli import backup_db, demo_data, print_summary, restore_db
from rest_api import WorkoutLogAPI


class CLIToolsTest(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_cli.db"
        self.yaml_path = "test_cli.yaml"
        for path in (self.db_path, self.yaml_path, "backup.db"):
            if os.path.exists(path):
                os.remove(path)

    def tearDown(self) -> None:
        for path in (self.db_path, self.yaml_path, "backup.db"):
            if os.path.exists(path):
                os.remove(path)

    def test_backup_restore(self) -> None:
        WorkoutLogAPI(db_path=self.db_path, yaml_path=self.yaml_path).workouts.create("Legs")
        backup_db(self.db_path, "backup.db")
        self.assertTrue(os.path.exists("backup.db"))
        os.remove(self.db_path)
        restore_db("backup.db", self.db_path)
        api = WorkoutLogAPI(db_path=self.db_path, yaml_path=self.yaml_path)
        self.assertEqual(api.workouts.fetch_all()[0][1], "Legs")

    def test_demo_data(self) -> None:
        with redirect_stdout(io.StringIO()):
            demo_data(self.db_path, self.yaml_path)
        api = WorkoutLogAPI(db_path=self.db_path, yaml_path=self.yaml_path)
        self.assertEqual(len(api.workouts.fetch_all()), 1)
        self.assertEqual(api.users.current()["username"], "demo")
        [record] = api.workout_history.fetch_for_user("demo")
        self.assertEqual(len(api.exercise_history.fetch_for_user("demo")), 2)

        out = io.StringIO()
        with redirect_stdout(out):
            demo_data(self.db_path, self.yaml_path)
        self.assertIn("already contains workouts", out.getvalue())

        out = io.StringIO()
        with redirect_stdout(out):
            code = print_summary(self.db_path, self.yaml_path, record.id)
        self.assertEqual(code, 0)
        data = json.loads(out.getvalue())
        self.assertEqual(data["exercise_count"], 2)
        plank = next(e for e in data["exercises"] if e["name"] == "Plank")
        self.assertEqual(plank["reps"], "45 - 60 seconds")

    def test_summary_not_found(self) -> None:
        out = io.StringIO()
        with redirect_stdout(out):
            code = print_summary(self.db_path, self.yaml_path, 99, "nobody")
        self.assertEqual(code, 1)
        self.assertIn("Workout 99 not found", out.getvalue())


if __name__ == "__main__":
    unittest.main()
