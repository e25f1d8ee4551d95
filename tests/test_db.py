import os
import sys
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from db import (
    ExerciseHistoryRepository,
    ExerciseRepository,
    UserRepository,
    WorkoutHistoryRepository,
    WorkoutTemplateRepository,
)


class RepositoryTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_repositories.db"
        if os.path.exists(self.db_path):
            os.remove(self.db_path)
        self.users = UserRepository(self.db_path)
        self.exercises = ExerciseRepository(self.db_path)
        self.templates = WorkoutTemplateRepository(self.db_path)
        self.workouts = WorkoutHistoryRepository(self.db_path)
        self.history = ExerciseHistoryRepository(self.db_path)

    def tearDown(self) -> None:
        if os.path.exists(self.db_path):
            os.remove(self.db_path)

    def test_users(self) -> None:
        self.assertIsNone(self.users.current())
        alice = self.users.create("alice")
        bob = self.users.create("bob")
        self.assertEqual(self.users.current()["username"], "bob")
        with self.assertRaises(ValueError):
            self.users.create("alice")
        with self.assertRaises(ValueError):
            self.users.create("  ")
        self.users.deactivate(bob)
        self.assertEqual(self.users.current()["id"], alice)
        with self.assertRaises(ValueError):
            self.users.deactivate(99)

    def test_catalog(self) -> None:
        eid = self.exercises.add("Plank", "core", "Hold it", bodyweight=True)
        self.assertEqual(self.exercises.fetch_detail(eid), (eid, "Plank", "Hold it", "core", 1))
        with self.assertRaises(ValueError):
            self.exercises.fetch_detail(42)
        wid = self.templates.create("Chest", 4, 30, "chest")
        self.assertEqual(self.templates.fetch_all(), [(wid, "Chest", 4, 30, "chest")])
        with self.assertRaises(ValueError):
            self.templates.fetch_detail(42)
        with self.assertRaises(ValueError):
            self.templates.create("Legs", duration=-5)

    def test_exercise_history_round_trip(self) -> None:
        self.users.create("alice")
        bench = self.exercises.add("Bench Press", "chest")
        plank = self.exercises.add("Plank", "core", bodyweight=True)
        self.history.record(
            "alice", bench, 2, [100, 100], ["easy", "hard"], [10, 10],
            workout_session_id="g1", completed_at="2024-01-01T10:00:00",
        )
        self.history.record(
            "alice", plank, 1, [0], ["medium"], [60],
            completed_at="2024-01-01T10:10:00",
        )
        rows = self.history.fetch_for_user("alice")
        self.assertEqual([r.exercise_name for r in rows], ["Plank", "Bench Press"])
        plank_row, bench_row = rows
        self.assertTrue(plank_row.bodyweight)
        self.assertFalse(bench_row.bodyweight)
        self.assertEqual(bench_row.weight_per_set, [100, 100])
        self.assertEqual(bench_row.difficulty_per_set, ["easy", "hard"])
        self.assertEqual(bench_row.workout_session_id, "g1")
        self.assertIsNone(plank_row.workout_session_id)
        self.assertEqual(self.history.fetch_for_user("alice", limit=1), [plank_row])
        self.assertEqual(self.history.fetch_for_user("bob"), [])

        user = self.users.current()
        self.assertEqual(user["total_exercises"], 2)
        self.assertEqual(user["total_sets"], 3)
        self.assertAlmostEqual(user["tons_lifted"], 1.0)

    def test_undecodable_sets_are_passed_through(self) -> None:
        eid = self.exercises.add("Row", "back")
        self.history.execute(
            "INSERT INTO exercise_history (user_id, exercise_id, sets_completed, weight_per_set, difficulty_per_set, reps_per_set, completed_at) VALUES (?, ?, ?, ?, ?, ?, ?);",
            ("alice", eid, 3, "[80, 80", None, "12", "2024-01-01 09:00:00"),
        )
        row = self.history.fetch_for_user("alice")[0]
        self.assertEqual(row.weight_per_set, "[80, 80")
        self.assertIsNone(row.difficulty_per_set)
        self.assertEqual(row.reps_per_set, 12)

    def test_oversized_weights_do_not_break_stats(self) -> None:
        self.users.create("alice")
        eid = self.exercises.add("Deadlift", "back")
        self.history.record("alice", eid, 2, [10**400, 100], ["hard", "hard"], [5, 10])
        self.assertAlmostEqual(self.users.current()["tons_lifted"], 0.5)
        [row] = self.history.fetch_for_user("alice")
        self.assertEqual(row.weight_per_set, [10**400, 100])

    def test_workout_history(self) -> None:
        self.users.create("alice")
        first = self.workouts.record("alice", 1, "Chest", 30, completed_at="2024-01-01T10:00:00")
        second = self.workouts.record(
            "alice", 2, "Back", 45, "good", "2024-01-03T10:00:00", "g2"
        )
        records = self.workouts.fetch_for_user("alice")
        self.assertEqual([r.id for r in records], [second, first])
        self.assertEqual(records[0].session_guid, "g2")
        self.assertIsNone(records[1].session_guid)
        self.assertEqual(records[0].comments, "good")
        self.assertEqual(len(self.workouts.fetch_for_user("alice", limit=1)), 1)
        self.assertEqual(self.users.current()["total_workouts"], 2)
        with self.assertRaises(ValueError):
            self.workouts.record("alice", 1, "Chest", -1)

    def test_delete_by_session_guid_removes_exercises(self) -> None:
        eid = self.exercises.add("Squat", "legs")
        rid = self.workouts.record("alice", 1, "Legs", 40, session_guid="g1")
        self.history.record("alice", eid, 1, [200], ["hard"], [5], workout_session_id="g1")
        self.history.record("alice", eid, 1, [150], ["easy"], [8])
        self.assertEqual(self.workouts.delete_by_session_guid("alice", "g1"), 1)
        self.assertEqual(self.workouts.fetch_for_user("alice"), [])
        remaining = self.history.fetch_for_user("alice")
        self.assertEqual([r.weight_per_set for r in remaining], [[150]])
        with self.assertRaises(ValueError):
            self.workouts.delete_by_session_guid("alice", "g1")
        with self.assertRaises(ValueError):
            self.workouts.fetch_detail("alice", rid)

    def test_delete_by_id(self) -> None:
        rid = self.workouts.record("alice", 1, "Legs", 40)
        with self.assertRaises(ValueError):
            self.workouts.delete("bob", rid)
        self.workouts.delete("alice", rid)
        self.assertEqual(self.workouts.fetch_for_user("alice"), [])


if __name__ == "__main__":
    unittest.main()
