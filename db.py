import sqlite3
import aiosqlite
import datetime
import json
from contextlib import contextmanager, asynccontextmanager
from typing import Any, List, Optional, Tuple

from algorithms.set_normalizer import is_finite_number
from models import ExerciseCompletion, WorkoutRecord


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "users": (
            """CREATE TABLE users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    username TEXT NOT NULL UNIQUE,
                    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    last_active TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    total_workouts INTEGER NOT NULL DEFAULT 0,
                    total_exercises INTEGER NOT NULL DEFAULT 0,
                    total_sets INTEGER NOT NULL DEFAULT 0,
                    tons_lifted REAL NOT NULL DEFAULT 0.0,
                    is_active INTEGER NOT NULL DEFAULT 1
                );""",
            [
                "id",
                "username",
                "created_at",
                "last_active",
                "total_workouts",
                "total_exercises",
                "total_sets",
                "tons_lifted",
                "is_active",
            ],
        ),
        "exercises": (
            """CREATE TABLE exercises (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    description TEXT,
                    major_group TEXT NOT NULL,
                    bodyweight INTEGER NOT NULL DEFAULT 0
                );""",
            ["id", "name", "description", "major_group", "bodyweight"],
        ),
        "workout_templates": (
            """CREATE TABLE workout_templates (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    num_exercises INTEGER NOT NULL DEFAULT 0,
                    duration INTEGER NOT NULL DEFAULT 0,
                    major_group TEXT
                );""",
            ["id", "name", "num_exercises", "duration", "major_group"],
        ),
        "workout_history": (
            """CREATE TABLE workout_history (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    workout_id INTEGER NOT NULL,
                    workout_name TEXT NOT NULL,
                    duration INTEGER NOT NULL DEFAULT 0,
                    comments TEXT,
                    completed_at TEXT NOT NULL,
                    session_guid TEXT
                );""",
            [
                "id",
                "user_id",
                "workout_id",
                "workout_name",
                "duration",
                "comments",
                "completed_at",
                "session_guid",
            ],
        ),
        "exercise_history": (
            """CREATE TABLE exercise_history (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    exercise_id INTEGER NOT NULL,
                    workout_session_id TEXT,
                    sets_completed INTEGER NOT NULL DEFAULT 0,
                    weight_per_set TEXT,
                    difficulty_per_set TEXT,
                    reps_per_set TEXT,
                    comments TEXT,
                    completed_at TEXT NOT NULL
                );""",
            [
                "id",
                "user_id",
                "exercise_id",
                "workout_session_id",
                "sets_completed",
                "weight_per_set",
                "difficulty_per_set",
                "reps_per_set",
                "comments",
                "completed_at",
            ],
        ),
    }

    def __init__(self, db_path: str = "workout.db") -> None:
        self._db_path = db_path
        self._ensure_schema()

    @contextmanager
    def _connection(self):
        connection = sqlite3.connect(self._db_path)
        try:
            yield connection
            connection.commit()
        finally:
            connection.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute("PRAGMA foreign_keys=off;")
            for table, (sql, columns) in self._TABLE_DEFINITIONS.items():
                self._ensure_table(conn, table, sql, columns)
            cursor.execute("PRAGMA foreign_keys=on;")

    def _ensure_table(
        self, conn: sqlite3.Connection, table: str, sql: str, columns: List[str]
    ) -> None:
        cur = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?;", (table,)
        )
        if cur.fetchone() is None:
            conn.execute(sql)
            return

        cur = conn.execute(f"PRAGMA table_info({table});")
        existing_cols = [row[1] for row in cur.fetchall()]
        if existing_cols == columns:
            return

        conn.execute(f"DROP TABLE IF EXISTS {table}_old;")
        conn.execute(f"ALTER TABLE {table} RENAME TO {table}_old;")
        conn.execute(sql)

        common = [c for c in existing_cols if c in columns]
        if common:
            cols = ", ".join(common)
            missing = [c for c in columns if c not in existing_cols]
            if missing:
                def default_val(col: str) -> str:
                    if col in (
                        "total_workouts",
                        "total_exercises",
                        "total_sets",
                        "tons_lifted",
                        "bodyweight",
                        "duration",
                        "num_exercises",
                        "sets_completed",
                    ):
                        return "0"
                    if col == "is_active":
                        return "1"
                    if col in ("created_at", "last_active", "completed_at"):
                        return "CURRENT_TIMESTAMP"
                    return "NULL"

                defaults = ", ".join(default_val(c) for c in missing)
                conn.execute(
                    f"INSERT INTO {table} ({cols}, {', '.join(missing)}) SELECT {cols}, {defaults} FROM {table}_old;"
                )
            else:
                conn.execute(
                    f"INSERT INTO {table} ({cols}) SELECT {cols} FROM {table}_old;"
                )
        conn.execute(f"DROP TABLE {table}_old;")


class BaseRepository(Database):
    """Base repository providing helper methods."""

    def execute(self, query: str, params: Tuple = ()) -> int:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.lastrowid

    def execute_count(self, query: str, params: Tuple = ()) -> int:
        """Run ``query`` and return the number of affected rows."""
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.rowcount

    def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.fetchall()

    def _delete_all(self, table: str) -> None:
        self.execute(f"DELETE FROM {table};")


class AsyncDatabase(Database):
    """Provides asynchronous connection management."""

    @asynccontextmanager
    async def _async_connection(self):
        conn = await aiosqlite.connect(self._db_path)
        try:
            yield conn
            await conn.commit()
        finally:
            await conn.close()


class AsyncBaseRepository(AsyncDatabase):
    """Asynchronous variant of BaseRepository using aiosqlite."""

    async def execute(self, query: str, params: Tuple = ()) -> int:
        async with self._async_connection() as conn:
            cursor = await conn.execute(query, params)
            await conn.commit()
            return cursor.lastrowid

    async def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        async with self._async_connection() as conn:
            cursor = await conn.execute(query, params)
            rows = await cursor.fetchall()
            return rows

    async def _delete_all(self, table: str) -> None:
        await self.execute(f"DELETE FROM {table};")


def _now() -> str:
    return datetime.datetime.now().replace(microsecond=0).isoformat()


def _encode_sets(values: Any) -> Optional[str]:
    """Serialize per-set values for storage; strings are stored verbatim."""
    if values is None or isinstance(values, str):
        return values
    if isinstance(values, tuple):
        values = list(values)
    return json.dumps(values)


def _decode_sets(text: Optional[str]) -> Any:
    """Decode stored per-set JSON, handing undecodable text through as is."""
    if text is None:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text


def _tons_lifted(sets_completed: int, weights: Any, reps: Any) -> float:
    """Total load in short tons, assuming pounds."""
    if not isinstance(weights, (list, tuple)) or not isinstance(reps, (list, tuple)):
        return 0.0
    total = 0.0
    for i in range(min(sets_completed, len(weights), len(reps))):
        w, r = weights[i], reps[i]
        if is_finite_number(w) and is_finite_number(r):
            total += w * r
    return total / 2000


_WORKOUT_HISTORY_COLUMNS = (
    "id, workout_id, workout_name, duration, comments, completed_at, session_guid"
)

_EXERCISE_HISTORY_QUERY = (
    "SELECT eh.id, eh.exercise_id, COALESCE(e.name, ''), COALESCE(e.major_group, ''), "
    "eh.sets_completed, eh.weight_per_set, eh.reps_per_set, eh.difficulty_per_set, "
    "eh.completed_at, e.bodyweight, eh.workout_session_id, eh.comments, e.description "
    "FROM exercise_history eh LEFT JOIN exercises e ON eh.exercise_id = e.id "
    "WHERE eh.user_id = ? ORDER BY eh.completed_at DESC, eh.id DESC LIMIT ?;"
)


def workout_record_from_row(row: Tuple) -> WorkoutRecord:
    rid, workout_id, name, duration, comments, completed_at, guid = row
    return WorkoutRecord(
        id=int(rid),
        workout_id=int(workout_id),
        workout_name=name,
        duration=int(duration or 0),
        completed_at=completed_at,
        comments=comments,
        session_guid=guid,
    )


def exercise_completion_from_row(row: Tuple) -> ExerciseCompletion:
    (
        cid,
        exercise_id,
        name,
        major_group,
        sets_completed,
        weights,
        reps,
        difficulties,
        completed_at,
        bodyweight,
        session_id,
        comments,
        description,
    ) = row
    return ExerciseCompletion(
        id=int(cid),
        exercise_id=int(exercise_id),
        exercise_name=name,
        major_group=major_group,
        sets_completed=int(sets_completed or 0),
        weight_per_set=_decode_sets(weights),
        reps_per_set=_decode_sets(reps),
        difficulty_per_set=_decode_sets(difficulties),
        completed_at=completed_at,
        bodyweight=None if bodyweight is None else bool(bodyweight),
        workout_session_id=session_id,
        comments=comments,
        description=description,
    )


def _user_from_row(row: Tuple) -> dict:
    uid, username, workouts, exercises, sets, tons = row
    return {
        "id": uid,
        "username": username,
        "total_workouts": workouts,
        "total_exercises": exercises,
        "total_sets": sets,
        "tons_lifted": tons,
    }


class UserRepository(BaseRepository):
    """Repository for users and their running totals."""

    def create(self, username: str) -> int:
        username = username.strip()
        if not username:
            raise ValueError("username required")
        try:
            return self.execute(
                "INSERT INTO users (username) VALUES (?);", (username,)
            )
        except sqlite3.IntegrityError:
            raise ValueError("username already exists")

    def fetch_all(self) -> List[Tuple[int, str, int, int, int, float]]:
        return super().fetch_all(
            "SELECT id, username, total_workouts, total_exercises, total_sets, tons_lifted FROM users WHERE is_active = 1 ORDER BY last_active DESC, id DESC;"
        )

    def current(self) -> Optional[dict]:
        """Return the most recently active user or ``None``."""
        rows = super().fetch_all(
            "SELECT id, username, total_workouts, total_exercises, total_sets, tons_lifted FROM users WHERE is_active = 1 ORDER BY last_active DESC, id DESC LIMIT 1;"
        )
        if not rows:
            return None
        return _user_from_row(rows[0])

    def deactivate(self, user_id: int) -> None:
        rows = super().fetch_all("SELECT id FROM users WHERE id = ?;", (user_id,))
        if not rows:
            raise ValueError("user not found")
        self.execute("UPDATE users SET is_active = 0 WHERE id = ?;", (user_id,))

    def record_workout(self, user_id: str) -> None:
        self.execute(
            "UPDATE users SET total_workouts = total_workouts + 1, last_active = CURRENT_TIMESTAMP WHERE username = ? OR CAST(id AS TEXT) = ?;",
            (user_id, user_id),
        )

    def record_exercise_stats(self, user_id: str, sets: int, tons: float) -> None:
        self.execute(
            "UPDATE users SET total_sets = total_sets + ?, tons_lifted = tons_lifted + ?, total_exercises = total_exercises + 1, last_active = CURRENT_TIMESTAMP WHERE username = ? OR CAST(id AS TEXT) = ?;",
            (sets, tons, user_id, user_id),
        )


class ExerciseRepository(BaseRepository):
    """Repository for the exercise catalog."""

    def add(
        self,
        name: str,
        major_group: str,
        description: Optional[str] = None,
        bodyweight: bool = False,
    ) -> int:
        if not name.strip():
            raise ValueError("name required")
        return self.execute(
            "INSERT INTO exercises (name, description, major_group, bodyweight) VALUES (?, ?, ?, ?);",
            (name.strip(), description, major_group, int(bodyweight)),
        )

    def fetch_all(self) -> List[Tuple[int, str, Optional[str], str, int]]:
        return super().fetch_all(
            "SELECT id, name, description, major_group, bodyweight FROM exercises ORDER BY major_group, name;"
        )

    def fetch_detail(self, exercise_id: int) -> Tuple[int, str, Optional[str], str, int]:
        rows = super().fetch_all(
            "SELECT id, name, description, major_group, bodyweight FROM exercises WHERE id = ?;",
            (exercise_id,),
        )
        if not rows:
            raise ValueError("exercise not found")
        return rows[0]


class WorkoutTemplateRepository(BaseRepository):
    """Repository for workout templates users pick from."""

    def create(
        self,
        name: str,
        num_exercises: int = 0,
        duration: int = 0,
        major_group: Optional[str] = None,
    ) -> int:
        if not name.strip():
            raise ValueError("name required")
        if duration < 0:
            raise ValueError("duration must be non-negative")
        return self.execute(
            "INSERT INTO workout_templates (name, num_exercises, duration, major_group) VALUES (?, ?, ?, ?);",
            (name.strip(), num_exercises, duration, major_group),
        )

    def fetch_all(self) -> List[Tuple[int, str, int, int, Optional[str]]]:
        return super().fetch_all(
            "SELECT id, name, num_exercises, duration, major_group FROM workout_templates ORDER BY id;"
        )

    def fetch_detail(self, workout_id: int) -> Tuple[int, str, int, int, Optional[str]]:
        rows = super().fetch_all(
            "SELECT id, name, num_exercises, duration, major_group FROM workout_templates WHERE id = ?;",
            (workout_id,),
        )
        if not rows:
            raise ValueError("workout not found")
        return rows[0]


class WorkoutHistoryRepository(BaseRepository):
    """Repository for completed workouts."""

    def __init__(self, db_path: str = "workout.db") -> None:
        super().__init__(db_path)
        self.users = UserRepository(db_path)

    def record(
        self,
        user_id: str,
        workout_id: int,
        workout_name: str,
        duration: int,
        comments: str = "",
        completed_at: Optional[str] = None,
        session_guid: Optional[str] = None,
    ) -> int:
        if duration < 0:
            raise ValueError("duration must be non-negative")
        rid = self.execute(
            "INSERT INTO workout_history (user_id, workout_id, workout_name, duration, comments, completed_at, session_guid) VALUES (?, ?, ?, ?, ?, ?, ?);",
            (
                user_id,
                workout_id,
                workout_name,
                duration,
                comments,
                completed_at or _now(),
                session_guid,
            ),
        )
        self.users.record_workout(user_id)
        return rid

    def fetch_for_user(self, user_id: str, limit: int = 100) -> List[WorkoutRecord]:
        """Return the user's workouts, most recent first."""
        rows = self.fetch_all(
            f"SELECT {_WORKOUT_HISTORY_COLUMNS} FROM workout_history WHERE user_id = ? ORDER BY completed_at DESC, id DESC LIMIT ?;",
            (user_id, limit),
        )
        return [workout_record_from_row(r) for r in rows]

    def fetch_detail(self, user_id: str, record_id: int) -> WorkoutRecord:
        rows = self.fetch_all(
            f"SELECT {_WORKOUT_HISTORY_COLUMNS} FROM workout_history WHERE user_id = ? AND id = ?;",
            (user_id, record_id),
        )
        if not rows:
            raise ValueError("workout not found")
        return workout_record_from_row(rows[0])

    def delete(self, user_id: str, record_id: int) -> None:
        self.fetch_detail(user_id, record_id)
        self.execute(
            "DELETE FROM workout_history WHERE user_id = ? AND id = ?;",
            (user_id, record_id),
        )

    def delete_by_session_guid(self, user_id: str, session_guid: str) -> int:
        """Delete a session's workout rows and linked exercises.

        Returns the number of workout rows removed.
        """
        removed = self.execute_count(
            "DELETE FROM workout_history WHERE user_id = ? AND session_guid = ?;",
            (user_id, session_guid),
        )
        if not removed:
            raise ValueError("workout not found")
        self.execute(
            "DELETE FROM exercise_history WHERE user_id = ? AND workout_session_id = ?;",
            (user_id, session_guid),
        )
        return removed


class ExerciseHistoryRepository(BaseRepository):
    """Repository for logged exercises."""

    def __init__(self, db_path: str = "workout.db") -> None:
        super().__init__(db_path)
        self.users = UserRepository(db_path)

    def record(
        self,
        user_id: str,
        exercise_id: int,
        sets_completed: int,
        weight_per_set: Any,
        difficulty_per_set: Any,
        reps_per_set: Any,
        comments: str = "",
        workout_session_id: Optional[str] = None,
        completed_at: Optional[str] = None,
    ) -> int:
        if sets_completed < 0:
            raise ValueError("sets_completed must be non-negative")
        cid = self.execute(
            "INSERT INTO exercise_history (user_id, exercise_id, workout_session_id, sets_completed, weight_per_set, difficulty_per_set, reps_per_set, comments, completed_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);",
            (
                user_id,
                exercise_id,
                workout_session_id,
                sets_completed,
                _encode_sets(weight_per_set),
                _encode_sets(difficulty_per_set),
                _encode_sets(reps_per_set),
                comments,
                completed_at or _now(),
            ),
        )
        tons = _tons_lifted(sets_completed, weight_per_set, reps_per_set)
        self.users.record_exercise_stats(user_id, sets_completed, tons)
        return cid

    def fetch_for_user(self, user_id: str, limit: int = 50) -> List[ExerciseCompletion]:
        """Return the user's logged exercises, most recent first."""
        rows = self.fetch_all(_EXERCISE_HISTORY_QUERY, (user_id, limit))
        return [exercise_completion_from_row(r) for r in rows]


class AsyncWorkoutHistoryRepository(AsyncBaseRepository):
    """Async read access to completed workouts."""

    async def fetch_for_user(
        self, user_id: str, limit: int = 100
    ) -> List[WorkoutRecord]:
        rows = await self.fetch_all(
            f"SELECT {_WORKOUT_HISTORY_COLUMNS} FROM workout_history WHERE user_id = ? ORDER BY completed_at DESC, id DESC LIMIT ?;",
            (user_id, limit),
        )
        return [workout_record_from_row(r) for r in rows]


class AsyncExerciseHistoryRepository(AsyncBaseRepository):
    """Async read access to logged exercises."""

    async def fetch_for_user(
        self, user_id: str, limit: int = 50
    ) -> List[ExerciseCompletion]:
        rows = await self.fetch_all(_EXERCISE_HISTORY_QUERY, (user_id, limit))
        return [exercise_completion_from_row(r) for r in rows]


class AsyncUserRepository(AsyncBaseRepository):
    """Async read access to the active user."""

    async def current(self) -> Optional[dict]:
        rows = await self.fetch_all(
            "SELECT id, username, total_workouts, total_exercises, total_sets, tons_lifted FROM users WHERE is_active = 1 ORDER BY last_active DESC, id DESC LIMIT 1;"
        )
        if not rows:
            return None
        return _user_from_row(rows[0])
