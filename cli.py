import argparse
import datetime
import json
import shutil
import uuid

from loguru import logger

from logging_config import setup_logger
from rest_api import WorkoutLogAPI
from settings_schema import load_settings
from summary_service import HistoryUnavailableError, describe_summary


def backup_db(db_path: str, backup_path: str) -> None:
    shutil.copy(db_path, backup_path)


def restore_db(backup_path: str, db_path: str) -> None:
    shutil.copy(backup_path, db_path)


def print_summary(db_path: str, yaml_path: str, record_id: int, user_id: str | None = None) -> int:
    """Print the summary of a logged workout as JSON. Returns an exit code."""
    api = WorkoutLogAPI(db_path=db_path, yaml_path=yaml_path)
    try:
        summary = api.summaries.load_summary(record_id, user_id)
    except HistoryUnavailableError as e:
        print(f"Could not load workout history: {e}")
        return 1
    if summary is None:
        print(f"Workout {record_id} not found")
        return 1
    print(json.dumps(describe_summary(summary), indent=2))
    return 0


def demo_data(db_path: str, yaml_path: str) -> None:
    """Populate the database with a demo user and workout if empty."""
    api = WorkoutLogAPI(db_path=db_path, yaml_path=yaml_path)
    if api.workouts.fetch_all():
        print("Database already contains workouts")
        return
    api.users.create("demo")
    user_id = api.summaries.resolve_user_id()
    wid = api.workouts.create("Chest", 2, 30, "chest")
    bench = api.exercises.add("Bench Press", "chest", "Barbell press on a flat bench")
    plank = api.exercises.add("Plank", "core", "Hold a straight-arm plank", bodyweight=True)
    guid = str(uuid.uuid4())
    now = datetime.datetime.now().replace(microsecond=0)
    api.exercise_history.record(
        user_id,
        bench,
        3,
        [135, 145, 155],
        ["easy", "medium", "hard"],
        [10, 8, 6],
        workout_session_id=guid,
        completed_at=(now - datetime.timedelta(minutes=20)).isoformat(),
    )
    api.exercise_history.record(
        user_id,
        plank,
        2,
        [0, 0],
        ["medium", "medium"],
        [45, 60],
        workout_session_id=guid,
        completed_at=(now - datetime.timedelta(minutes=5)).isoformat(),
    )
    api.workout_history.record(
        user_id, wid, "Chest", 30, "Demo session", now.isoformat(), guid
    )
    print("Demo data inserted")


def main() -> int:
    parser = argparse.ArgumentParser(description="Workout log utilities")
    parser.add_argument("--yaml", default="settings.yaml")
    sub = parser.add_subparsers(dest="cmd", required=True)

    summ = sub.add_parser("summary")
    summ.add_argument("--db", default="workout.db")
    summ.add_argument("--id", type=int, required=True)
    summ.add_argument("--user", default=None)

    bkp = sub.add_parser("backup")
    bkp.add_argument("--db", default="workout.db")
    bkp.add_argument("--out", default="backup.db")

    rst = sub.add_parser("restore")
    rst.add_argument("--in", dest="src", default="backup.db")
    rst.add_argument("--db", default="workout.db")

    demo = sub.add_parser("demo")
    demo.add_argument("--db", default="workout.db")

    serve = sub.add_parser("serve")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    args = parser.parse_args()

    settings = load_settings(args.yaml)
    setup_logger(settings.log_level, settings.log_file)
    logger.debug(f"Running command {args.cmd}")

    if args.cmd == "summary":
        return print_summary(args.db, args.yaml, args.id, args.user)
    elif args.cmd == "backup":
        backup_db(args.db, args.out)
    elif args.cmd == "restore":
        restore_db(args.src, args.db)
    elif args.cmd == "demo":
        demo_data(args.db, args.yaml)
    elif args.cmd == "serve":
        import uvicorn

        uvicorn.run("rest_api:app", host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
