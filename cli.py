import argparse
import datetime
import json
import logging

from config import YamlConfig
from db import (
    ExerciseRepository,
    PerformanceRepository,
    SessionRepository,
    SetRepository,
    default_db_path,
)
from stats_service import StatisticsService


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )


def _service(db_path: str, yaml_path: str) -> StatisticsService:
    settings = YamlConfig(yaml_path).settings()
    _configure_logging(settings.log_level)
    return StatisticsService(
        PerformanceRepository(db_path), SessionRepository(db_path), settings
    )


def demo_data(db_path: str, user_id: str, today: datetime.date | None = None) -> bool:
    """Populate the database with a few weeks of demo sessions if empty."""
    sessions = SessionRepository(db_path)
    if sessions.count(user_id, "workouts"):
        print("Database already contains sessions")
        return False
    exercises = ExerciseRepository(db_path)
    sets = SetRepository(db_path)
    today = today or datetime.date.today()
    for days_ago, weight in [(1, 105.0), (2, 102.5), (9, 100.0), (16, 97.5), (40, 95.0)]:
        day = (today - datetime.timedelta(days=days_ago)).isoformat()
        sid = sessions.create(user_id, day, "workout", "workouts")
        eid = exercises.add(sid, "Bench Press", "exercise")
        sets.add(eid, reps=5, weight=weight)
        sets.add(eid, reps=5, weight=weight - 5)
    for days_ago, made in [(3, 7), (10, 9)]:
        day = (today - datetime.timedelta(days=days_ago)).isoformat()
        sid = sessions.create(user_id, day, "basketball", "practices")
        eid = exercises.add(sid, "Free Throws", "shooting")
        sets.add(eid, attempted=10, made=made)
    print("Demo data inserted")
    return True


def main() -> None:
    parser = argparse.ArgumentParser(description="Progress engine commands")
    sub = parser.add_subparsers(dest="cmd", required=True)

    demo = sub.add_parser("demo")
    demo.add_argument("--db", default=default_db_path())
    demo.add_argument("--user", default="demo")

    prog = sub.add_parser("progress")
    prog.add_argument("query")
    prog.add_argument("--metric", default="weight")
    prog.add_argument("--days", type=int, default=30)
    prog.add_argument("--mode", default="workout")
    prog.add_argument("--fill", choices=["sparse", "null", "zero"])
    prog.add_argument("--user", default="demo")
    prog.add_argument("--db", default=default_db_path())
    prog.add_argument("--yaml", default="settings.yaml")

    stats = sub.add_parser("stats")
    stats.add_argument("--kind", choices=["workouts", "practices", "games"], default="workouts")
    stats.add_argument("--user", default="demo")
    stats.add_argument("--db", default=default_db_path())
    stats.add_argument("--yaml", default="settings.yaml")

    records = sub.add_parser("records")
    records.add_argument("query")
    records.add_argument("--mode", default="workout")
    records.add_argument("--user", default="demo")
    records.add_argument("--db", default=default_db_path())
    records.add_argument("--yaml", default="settings.yaml")

    serve = sub.add_parser("serve")
    serve.add_argument("--db", default=default_db_path())
    serve.add_argument("--yaml", default="settings.yaml")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    args = parser.parse_args()

    if args.cmd == "demo":
        demo_data(args.db, args.user)
    elif args.cmd == "progress":
        service = _service(args.db, args.yaml)
        result = service.exercise_progress(
            args.user, args.mode, args.query, args.metric, args.days, fill=args.fill
        )
        print(json.dumps(result, indent=2))
    elif args.cmd == "stats":
        service = _service(args.db, args.yaml)
        print(json.dumps(service.history_stats(args.user, args.kind)))
    elif args.cmd == "records":
        service = _service(args.db, args.yaml)
        print(json.dumps(service.personal_records(args.user, args.mode, args.query), indent=2))
    elif args.cmd == "serve":
        import uvicorn
        from rest_api import create_app

        uvicorn.run(create_app(args.db, args.yaml), host=args.host, port=args.port)


if __name__ == "__main__":
    main()
