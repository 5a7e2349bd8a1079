import argparse
import asyncio
import datetime
import json
import shutil
import time

import requests

from algorithms import WeightConverter
from algorithms.models import DetailedSession
from db import InjuryRepository
from program_service import ProgramService


def backup_db(db_path: str, backup_path: str) -> None:
    shutil.copy(db_path, backup_path)


def restore_db(backup_path: str, db_path: str) -> None:
    shutil.copy(backup_path, db_path)


def benchmark(url: str, runs: int = 10) -> None:
    times: list[float] = []
    for _ in range(runs):
        t0 = time.time()
        requests.get(f"{url}/health", timeout=5)
        times.append(time.time() - t0)
    avg = sum(times) / len(times)
    print(f"Average /health response time over {runs} runs: {avg:.4f}s")


def demo_data(db_path: str, yaml_path: str) -> int:
    """Create an onboarded demo user if the database has none."""
    service = ProgramService(db_path, yaml_path)
    rows = service.users.fetch_all("SELECT id FROM users ORDER BY id LIMIT 1;")
    if rows:
        print("Database already contains users")
        return rows[0][0]
    uid = service.users.create(
        "Demo Lifter",
        birth_date="1995-06-15",
        experience="intermediate",
        goal="bulk",
        sleep_quality=4,
        stress_level=2,
        training_age_years=2.0,
        height_cm=180.0,
        weight_kg=82.0,
    )
    service.body.log_scan(uid, 82.0, 15.0)
    for exercise, weight, reps in (
        ("Barbell Bench Press", 90.0, 5),
        ("Barbell Back Squat", 120.0, 5),
        ("Conventional Deadlift", 150.0, 3),
    ):
        service.record_calibration(uid, exercise, weight, reps, 8.0)
    print(f"Demo user {uid} inserted")
    return uid


def format_session(session: DetailedSession, unit: str = "kg") -> str:
    lines = [f"{session.day} - {session.focus} (~{session.estimated_minutes} min)"]
    for ex in session.exercises:
        rec = ex.weight_recommendation
        lines.append(
            f"  {ex.exercise.name}: {ex.sets} x {ex.reps.min}-{ex.reps.max} @ RIR {ex.reps.target_rir}, "
            f"{WeightConverter.describe(rec.recommended_weight, unit)} ({rec.confidence})"
        )
    return "\n".join(lines)


def generate(db_path: str, yaml_path: str, user_id: int, days: int | None, minutes: int | None) -> int:
    service = ProgramService(db_path, yaml_path)
    mid, program = asyncio.run(service.generate_mesocycle(user_id, days, minutes))
    unit = service.settings.get_text("weight_unit", "kg")
    plan = program.periodization
    print(f"Mesocycle {mid}: {program.split}, {plan.model}, {plan.mesocycle_weeks} weeks")
    for warning in program.warnings:
        print(f"! {warning}")
    for session in program.sessions:
        print(format_session(session, unit))
    return mid


def main() -> None:
    parser = argparse.ArgumentParser(description="Training program utilities")
    sub = parser.add_subparsers(dest="cmd", required=True)

    bkp = sub.add_parser("backup")
    bkp.add_argument("--db", default="program.db")
    bkp.add_argument("--out", default="backup.db")

    rst = sub.add_parser("restore")
    rst.add_argument("--in", dest="src", default="backup.db")
    rst.add_argument("--db", default="program.db")

    demo = sub.add_parser("demo")
    demo.add_argument("--db", default="program.db")
    demo.add_argument("--yaml", default=None)

    gen = sub.add_parser("generate")
    gen.add_argument("--db", default="program.db")
    gen.add_argument("--yaml", default=None)
    gen.add_argument("--user", type=int, required=True)
    gen.add_argument("--days", type=int)
    gen.add_argument("--minutes", type=int)

    today = sub.add_parser("today")
    today.add_argument("--db", default="program.db")
    today.add_argument("--yaml", default=None)
    today.add_argument("--user", type=int, required=True)
    today.add_argument("--date")

    deload = sub.add_parser("deload")
    deload.add_argument("--db", default="program.db")
    deload.add_argument("--yaml", default=None)
    deload.add_argument("--mesocycle", type=int, required=True)

    injury = sub.add_parser("injury")
    injury.add_argument("--db", default="program.db")
    injury.add_argument("--user", type=int, required=True)
    injury.add_argument("--muscle", required=True)
    injury.add_argument("--note")

    bench = sub.add_parser("benchmark")
    bench.add_argument("--url", default="http://localhost:8000")
    bench.add_argument("--runs", type=int, default=10)

    args = parser.parse_args()

    if args.cmd == "backup":
        backup_db(args.db, args.out)
    elif args.cmd == "restore":
        restore_db(args.src, args.db)
    elif args.cmd == "demo":
        demo_data(args.db, args.yaml)
    elif args.cmd == "generate":
        generate(args.db, args.yaml, args.user, args.days, args.minutes)
    elif args.cmd == "today":
        service = ProgramService(args.db, args.yaml)
        day = datetime.date.fromisoformat(args.date) if args.date else None
        session = service.todays_workout(args.user, day)
        if session is None:
            print("Rest day")
        else:
            print(format_session(session, service.settings.get_text("weight_unit", "kg")))
    elif args.cmd == "deload":
        service = ProgramService(args.db, args.yaml)
        print(json.dumps(service.check_deload(args.mesocycle).model_dump(), indent=2))
    elif args.cmd == "injury":
        iid = InjuryRepository(args.db).add(args.user, args.muscle, args.note)
        print(f"Injury {iid} recorded")
    elif args.cmd == "benchmark":
        benchmark(args.url, args.runs)


if __name__ == "__main__":
    main()
