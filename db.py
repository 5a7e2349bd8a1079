import sqlite3
import aiosqlite
import datetime
import json
import os
from contextlib import contextmanager, asynccontextmanager
from typing import List, Tuple, Optional, Iterable

from loguru import logger

from algorithms.constants import EXERCISE_CATALOG
from algorithms.math_tools import MathTools
from algorithms.models import (
    MUSCLE_GROUPS,
    BodyComposition,
    ExerciseDefinition,
    ExerciseHistoryRecord,
    FullProgramRecommendation,
    HistorySet,
    StrengthCalibrationRecord,
    UserTrainingProfile,
    WeeklyFatigueLog,
)
from config import SettingsFile
from settings_schema import validate_settings

VALID_SEX = {"male", "female"}
VALID_EXPERIENCE = {"novice", "intermediate", "advanced"}
VALID_GOALS = {"cut", "bulk", "recomp", "maintain"}
VALID_EQUIPMENT = {"barbell", "dumbbell", "cable", "machine", "bodyweight", "kettlebell"}
DEFAULT_HEIGHT_CM = 175.0


class PersistenceError(RuntimeError):
    """Raised when a write could not be committed."""


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "users": (
            """CREATE TABLE users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT,
                    birth_date TEXT,
                    sex TEXT NOT NULL DEFAULT 'male',
                    experience TEXT NOT NULL DEFAULT 'novice',
                    goal TEXT NOT NULL DEFAULT 'bulk',
                    sleep_quality INTEGER NOT NULL DEFAULT 3,
                    stress_level INTEGER NOT NULL DEFAULT 3,
                    training_age_years REAL NOT NULL DEFAULT 0,
                    available_equipment TEXT,
                    height_cm REAL,
                    weight_kg REAL,
                    created_at TEXT NOT NULL
                );""",
            [
                "id",
                "name",
                "birth_date",
                "sex",
                "experience",
                "goal",
                "sleep_quality",
                "stress_level",
                "training_age_years",
                "available_equipment",
                "height_cm",
                "weight_kg",
                "created_at",
            ],
        ),
        "injuries": (
            """CREATE TABLE injuries (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    muscle TEXT NOT NULL,
                    note TEXT,
                    reported_at TEXT NOT NULL,
                    resolved INTEGER NOT NULL DEFAULT 0,
                    FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
                );""",
            ["id", "user_id", "muscle", "note", "reported_at", "resolved"],
        ),
        "body_composition_scans": (
            """CREATE TABLE body_composition_scans (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    scan_date TEXT NOT NULL,
                    weight_kg REAL NOT NULL,
                    body_fat_percent REAL NOT NULL,
                    FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
                );""",
            ["id", "user_id", "scan_date", "weight_kg", "body_fat_percent"],
        ),
        "strength_calibrations": (
            """CREATE TABLE strength_calibrations (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    exercise_name TEXT NOT NULL,
                    tested_weight_kg REAL NOT NULL,
                    tested_reps INTEGER NOT NULL,
                    tested_rpe REAL,
                    estimated_1rm_kg REAL NOT NULL,
                    confidence TEXT NOT NULL DEFAULT 'high',
                    source TEXT NOT NULL DEFAULT 'calibration',
                    percentile_general REAL,
                    percentile_trained REAL,
                    strength_level TEXT,
                    tested_at TEXT NOT NULL,
                    FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
                );""",
            [
                "id",
                "user_id",
                "exercise_name",
                "tested_weight_kg",
                "tested_reps",
                "tested_rpe",
                "estimated_1rm_kg",
                "confidence",
                "source",
                "percentile_general",
                "percentile_trained",
                "strength_level",
                "tested_at",
            ],
        ),
        "exercise_history": (
            """CREATE TABLE exercise_history (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    workout_session_id TEXT,
                    exercise_name TEXT NOT NULL,
                    performed_at TEXT NOT NULL,
                    sets TEXT NOT NULL,
                    estimated_1rm_kg REAL,
                    FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
                );""",
            [
                "id",
                "user_id",
                "workout_session_id",
                "exercise_name",
                "performed_at",
                "sets",
                "estimated_1rm_kg",
            ],
        ),
        "mesocycles": (
            """CREATE TABLE mesocycles (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    name TEXT NOT NULL,
                    state TEXT NOT NULL DEFAULT 'active',
                    total_weeks INTEGER NOT NULL,
                    current_week INTEGER NOT NULL DEFAULT 1,
                    days_per_week INTEGER NOT NULL,
                    split_type TEXT NOT NULL,
                    deload_week INTEGER NOT NULL,
                    periodization_model TEXT NOT NULL,
                    program_data TEXT NOT NULL,
                    fatigue_budget_config TEXT NOT NULL,
                    volume_per_muscle TEXT NOT NULL,
                    recovery_multiplier REAL NOT NULL,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    start_date TEXT NOT NULL,
                    FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
                );""",
            [
                "id",
                "user_id",
                "name",
                "state",
                "total_weeks",
                "current_week",
                "days_per_week",
                "split_type",
                "deload_week",
                "periodization_model",
                "program_data",
                "fatigue_budget_config",
                "volume_per_muscle",
                "recovery_multiplier",
                "is_active",
                "start_date",
            ],
        ),
        "mesocycle_exercises": (
            """CREATE TABLE mesocycle_exercises (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    mesocycle_id INTEGER NOT NULL,
                    week_number INTEGER NOT NULL,
                    day_index INTEGER NOT NULL,
                    position INTEGER NOT NULL,
                    exercise_name TEXT NOT NULL,
                    sets INTEGER NOT NULL,
                    rep_min INTEGER NOT NULL,
                    rep_max INTEGER NOT NULL,
                    target_rir INTEGER NOT NULL,
                    recommended_weight REAL NOT NULL,
                    rest_seconds INTEGER NOT NULL,
                    FOREIGN KEY(mesocycle_id) REFERENCES mesocycles(id) ON DELETE CASCADE
                );""",
            [
                "id",
                "mesocycle_id",
                "week_number",
                "day_index",
                "position",
                "exercise_name",
                "sets",
                "rep_min",
                "rep_max",
                "target_rir",
                "recommended_weight",
                "rest_seconds",
            ],
        ),
        "weekly_fatigue_logs": (
            """CREATE TABLE weekly_fatigue_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    mesocycle_id INTEGER NOT NULL,
                    week_number INTEGER NOT NULL,
                    perceived_fatigue INTEGER,
                    sleep_quality INTEGER,
                    motivation_level INTEGER,
                    missed_reps INTEGER NOT NULL DEFAULT 0,
                    strength_decline INTEGER NOT NULL DEFAULT 0,
                    joint_pain INTEGER NOT NULL DEFAULT 0,
                    notes TEXT,
                    logged_at TEXT NOT NULL,
                    UNIQUE (mesocycle_id, week_number),
                    FOREIGN KEY(mesocycle_id) REFERENCES mesocycles(id) ON DELETE CASCADE
                );""",
            [
                "id",
                "mesocycle_id",
                "week_number",
                "perceived_fatigue",
                "sleep_quality",
                "motivation_level",
                "missed_reps",
                "strength_decline",
                "joint_pain",
                "notes",
                "logged_at",
            ],
        ),
        "exercise_catalog": (
            """CREATE TABLE exercise_catalog (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL UNIQUE,
                    primary_muscle TEXT NOT NULL,
                    secondary_muscles TEXT,
                    pattern TEXT NOT NULL,
                    equipment TEXT NOT NULL,
                    difficulty TEXT NOT NULL DEFAULT 'beginner',
                    fatigue_rating INTEGER NOT NULL DEFAULT 1,
                    is_custom INTEGER NOT NULL DEFAULT 0
                );""",
            [
                "id",
                "name",
                "primary_muscle",
                "secondary_muscles",
                "pattern",
                "equipment",
                "difficulty",
                "fatigue_rating",
                "is_custom",
            ],
        ),
        "settings": (
            """CREATE TABLE settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );""",
            ["key", "value"],
        ),
    }

    def __init__(self, db_path: str = "program.db") -> None:
        db_url = os.environ.get("DB_URL", "")
        if db_url.startswith("sqlite:///"):
            db_path = db_url[len("sqlite:///"):]
        self._db_path = db_path
        self._ensure_schema()
        self._import_exercise_catalog_data()
        self._init_settings()

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
            conn.execute("PRAGMA foreign_keys=off;")
            for table, (sql, columns) in self._TABLE_DEFINITIONS.items():
                self._ensure_table(conn, table, sql, columns)
            conn.execute("PRAGMA foreign_keys=on;")

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

        conn.execute(f"ALTER TABLE {table} RENAME TO {table}_old;")
        conn.execute(sql)

        common = [c for c in existing_cols if c in columns]
        if common:
            cols = ", ".join(common)
            missing = [c for c in columns if c not in existing_cols]
            if missing:
                def default_val(col: str) -> str:
                    if col in ("missed_reps", "strength_decline", "joint_pain", "resolved", "is_custom"):
                        return "0"
                    if col == "current_week":
                        return "1"
                    if col == "state":
                        return "'active'"
                    if col == "created_at":
                        return "''"
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
        logger.info("[DB] Migrated table", table=table)

    def _import_exercise_catalog_data(self) -> None:
        with self._connection() as conn:
            for ex in EXERCISE_CATALOG:
                conn.execute(
                    "INSERT INTO exercise_catalog (name, primary_muscle, secondary_muscles, pattern, equipment, difficulty, fatigue_rating, is_custom) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, 0) "
                    "ON CONFLICT(name) DO UPDATE SET primary_muscle=excluded.primary_muscle, secondary_muscles=excluded.secondary_muscles, "
                    "pattern=excluded.pattern, equipment=excluded.equipment, difficulty=excluded.difficulty, fatigue_rating=excluded.fatigue_rating;",
                    (
                        ex.name,
                        ex.primary_muscle,
                        "|".join(ex.secondary_muscles),
                        ex.pattern,
                        ex.equipment,
                        ex.difficulty,
                        ex.fatigue_rating,
                    ),
                )

    def _init_settings(self) -> None:
        with self._connection() as conn:
            for key, value in SettingsFile.engine_defaults().items():
                conn.execute(
                    "INSERT OR IGNORE INTO settings (key, value) VALUES (?, ?);",
                    (key, str(value)),
                )

    def vacuum(self) -> None:
        """Run SQLite VACUUM to reduce database size."""
        with self._connection() as conn:
            conn.execute("VACUUM;")


class BaseRepository(Database):
    """Base repository providing helper methods."""

    def execute(self, query: str, params: Tuple = ()) -> int:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.lastrowid

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


# Shared queries and row mappers for the sync and async repositories.

_PROFILE_SQL = (
    "SELECT birth_date, sex, experience, goal, sleep_quality, stress_level, "
    "training_age_years, available_equipment FROM users WHERE id = ?;"
)
_ACTIVE_INJURIES_SQL = (
    "SELECT DISTINCT muscle FROM injuries WHERE user_id = ? AND resolved = 0 ORDER BY muscle;"
)
_LATEST_SCAN_SQL = (
    "SELECT s.weight_kg, s.body_fat_percent, u.height_cm "
    "FROM body_composition_scans s LEFT JOIN users u ON u.id = s.user_id "
    "WHERE s.user_id = ? ORDER BY s.scan_date DESC, s.id DESC LIMIT 1;"
)
_CALIBRATIONS_SQL = (
    "SELECT exercise_name, tested_weight_kg, tested_reps, tested_rpe, estimated_1rm_kg, "
    "confidence, source, percentile_general, percentile_trained, strength_level, tested_at "
    "FROM strength_calibrations WHERE user_id = ? ORDER BY tested_at DESC, id DESC;"
)
_HISTORY_SQL = (
    "SELECT exercise_name, performed_at, sets, estimated_1rm_kg, workout_session_id "
    "FROM exercise_history WHERE user_id = ? AND performed_at >= ? "
    "ORDER BY performed_at DESC, id DESC;"
)
_CATALOG_SQL = (
    "SELECT name, primary_muscle, secondary_muscles, pattern, equipment, difficulty, fatigue_rating "
    "FROM exercise_catalog"
)


def _split(value: Optional[str]) -> tuple[str, ...]:
    return tuple(v for v in (value or "").split("|") if v)


def _profile_from_row(row: Tuple, today: datetime.date | None = None) -> UserTrainingProfile:
    birth_date, sex, experience, goal, sleep, stress, training_age, equipment = row
    return UserTrainingProfile(
        age=MathTools.calculate_age(birth_date, today),
        sex=sex if sex in VALID_SEX else "male",
        experience=experience if experience in VALID_EXPERIENCE else "novice",
        goal=goal if goal in VALID_GOALS else "bulk",
        sleep_quality=int(MathTools.clamp(sleep or 3, 1, 5)),
        stress_level=int(MathTools.clamp(stress or 3, 1, 5)),
        training_age_years=max(0.0, float(training_age or 0)),
        available_equipment=_split(equipment) or UserTrainingProfile().available_equipment,
    )


def _body_from_row(row: Tuple) -> BodyComposition:
    weight, body_fat, height = row
    return BodyComposition.from_measurements(weight, body_fat, height or DEFAULT_HEIGHT_CM)


def _calibration_from_row(row: Tuple) -> StrengthCalibrationRecord:
    (
        name,
        weight,
        reps,
        rpe,
        e1rm,
        confidence,
        source,
        pct_general,
        pct_trained,
        level,
        tested_at,
    ) = row
    return StrengthCalibrationRecord(
        exercise_name=name,
        tested_weight_kg=weight,
        tested_reps=reps,
        tested_rpe=rpe,
        estimated_1rm_kg=e1rm,
        confidence=confidence,
        source=source,
        percentile_general=pct_general,
        percentile_trained=pct_trained,
        strength_level=level,
        tested_at=tested_at,
    )


def _history_from_row(row: Tuple) -> ExerciseHistoryRecord:
    name, performed_at, sets_json, e1rm, session_id = row
    return ExerciseHistoryRecord(
        exercise_name=name,
        performed_at=performed_at,
        sets=tuple(HistorySet(**s) for s in json.loads(sets_json)),
        estimated_1rm_kg=e1rm,
        workout_session_id=session_id,
    )


def _definition_from_row(row: Tuple) -> ExerciseDefinition:
    name, muscle, secondary, pattern, equipment, difficulty, fatigue = row
    return ExerciseDefinition(
        name=name,
        primary_muscle=muscle,
        secondary_muscles=_split(secondary),
        pattern=pattern,
        equipment=equipment,
        difficulty=difficulty,
        fatigue_rating=fatigue,
    )


def _fatigue_log_from_row(row: Tuple) -> WeeklyFatigueLog:
    (
        mesocycle_id,
        week_number,
        fatigue,
        sleep,
        motivation,
        missed,
        decline,
        joint_pain,
        notes,
    ) = row
    return WeeklyFatigueLog(
        mesocycle_id=mesocycle_id,
        week_number=week_number,
        perceived_fatigue=fatigue,
        sleep_quality=sleep,
        motivation_level=motivation,
        missed_reps=missed or 0,
        strength_decline=bool(decline),
        joint_pain=bool(joint_pain),
        notes=notes,
    )


def _validate_user_fields(fields: dict) -> dict:
    cleaned = dict(fields)
    if "sex" in cleaned and cleaned["sex"] not in VALID_SEX:
        raise ValueError(f"invalid sex: {cleaned['sex']}")
    if "experience" in cleaned and cleaned["experience"] not in VALID_EXPERIENCE:
        raise ValueError(f"invalid experience: {cleaned['experience']}")
    if "goal" in cleaned and cleaned["goal"] not in VALID_GOALS:
        raise ValueError(f"invalid goal: {cleaned['goal']}")
    for key in ("sleep_quality", "stress_level"):
        if key in cleaned and not 1 <= int(cleaned[key]) <= 5:
            raise ValueError(f"{key} must be between 1 and 5")
    if "training_age_years" in cleaned and float(cleaned["training_age_years"]) < 0:
        raise ValueError("training_age_years must be non-negative")
    if "birth_date" in cleaned and cleaned["birth_date"]:
        datetime.date.fromisoformat(cleaned["birth_date"])
    if "available_equipment" in cleaned:
        equipment = cleaned["available_equipment"]
        if isinstance(equipment, str):
            equipment = [e.strip() for e in equipment.split(",") if e.strip()]
        unknown = [e for e in equipment if e not in VALID_EQUIPMENT]
        if unknown:
            raise ValueError(f"unknown equipment: {', '.join(unknown)}")
        cleaned["available_equipment"] = "|".join(equipment)
    for key in ("height_cm", "weight_kg"):
        if key in cleaned and cleaned[key] is not None and float(cleaned[key]) <= 0:
            raise ValueError(f"{key} must be positive")
    return cleaned


class UserRepository(BaseRepository):
    """Repository for users and their training profile fields."""

    _FIELDS = (
        "name",
        "birth_date",
        "sex",
        "experience",
        "goal",
        "sleep_quality",
        "stress_level",
        "training_age_years",
        "available_equipment",
        "height_cm",
        "weight_kg",
    )

    def create(self, name: str | None = None, **fields) -> int:
        unknown = set(fields) - set(self._FIELDS)
        if unknown:
            raise ValueError(f"unknown fields: {', '.join(sorted(unknown))}")
        values = {
            "sex": "male",
            "experience": "novice",
            "goal": "bulk",
            "sleep_quality": 3,
            "stress_level": 3,
            "training_age_years": 0.0,
            "available_equipment": list(UserTrainingProfile().available_equipment),
        }
        values.update({k: v for k, v in fields.items() if v is not None})
        values = _validate_user_fields(values)
        values["name"] = name
        cols = list(values)
        return self.execute(
            f"INSERT INTO users ({', '.join(cols)}, created_at) VALUES ({', '.join('?' for _ in cols)}, ?);",
            tuple(values[c] for c in cols) + (datetime.datetime.now().isoformat(),),
        )

    def update(self, user_id: int, **fields) -> None:
        self.fetch_detail(user_id)
        updates = {k: v for k, v in fields.items() if v is not None}
        unknown = set(updates) - set(self._FIELDS)
        if unknown:
            raise ValueError(f"unknown fields: {', '.join(sorted(unknown))}")
        if not updates:
            return
        updates = _validate_user_fields(updates)
        assignments = ", ".join(f"{k} = ?" for k in updates)
        self.execute(
            f"UPDATE users SET {assignments} WHERE id = ?;",
            tuple(updates.values()) + (user_id,),
        )

    def fetch_detail(self, user_id: int) -> dict:
        rows = self.fetch_all(
            f"SELECT id, {', '.join(self._FIELDS)} FROM users WHERE id = ?;",
            (user_id,),
        )
        if not rows:
            raise ValueError("user not found")
        detail = dict(zip(("id",) + self._FIELDS, rows[0]))
        detail["available_equipment"] = list(_split(detail["available_equipment"]))
        return detail

    def fetch_profile(
        self, user_id: int, today: datetime.date | None = None
    ) -> UserTrainingProfile | None:
        rows = self.fetch_all(_PROFILE_SQL, (user_id,))
        return _profile_from_row(rows[0], today) if rows else None


class InjuryRepository(BaseRepository):
    """Repository for reported injuries that exclude muscles from programming."""

    def add(self, user_id: int, muscle: str, note: str | None = None) -> int:
        if muscle not in MUSCLE_GROUPS:
            raise ValueError(f"unknown muscle: {muscle}")
        return self.execute(
            "INSERT INTO injuries (user_id, muscle, note, reported_at, resolved) VALUES (?, ?, ?, ?, 0);",
            (user_id, muscle, note, datetime.datetime.now().isoformat()),
        )

    def resolve(self, injury_id: int) -> None:
        rows = self.fetch_all("SELECT id FROM injuries WHERE id = ?;", (injury_id,))
        if not rows:
            raise ValueError("injury not found")
        self.execute("UPDATE injuries SET resolved = 1 WHERE id = ?;", (injury_id,))

    def fetch_active(self, user_id: int) -> list[str]:
        return [r[0] for r in self.fetch_all(_ACTIVE_INJURIES_SQL, (user_id,))]

    def fetch_all_for_user(self, user_id: int) -> list[dict]:
        rows = self.fetch_all(
            "SELECT id, muscle, note, reported_at, resolved FROM injuries WHERE user_id = ? ORDER BY id;",
            (user_id,),
        )
        return [
            {"id": r[0], "muscle": r[1], "note": r[2], "reported_at": r[3], "resolved": bool(r[4])}
            for r in rows
        ]


class BodyCompositionRepository(BaseRepository):
    """Repository for body composition scans."""

    def log_scan(
        self,
        user_id: int,
        weight_kg: float,
        body_fat_percent: float,
        scan_date: str | None = None,
    ) -> int:
        if weight_kg <= 0:
            raise ValueError("weight must be positive")
        if not 0 <= body_fat_percent < 100:
            raise ValueError("body fat must be between 0 and 100")
        scan_date = scan_date or datetime.date.today().isoformat()
        datetime.date.fromisoformat(scan_date[:10])
        return self.execute(
            "INSERT INTO body_composition_scans (user_id, scan_date, weight_kg, body_fat_percent) VALUES (?, ?, ?, ?);",
            (user_id, scan_date, weight_kg, body_fat_percent),
        )

    def fetch_latest(self, user_id: int) -> BodyComposition | None:
        rows = self.fetch_all(_LATEST_SCAN_SQL, (user_id,))
        return _body_from_row(rows[0]) if rows else None

    def fetch_history(self, user_id: int) -> list[tuple[int, str, float, float]]:
        return self.fetch_all(
            "SELECT id, scan_date, weight_kg, body_fat_percent FROM body_composition_scans "
            "WHERE user_id = ? ORDER BY scan_date DESC, id DESC;",
            (user_id,),
        )


class StrengthCalibrationRepository(BaseRepository):
    """Repository for strength tests. New tests supersede, never overwrite."""

    def add(self, user_id: int, record: StrengthCalibrationRecord) -> int:
        return self.execute(
            "INSERT INTO strength_calibrations (user_id, exercise_name, tested_weight_kg, tested_reps, tested_rpe, "
            "estimated_1rm_kg, confidence, source, percentile_general, percentile_trained, strength_level, tested_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);",
            (
                user_id,
                record.exercise_name,
                record.tested_weight_kg,
                record.tested_reps,
                record.tested_rpe,
                record.estimated_1rm_kg,
                record.confidence,
                record.source,
                record.percentile_general,
                record.percentile_trained,
                record.strength_level,
                record.tested_at or datetime.datetime.now().isoformat(),
            ),
        )

    def fetch_for_user(self, user_id: int) -> list[StrengthCalibrationRecord]:
        return [_calibration_from_row(r) for r in self.fetch_all(_CALIBRATIONS_SQL, (user_id,))]

    def best_estimate(self, user_id: int, exercise_name: str) -> float | None:
        rows = self.fetch_all(
            "SELECT MAX(estimated_1rm_kg) FROM strength_calibrations WHERE user_id = ? AND exercise_name = ?;",
            (user_id, exercise_name),
        )
        return rows[0][0] if rows else None

    def upsert_if_improved(
        self, user_id: int, record: StrengthCalibrationRecord, threshold: float = 0.02
    ) -> bool:
        """Store ``record`` only when it beats the best estimate by more than ``threshold``."""
        best = self.best_estimate(user_id, record.exercise_name)
        if best is not None and record.estimated_1rm_kg <= best * (1 + threshold):
            return False
        self.add(user_id, record)
        return True

    def count_exercises(self, user_id: int) -> int:
        rows = self.fetch_all(
            "SELECT COUNT(DISTINCT exercise_name) FROM strength_calibrations WHERE user_id = ?;",
            (user_id,),
        )
        return int(rows[0][0])


class ExerciseHistoryRepository(BaseRepository):
    """Append-only log of performed exercises."""

    def append(self, user_id: int, record: ExerciseHistoryRecord) -> int:
        return self.execute(
            "INSERT INTO exercise_history (user_id, workout_session_id, exercise_name, performed_at, sets, estimated_1rm_kg) "
            "VALUES (?, ?, ?, ?, ?, ?);",
            (
                user_id,
                record.workout_session_id,
                record.exercise_name,
                record.performed_at,
                json.dumps([s.model_dump() for s in record.sets]),
                record.estimated_1rm_kg,
            ),
        )

    def fetch_since(self, user_id: int, since: str) -> list[ExerciseHistoryRecord]:
        return [_history_from_row(r) for r in self.fetch_all(_HISTORY_SQL, (user_id, since))]


class WeeklyFatigueLogRepository(BaseRepository):
    """One fatigue check-in per mesocycle week."""

    def log(self, entry: WeeklyFatigueLog) -> int:
        try:
            return self.execute(
                "INSERT INTO weekly_fatigue_logs (mesocycle_id, week_number, perceived_fatigue, sleep_quality, "
                "motivation_level, missed_reps, strength_decline, joint_pain, notes, logged_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?);",
                (
                    entry.mesocycle_id,
                    entry.week_number,
                    entry.perceived_fatigue,
                    entry.sleep_quality,
                    entry.motivation_level,
                    entry.missed_reps,
                    int(entry.strength_decline),
                    int(entry.joint_pain),
                    entry.notes,
                    datetime.datetime.now().isoformat(),
                ),
            )
        except sqlite3.IntegrityError as e:
            raise ValueError(f"week {entry.week_number} already logged") from e

    def fetch_recent(self, mesocycle_id: int, limit: int = 3) -> list[WeeklyFatigueLog]:
        rows = self.fetch_all(
            "SELECT mesocycle_id, week_number, perceived_fatigue, sleep_quality, motivation_level, "
            "missed_reps, strength_decline, joint_pain, notes FROM weekly_fatigue_logs "
            "WHERE mesocycle_id = ? ORDER BY week_number DESC LIMIT ?;",
            (mesocycle_id, limit),
        )
        return [_fatigue_log_from_row(r) for r in rows]


class MesocycleRepository(BaseRepository):
    """Repository for generated mesocycles and their exercise blocks."""

    _DETAIL_FIELDS = (
        "id",
        "user_id",
        "name",
        "state",
        "total_weeks",
        "current_week",
        "days_per_week",
        "split_type",
        "deload_week",
        "periodization_model",
        "recovery_multiplier",
        "is_active",
        "start_date",
    )

    def save(
        self,
        user_id: int,
        program: FullProgramRecommendation,
        name: str | None = None,
        start_date: str | None = None,
    ) -> int:
        """Persist the mesocycle and every exercise block in one transaction."""
        start_date = start_date or datetime.date.today().isoformat()
        name = name or f"{program.split} - {start_date}"
        plan = program.periodization
        blocks = [
            (
                week.week_number,
                session.day_index,
                position,
                ex.exercise.name,
                ex.sets,
                ex.reps.min,
                ex.reps.max,
                ex.reps.target_rir,
                ex.weight_recommendation.recommended_weight,
                ex.rest_seconds,
            )
            for week in program.mesocycle_weeks
            for session in week.sessions
            for position, ex in enumerate(session.exercises, start=1)
        ]
        try:
            with self._connection() as conn:
                conn.execute(
                    "UPDATE mesocycles SET is_active = 0, state = 'superseded' WHERE user_id = ? AND is_active = 1;",
                    (user_id,),
                )
                cur = conn.execute(
                    "INSERT INTO mesocycles (user_id, name, state, total_weeks, current_week, days_per_week, split_type, "
                    "deload_week, periodization_model, program_data, fatigue_budget_config, volume_per_muscle, "
                    "recovery_multiplier, is_active, start_date) VALUES (?, ?, 'active', ?, 1, ?, ?, ?, ?, ?, ?, ?, ?, 1, ?);",
                    (
                        user_id,
                        name,
                        plan.mesocycle_weeks,
                        program.days_per_week,
                        program.split,
                        plan.deload_frequency + 1,
                        plan.model,
                        program.model_dump_json(),
                        program.fatigue_budget.model_dump_json(),
                        json.dumps({m: v.model_dump() for m, v in program.volume_per_muscle.items()}),
                        program.recovery_profile.volume_multiplier,
                        start_date,
                    ),
                )
                mesocycle_id = cur.lastrowid
                conn.executemany(
                    "INSERT INTO mesocycle_exercises (mesocycle_id, week_number, day_index, position, exercise_name, "
                    "sets, rep_min, rep_max, target_rir, recommended_weight, rest_seconds) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);",
                    [(mesocycle_id,) + b for b in blocks],
                )
        except sqlite3.Error as e:
            logger.error("[DB] Mesocycle write failed", user_id=user_id, error=str(e))
            raise PersistenceError("failed to create mesocycle") from e
        logger.info(
            "[DB] Mesocycle saved", user_id=user_id, mesocycle_id=mesocycle_id, blocks=len(blocks)
        )
        return mesocycle_id

    def fetch_detail(self, mesocycle_id: int) -> dict:
        rows = self.fetch_all(
            f"SELECT {', '.join(self._DETAIL_FIELDS)} FROM mesocycles WHERE id = ?;",
            (mesocycle_id,),
        )
        if not rows:
            raise ValueError("mesocycle not found")
        detail = dict(zip(self._DETAIL_FIELDS, rows[0]))
        detail["is_active"] = bool(detail["is_active"])
        return detail

    def fetch_program(self, mesocycle_id: int) -> FullProgramRecommendation:
        rows = self.fetch_all(
            "SELECT program_data FROM mesocycles WHERE id = ?;", (mesocycle_id,)
        )
        if not rows:
            raise ValueError("mesocycle not found")
        return FullProgramRecommendation.model_validate_json(rows[0][0])

    def fetch_exercises(self, mesocycle_id: int, week_number: int | None = None) -> list[dict]:
        query = (
            "SELECT week_number, day_index, position, exercise_name, sets, rep_min, rep_max, "
            "target_rir, recommended_weight, rest_seconds FROM mesocycle_exercises WHERE mesocycle_id = ?"
        )
        params: tuple = (mesocycle_id,)
        if week_number is not None:
            query += " AND week_number = ?"
            params += (week_number,)
        query += " ORDER BY week_number, day_index, position;"
        keys = (
            "week_number",
            "day_index",
            "position",
            "exercise_name",
            "sets",
            "rep_min",
            "rep_max",
            "target_rir",
            "recommended_weight",
            "rest_seconds",
        )
        return [dict(zip(keys, r)) for r in self.fetch_all(query, params)]

    def fetch_active_for_user(self, user_id: int) -> int | None:
        rows = self.fetch_all(
            "SELECT id FROM mesocycles WHERE user_id = ? AND is_active = 1 ORDER BY id DESC LIMIT 1;",
            (user_id,),
        )
        return rows[0][0] if rows else None

    def advance_week(self, mesocycle_id: int) -> int:
        detail = self.fetch_detail(mesocycle_id)
        if detail["state"] != "active":
            raise ValueError("mesocycle is not active")
        if detail["current_week"] >= detail["total_weeks"]:
            self.execute(
                "UPDATE mesocycles SET state = 'completed', is_active = 0 WHERE id = ?;",
                (mesocycle_id,),
            )
            return detail["current_week"]
        new_week = detail["current_week"] + 1
        self.execute(
            "UPDATE mesocycles SET current_week = ? WHERE id = ?;", (new_week, mesocycle_id)
        )
        return new_week


class ExerciseCatalogRepository(BaseRepository):
    """Read access to the exercise catalog plus custom additions."""

    def fetch_all_definitions(self) -> list[ExerciseDefinition]:
        return [_definition_from_row(r) for r in self.fetch_all(_CATALOG_SQL + " ORDER BY id;")]

    def exercises_for_muscle(
        self,
        muscle: str,
        equipment: Optional[Iterable[str]] = None,
        difficulty: Optional[str] = None,
    ) -> list[ExerciseDefinition]:
        query = _CATALOG_SQL + " WHERE primary_muscle = ?"
        params: list = [muscle]
        if equipment is not None:
            equipment = list(equipment)
            if not equipment:
                return []
            query += f" AND equipment IN ({', '.join('?' for _ in equipment)})"
            params.extend(equipment)
        if difficulty is not None:
            query += " AND difficulty = ?"
            params.append(difficulty)
        query += " ORDER BY id;"
        return [_definition_from_row(r) for r in self.fetch_all(query, tuple(params))]

    def add_custom(self, definition: ExerciseDefinition) -> int:
        if definition.primary_muscle not in MUSCLE_GROUPS:
            raise ValueError(f"unknown muscle: {definition.primary_muscle}")
        try:
            return self.execute(
                "INSERT INTO exercise_catalog (name, primary_muscle, secondary_muscles, pattern, equipment, difficulty, fatigue_rating, is_custom) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, 1);",
                (
                    definition.name,
                    definition.primary_muscle,
                    "|".join(definition.secondary_muscles),
                    definition.pattern,
                    definition.equipment,
                    definition.difficulty,
                    definition.fatigue_rating,
                ),
            )
        except sqlite3.IntegrityError as e:
            raise ValueError(f"exercise already exists: {definition.name}") from e


class SettingsRepository(BaseRepository):
    """Repository for engine settings synchronized with YAML."""

    def __init__(
        self, db_path: str = "program.db", yaml_path: str | None = None
    ) -> None:
        super().__init__(db_path)
        self._yaml = SettingsFile(yaml_path)
        self._sync_from_yaml()
        self._sync_to_yaml()

    def _raw_all_settings(self) -> dict:
        rows = self.fetch_all("SELECT key, value FROM settings ORDER BY key;")
        result: dict[str, int | float | str] = {}
        for k, v in rows:
            try:
                result[k] = int(v)
            except ValueError:
                try:
                    result[k] = float(v)
                except ValueError:
                    result[k] = v
        return result

    def _sync_from_yaml(self) -> None:
        data = self._yaml.load()
        if not data:
            return
        validate_settings(data)
        with self._connection() as conn:
            for key, value in data.items():
                conn.execute(
                    "INSERT INTO settings (key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
                    (key, str(value)),
                )

    def _sync_to_yaml(self) -> None:
        self._yaml.save(self._raw_all_settings())

    def all_settings(self) -> dict:
        self._sync_from_yaml()
        return self._raw_all_settings()

    def get_float(self, key: str, default: float) -> float:
        self._sync_from_yaml()
        rows = self.fetch_all("SELECT value FROM settings WHERE key = ?;", (key,))
        return float(rows[0][0]) if rows else default

    def set_float(self, key: str, value: float) -> None:
        self.set_text(key, str(value))

    def get_text(self, key: str, default: str) -> str:
        self._sync_from_yaml()
        rows = self.fetch_all("SELECT value FROM settings WHERE key = ?;", (key,))
        return rows[0][0] if rows else default

    def set_text(self, key: str, value: str) -> None:
        validate_settings({**self._raw_all_settings(), key: value})
        self.execute(
            "INSERT INTO settings (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
            (key, value),
        )
        self._sync_to_yaml()

    def get_int(self, key: str, default: int) -> int:
        try:
            return int(float(self.get_text(key, str(default))))
        except ValueError:
            return default

    def set_int(self, key: str, value: int) -> None:
        self.set_text(key, str(int(value)))


class AsyncUserRepository(AsyncBaseRepository):
    """Async profile reads for the snapshot loader."""

    async def fetch_profile(
        self, user_id: int, today: datetime.date | None = None
    ) -> UserTrainingProfile | None:
        rows = await self.fetch_all(_PROFILE_SQL, (user_id,))
        return _profile_from_row(rows[0], today) if rows else None


class AsyncInjuryRepository(AsyncBaseRepository):
    async def fetch_active(self, user_id: int) -> list[str]:
        return [r[0] for r in await self.fetch_all(_ACTIVE_INJURIES_SQL, (user_id,))]


class AsyncBodyCompositionRepository(AsyncBaseRepository):
    async def fetch_latest(self, user_id: int) -> BodyComposition | None:
        rows = await self.fetch_all(_LATEST_SCAN_SQL, (user_id,))
        return _body_from_row(rows[0]) if rows else None


class AsyncStrengthCalibrationRepository(AsyncBaseRepository):
    async def fetch_for_user(self, user_id: int) -> list[StrengthCalibrationRecord]:
        rows = await self.fetch_all(_CALIBRATIONS_SQL, (user_id,))
        return [_calibration_from_row(r) for r in rows]


class AsyncExerciseHistoryRepository(AsyncBaseRepository):
    async def fetch_since(self, user_id: int, since: str) -> list[ExerciseHistoryRecord]:
        rows = await self.fetch_all(_HISTORY_SQL, (user_id, since))
        return [_history_from_row(r) for r in rows]


class AsyncExerciseCatalogRepository(AsyncBaseRepository):
    async def fetch_all_definitions(self) -> list[ExerciseDefinition]:
        rows = await self.fetch_all(_CATALOG_SQL + " ORDER BY id;")
        return [_definition_from_row(r) for r in rows]
