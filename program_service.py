from __future__ import annotations

import asyncio
import datetime
from typing import Iterable

from loguru import logger

from algorithms import DeloadDetector, MathTools, WeightRecommendationResolver, generate_program
from algorithms.constants import EXERCISE_CATALOG
from algorithms.models import (
    DeloadTriggers,
    DetailedSession,
    ExerciseHistoryRecord,
    FullProgramRecommendation,
    HistorySet,
    ProgramConfig,
    RepTarget,
    StrengthCalibrationRecord,
    TrainingSnapshot,
    UserTrainingProfile,
    WeeklyFatigueLog,
    WorkingWeightRecommendation,
)
from algorithms.session_builder import session_for_day
from db import (
    AsyncBodyCompositionRepository,
    AsyncExerciseCatalogRepository,
    AsyncExerciseHistoryRepository,
    AsyncInjuryRepository,
    AsyncStrengthCalibrationRepository,
    AsyncUserRepository,
    BodyCompositionRepository,
    ExerciseHistoryRepository,
    MesocycleRepository,
    SettingsRepository,
    StrengthCalibrationRepository,
    UserRepository,
    WeeklyFatigueLogRepository,
)


class ProgramService:
    """Loads training data, runs the program engine and persists its results."""

    ONBOARDING_MIN_CALIBRATIONS = 3

    def __init__(
        self,
        db_path: str = "program.db",
        yaml_path: str | None = None,
        settings_repo: SettingsRepository | None = None,
    ) -> None:
        self.users = UserRepository(db_path)
        self.body = BodyCompositionRepository(db_path)
        self.calibrations = StrengthCalibrationRepository(db_path)
        self.history = ExerciseHistoryRepository(db_path)
        self.mesocycles = MesocycleRepository(db_path)
        self.fatigue_logs = WeeklyFatigueLogRepository(db_path)
        self.settings = settings_repo or SettingsRepository(db_path, yaml_path)
        self.async_users = AsyncUserRepository(db_path)
        self.async_injuries = AsyncInjuryRepository(db_path)
        self.async_body = AsyncBodyCompositionRepository(db_path)
        self.async_calibrations = AsyncStrengthCalibrationRepository(db_path)
        self.async_history = AsyncExerciseHistoryRepository(db_path)
        self.async_catalog = AsyncExerciseCatalogRepository(db_path)

    async def load_snapshot(
        self, user_id: int, today: datetime.date | None = None
    ) -> TrainingSnapshot:
        """Read everything the engine needs for ``user_id`` concurrently.

        A failing read falls back to its default value so one broken table
        never blocks program generation. An unknown user is an error.
        """
        today = today or datetime.date.today()
        window = self.settings.get_int("history_window_days", 28)
        since = (today - datetime.timedelta(days=window)).isoformat()
        names = ("profile", "body_composition", "calibrations", "history", "injuries", "catalog")
        results = await asyncio.gather(
            self.async_users.fetch_profile(user_id, today),
            self.async_body.fetch_latest(user_id),
            self.async_calibrations.fetch_for_user(user_id),
            self.async_history.fetch_since(user_id, since),
            self.async_injuries.fetch_active(user_id),
            self.async_catalog.fetch_all_definitions(),
            return_exceptions=True,
        )
        defaults = {
            "profile": UserTrainingProfile(),
            "body_composition": None,
            "calibrations": [],
            "history": [],
            "injuries": [],
            "catalog": list(EXERCISE_CATALOG),
        }
        loaded: dict = {}
        for name, result in zip(names, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, Exception):
                logger.warning(
                    "[SERVICE] Snapshot read degraded", user_id=user_id, read=name, error=str(result)
                )
                loaded[name] = defaults[name]
            else:
                loaded[name] = result

        if loaded["profile"] is None:
            raise ValueError("user not found")
        profile = loaded["profile"].model_copy(
            update={"injured_muscles": tuple(loaded["injuries"])}
        )
        return TrainingSnapshot.from_records(
            profile=profile,
            body_composition=loaded["body_composition"],
            calibrations=loaded["calibrations"],
            history=loaded["history"],
            catalog=loaded["catalog"] or EXERCISE_CATALOG,
        )

    def program_config(
        self,
        days_per_week: int | None = None,
        session_minutes: int | None = None,
        name: str | None = None,
    ) -> ProgramConfig:
        return ProgramConfig(
            days_per_week=days_per_week or self.settings.get_int("default_days_per_week", 4),
            session_minutes=session_minutes
            or self.settings.get_int("default_session_minutes", 60),
            name=name,
        )

    async def preview_program(
        self,
        user_id: int,
        days_per_week: int | None = None,
        session_minutes: int | None = None,
        today: datetime.date | None = None,
    ) -> FullProgramRecommendation:
        snapshot = await self.load_snapshot(user_id, today)
        return generate_program(snapshot, self.program_config(days_per_week, session_minutes))

    async def generate_mesocycle(
        self,
        user_id: int,
        days_per_week: int | None = None,
        session_minutes: int | None = None,
        name: str | None = None,
        start_date: str | None = None,
    ) -> tuple[int, FullProgramRecommendation]:
        """Generate a program for ``user_id`` and store it as the active mesocycle."""
        config = self.program_config(days_per_week, session_minutes, name)
        snapshot = await self.load_snapshot(user_id)
        program = generate_program(snapshot, config)
        mesocycle_id = self.mesocycles.save(user_id, program, config.name, start_date)
        logger.info(
            "[SERVICE] Mesocycle generated",
            user_id=user_id,
            mesocycle_id=mesocycle_id,
            split=program.split,
            weeks=program.periodization.mesocycle_weeks,
        )
        return mesocycle_id, program

    def active_mesocycle(self, user_id: int) -> int:
        self.users.fetch_detail(user_id)
        mesocycle_id = self.mesocycles.fetch_active_for_user(user_id)
        if mesocycle_id is None:
            raise ValueError("no active mesocycle")
        return mesocycle_id

    def todays_workout(
        self, user_id: int, today: datetime.date | None = None
    ) -> DetailedSession | None:
        mesocycle_id = self.active_mesocycle(user_id)
        detail = self.mesocycles.fetch_detail(mesocycle_id)
        program = self.mesocycles.fetch_program(mesocycle_id)
        return session_for_day(
            program.mesocycle_weeks,
            detail["days_per_week"],
            detail["current_week"],
            today or datetime.date.today(),
        )

    def advance_week(self, mesocycle_id: int) -> int:
        week = self.mesocycles.advance_week(mesocycle_id)
        logger.info("[SERVICE] Mesocycle advanced", mesocycle_id=mesocycle_id, week=week)
        return week

    def log_fatigue(self, entry: WeeklyFatigueLog) -> int:
        detail = self.mesocycles.fetch_detail(entry.mesocycle_id)
        if not 1 <= entry.week_number <= detail["total_weeks"]:
            raise ValueError("week_number outside mesocycle")
        return self.fatigue_logs.log(entry)

    def check_deload(self, mesocycle_id: int) -> DeloadTriggers:
        detail = self.mesocycles.fetch_detail(mesocycle_id)
        profile = self.users.fetch_profile(detail["user_id"]) or UserTrainingProfile()
        limit = self.settings.get_int("fatigue_log_limit", 3)
        logs = self.fatigue_logs.fetch_recent(mesocycle_id, limit)
        triggers = DeloadDetector.evaluate(logs, profile.experience)
        if triggers.should_deload:
            logger.info(
                "[SERVICE] Deload recommended",
                mesocycle_id=mesocycle_id,
                deload_type=triggers.suggested_deload_type,
                reasons=len(triggers.reasons),
            )
        return triggers

    def record_calibration(
        self,
        user_id: int,
        exercise_name: str,
        weight_kg: float,
        reps: int,
        rpe: float | None = None,
        tested_at: str | None = None,
    ) -> StrengthCalibrationRecord:
        """Store a strength test; earlier tests for the exercise are kept as history."""
        self.users.fetch_detail(user_id)
        if weight_kg <= 0:
            raise ValueError("weight must be positive")
        record = StrengthCalibrationRecord(
            exercise_name=exercise_name,
            tested_weight_kg=weight_kg,
            tested_reps=reps,
            tested_rpe=rpe,
            estimated_1rm_kg=MathTools.estimate_1rm(weight_kg, reps, rpe),
            tested_at=tested_at or datetime.datetime.now().isoformat(),
        )
        self.calibrations.add(user_id, record)
        return record

    def record_exercise_history(
        self,
        user_id: int,
        exercise_name: str,
        sets: Iterable[HistorySet | dict],
        performed_at: str | None = None,
        workout_session_id: str | None = None,
    ) -> tuple[int, bool]:
        """Append performed sets; returns ``(history_id, calibration_updated)``.

        The best completed set also feeds the calibration table when it beats
        the stored best estimate by more than the configured threshold.
        """
        self.users.fetch_detail(user_id)
        parsed = tuple(s if isinstance(s, HistorySet) else HistorySet(**s) for s in sets)
        if not parsed:
            raise ValueError("at least one set is required")
        usable = [s for s in parsed if s.completed and s.reps >= 1 and s.weight_kg > 0]
        best = None
        if usable:
            best = max(usable, key=lambda s: MathTools.estimate_1rm(s.weight_kg, s.reps, s.rpe))
        e1rm = MathTools.estimate_1rm(best.weight_kg, best.reps, best.rpe) if best else None
        performed_at = performed_at or datetime.datetime.now().isoformat()
        history_id = self.history.append(
            user_id,
            ExerciseHistoryRecord(
                exercise_name=exercise_name,
                performed_at=performed_at,
                sets=parsed,
                estimated_1rm_kg=e1rm,
                workout_session_id=workout_session_id,
            ),
        )
        updated = False
        if best is not None:
            threshold = self.settings.get_float("calibration_improvement_threshold", 0.02)
            updated = self.calibrations.upsert_if_improved(
                user_id,
                StrengthCalibrationRecord(
                    exercise_name=exercise_name,
                    tested_weight_kg=best.weight_kg,
                    tested_reps=best.reps,
                    tested_rpe=best.rpe,
                    estimated_1rm_kg=e1rm,
                    confidence="medium",
                    source="workout",
                    tested_at=performed_at,
                ),
                threshold,
            )
            if updated:
                logger.info(
                    "[SERVICE] Calibration improved",
                    user_id=user_id,
                    exercise=exercise_name,
                    estimated_1rm=e1rm,
                )
        return history_id, updated

    def has_completed_onboarding(self, user_id: int) -> bool:
        self.users.fetch_detail(user_id)
        if self.body.fetch_latest(user_id) is None:
            return False
        return self.calibrations.count_exercises(user_id) >= self.ONBOARDING_MIN_CALIBRATIONS

    async def weight_recommendation(
        self, user_id: int, exercise_name: str, rep_min: int, rep_max: int, target_rir: int
    ) -> WorkingWeightRecommendation:
        if rep_min < 1 or rep_max < rep_min:
            raise ValueError("invalid rep range")
        if target_rir < 0:
            raise ValueError("target_rir must be non-negative")
        snapshot = await self.load_snapshot(user_id)
        return WeightRecommendationResolver.recommend(
            snapshot, exercise_name, RepTarget(min=rep_min, max=rep_max), target_rir
        )
