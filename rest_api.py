import datetime
from typing import List, Dict

from fastapi import FastAPI, HTTPException, Body, APIRouter
from loguru import logger

from algorithms.models import ExerciseDefinition, WeeklyFatigueLog
from config import APP_VERSION
from db import (
    ExerciseCatalogRepository,
    InjuryRepository,
    PersistenceError,
)
from program_service import ProgramService


def _not_found_or_bad_request(e: ValueError) -> HTTPException:
    message = str(e)
    status = 404 if "not found" in message or "no active" in message else 400
    return HTTPException(status_code=status, detail=message)


class ProgramAPI:
    """Provides REST endpoints for training program generation."""

    def __init__(self, db_path: str = "program.db", yaml_path: str | None = None) -> None:
        self.db_path = db_path
        self.service = ProgramService(db_path, yaml_path)
        self.settings = self.service.settings
        self.users = self.service.users
        self.injuries = InjuryRepository(db_path)
        self.body = self.service.body
        self.calibrations = self.service.calibrations
        self.mesocycles = self.service.mesocycles
        self.exercise_catalog = ExerciseCatalogRepository(db_path)
        self.app = FastAPI(title="Hypertrophy Engine", version=APP_VERSION)
        self._setup_routes()

    def _setup_routes(self) -> None:
        users_router = APIRouter(prefix="/users")
        mesocycles_router = APIRouter(prefix="/mesocycles")

        @self.app.get("/health")
        def health():
            return {"status": "ok"}

        @users_router.post("")
        def create_user(
            name: str = None,
            birth_date: str = None,
            sex: str = "male",
            experience: str = "novice",
            goal: str = "bulk",
            sleep_quality: int = 3,
            stress_level: int = 3,
            training_age_years: float = 0.0,
            available_equipment: str = None,
            height_cm: float = None,
            weight_kg: float = None,
        ):
            try:
                uid = self.users.create(
                    name,
                    birth_date=birth_date,
                    sex=sex,
                    experience=experience,
                    goal=goal,
                    sleep_quality=sleep_quality,
                    stress_level=stress_level,
                    training_age_years=training_age_years,
                    available_equipment=available_equipment.split("|")
                    if available_equipment
                    else None,
                    height_cm=height_cm,
                    weight_kg=weight_kg,
                )
                return {"id": uid}
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))

        @users_router.get("/{user_id}")
        def get_user(user_id: int):
            try:
                return self.users.fetch_detail(user_id)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))

        @users_router.put("/{user_id}")
        def update_user(
            user_id: int,
            name: str = None,
            birth_date: str = None,
            sex: str = None,
            experience: str = None,
            goal: str = None,
            sleep_quality: int = None,
            stress_level: int = None,
            training_age_years: float = None,
            available_equipment: str = None,
            height_cm: float = None,
            weight_kg: float = None,
        ):
            try:
                self.users.update(
                    user_id,
                    name=name,
                    birth_date=birth_date,
                    sex=sex,
                    experience=experience,
                    goal=goal,
                    sleep_quality=sleep_quality,
                    stress_level=stress_level,
                    training_age_years=training_age_years,
                    available_equipment=available_equipment.split("|")
                    if available_equipment
                    else None,
                    height_cm=height_cm,
                    weight_kg=weight_kg,
                )
                return {"status": "updated"}
            except ValueError as e:
                raise _not_found_or_bad_request(e)

        @users_router.get("/{user_id}/onboarding")
        def onboarding_status(user_id: int):
            try:
                return {"completed": self.service.has_completed_onboarding(user_id)}
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))

        @users_router.post("/{user_id}/injuries")
        def add_injury(user_id: int, muscle: str, note: str = None):
            try:
                self.users.fetch_detail(user_id)
                iid = self.injuries.add(user_id, muscle, note)
                return {"id": iid}
            except ValueError as e:
                raise _not_found_or_bad_request(e)

        @users_router.get("/{user_id}/injuries")
        def list_injuries(user_id: int):
            return self.injuries.fetch_all_for_user(user_id)

        @users_router.post("/{user_id}/body_composition")
        def log_body_composition(
            user_id: int, weight_kg: float, body_fat_percent: float, scan_date: str = None
        ):
            try:
                self.users.fetch_detail(user_id)
                sid = self.body.log_scan(user_id, weight_kg, body_fat_percent, scan_date)
                return {"id": sid}
            except ValueError as e:
                raise _not_found_or_bad_request(e)

        @users_router.get("/{user_id}/body_composition")
        def latest_body_composition(user_id: int):
            latest = self.body.fetch_latest(user_id)
            if latest is None:
                raise HTTPException(status_code=404, detail="no body composition scan")
            return latest.model_dump()

        @users_router.post("/{user_id}/calibrations")
        def add_calibration(
            user_id: int,
            exercise: str,
            weight_kg: float,
            reps: int,
            rpe: float = None,
            tested_at: str = None,
        ):
            try:
                record = self.service.record_calibration(
                    user_id, exercise, weight_kg, reps, rpe, tested_at
                )
                return record.model_dump()
            except ValueError as e:
                raise _not_found_or_bad_request(e)

        @users_router.get("/{user_id}/calibrations")
        def list_calibrations(user_id: int):
            return [c.model_dump() for c in self.calibrations.fetch_for_user(user_id)]

        @users_router.post("/{user_id}/history")
        def add_history(
            user_id: int,
            exercise: str,
            sets: List[Dict] = Body(...),
            performed_at: str = None,
            workout_session_id: str = None,
        ):
            try:
                hid, updated = self.service.record_exercise_history(
                    user_id, exercise, sets, performed_at, workout_session_id
                )
                return {"id": hid, "calibration_updated": updated}
            except ValueError as e:
                raise _not_found_or_bad_request(e)

        @users_router.get("/{user_id}/weight_recommendation")
        async def weight_recommendation(
            user_id: int, exercise: str, rep_min: int = 8, rep_max: int = 12, target_rir: int = 2
        ):
            try:
                rec = await self.service.weight_recommendation(
                    user_id, exercise, rep_min, rep_max, target_rir
                )
                return rec.model_dump()
            except ValueError as e:
                raise _not_found_or_bad_request(e)

        @users_router.post("/{user_id}/program/preview")
        async def preview_program(
            user_id: int, days_per_week: int = None, session_minutes: int = None
        ):
            try:
                program = await self.service.preview_program(
                    user_id, days_per_week, session_minutes
                )
                return program.model_dump()
            except ValueError as e:
                raise _not_found_or_bad_request(e)

        @users_router.post("/{user_id}/mesocycles")
        async def create_mesocycle(
            user_id: int,
            days_per_week: int = None,
            session_minutes: int = None,
            name: str = None,
            start_date: str = None,
        ):
            try:
                mid, program = await self.service.generate_mesocycle(
                    user_id, days_per_week, session_minutes, name, start_date
                )
                return {"id": mid, "program": program.model_dump()}
            except PersistenceError as e:
                logger.error("[API] Mesocycle creation failed", user_id=user_id)
                raise HTTPException(status_code=500, detail=str(e))
            except ValueError as e:
                raise _not_found_or_bad_request(e)

        @users_router.get("/{user_id}/mesocycles/active")
        def active_mesocycle(user_id: int):
            try:
                return self.mesocycles.fetch_detail(self.service.active_mesocycle(user_id))
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))

        @users_router.get("/{user_id}/today")
        def todays_workout(user_id: int, date: str = None):
            try:
                day = datetime.date.fromisoformat(date) if date else None
                session = self.service.todays_workout(user_id, day)
            except ValueError as e:
                raise _not_found_or_bad_request(e)
            if session is None:
                return {"rest_day": True, "session": None}
            return {"rest_day": False, "session": session.model_dump()}

        @self.app.put("/injuries/{injury_id}/resolve")
        def resolve_injury(injury_id: int):
            try:
                self.injuries.resolve(injury_id)
                return {"status": "resolved"}
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))

        @mesocycles_router.get("/{mesocycle_id}")
        def get_mesocycle(mesocycle_id: int):
            try:
                return self.mesocycles.fetch_detail(mesocycle_id)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))

        @mesocycles_router.get("/{mesocycle_id}/program")
        def get_mesocycle_program(mesocycle_id: int):
            try:
                return self.mesocycles.fetch_program(mesocycle_id).model_dump()
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))

        @mesocycles_router.get("/{mesocycle_id}/exercises")
        def get_mesocycle_exercises(mesocycle_id: int, week: int = None):
            try:
                self.mesocycles.fetch_detail(mesocycle_id)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            return self.mesocycles.fetch_exercises(mesocycle_id, week)

        @mesocycles_router.post("/{mesocycle_id}/advance")
        def advance_mesocycle(mesocycle_id: int):
            try:
                week = self.service.advance_week(mesocycle_id)
            except ValueError as e:
                raise _not_found_or_bad_request(e)
            detail = self.mesocycles.fetch_detail(mesocycle_id)
            return {"current_week": week, "state": detail["state"]}

        @mesocycles_router.post("/{mesocycle_id}/fatigue")
        def log_fatigue(
            mesocycle_id: int,
            week_number: int,
            perceived_fatigue: int = None,
            sleep_quality: int = None,
            motivation_level: int = None,
            missed_reps: int = 0,
            strength_decline: bool = False,
            joint_pain: bool = False,
            notes: str = None,
        ):
            try:
                lid = self.service.log_fatigue(
                    WeeklyFatigueLog(
                        mesocycle_id=mesocycle_id,
                        week_number=week_number,
                        perceived_fatigue=perceived_fatigue,
                        sleep_quality=sleep_quality,
                        motivation_level=motivation_level,
                        missed_reps=missed_reps,
                        strength_decline=strength_decline,
                        joint_pain=joint_pain,
                        notes=notes,
                    )
                )
                return {"id": lid}
            except ValueError as e:
                raise _not_found_or_bad_request(e)

        @mesocycles_router.get("/{mesocycle_id}/deload")
        def check_deload(mesocycle_id: int):
            try:
                return self.service.check_deload(mesocycle_id).model_dump()
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))

        @self.app.get("/exercises")
        def list_exercises(muscle: str = None, equipment: str = None, difficulty: str = None):
            if muscle is None:
                return [e.model_dump() for e in self.exercise_catalog.fetch_all_definitions()]
            eq = equipment.split("|") if equipment else None
            return [
                e.model_dump()
                for e in self.exercise_catalog.exercises_for_muscle(muscle, eq, difficulty)
            ]

        @self.app.post("/exercises")
        def add_exercise(
            name: str,
            primary_muscle: str,
            pattern: str,
            equipment: str,
            difficulty: str = "beginner",
            fatigue_rating: int = 1,
            secondary_muscles: str = None,
        ):
            try:
                definition = ExerciseDefinition(
                    name=name,
                    primary_muscle=primary_muscle,
                    secondary_muscles=tuple(secondary_muscles.split("|"))
                    if secondary_muscles
                    else (),
                    pattern=pattern,
                    equipment=equipment,
                    difficulty=difficulty,
                    fatigue_rating=fatigue_rating,
                )
                eid = self.exercise_catalog.add_custom(definition)
                return {"id": eid}
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))

        @self.app.get("/settings")
        def get_settings():
            return self.settings.all_settings()

        @self.app.post("/settings/{key}")
        def update_setting(key: str, value: str):
            try:
                self.settings.set_text(key, value)
                return {"status": "updated"}
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))

        self.app.include_router(users_router)
        self.app.include_router(mesocycles_router)


if __name__ == "__main__":
    import uvicorn

    api = ProgramAPI()
    uvicorn.run(api.app)
