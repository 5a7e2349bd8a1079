from __future__ import annotations

from typing import Literal, Iterable

from pydantic import BaseModel, ConfigDict, Field

from .math_tools import MathTools

Sex = Literal["male", "female"]
Experience = Literal["novice", "intermediate", "advanced"]
Goal = Literal["cut", "bulk", "recomp", "maintain"]
Equipment = Literal["barbell", "dumbbell", "cable", "machine", "bodyweight", "kettlebell"]
Pattern = Literal[
    "horizontal_push",
    "horizontal_pull",
    "vertical_push",
    "vertical_pull",
    "squat",
    "hip_hinge",
    "lunge",
    "carry",
    "isolation",
]
Difficulty = Literal["beginner", "intermediate", "advanced"]
Confidence = Literal["high", "medium", "low", "find_working_weight"]
PeriodizationModel = Literal["linear", "daily_undulating", "weekly_undulating", "block"]
DeloadType = Literal["volume", "intensity", "full"]

MUSCLE_GROUPS: tuple[str, ...] = (
    "chest",
    "back",
    "shoulders",
    "biceps",
    "triceps",
    "quads",
    "hamstrings",
    "glutes",
    "calves",
    "abs",
)

DEFAULT_EQUIPMENT: tuple[str, ...] = ("barbell", "dumbbell", "cable", "machine", "bodyweight")


class FrozenModel(BaseModel):
    """Base for immutable value objects."""

    model_config = ConfigDict(frozen=True)


class UserTrainingProfile(FrozenModel):
    age: int = 30
    sex: Sex = "male"
    experience: Experience = "novice"
    goal: Goal = "bulk"
    sleep_quality: int = Field(3, ge=1, le=5)
    stress_level: int = Field(3, ge=1, le=5)
    training_age_years: float = Field(0.0, ge=0)
    available_equipment: tuple[str, ...] = DEFAULT_EQUIPMENT
    injured_muscles: tuple[str, ...] = ()


class BodyComposition(FrozenModel):
    total_weight_kg: float
    height_cm: float
    body_fat_percentage: float
    lean_mass_kg: float
    ffmi: float

    @classmethod
    def from_measurements(
        cls, weight_kg: float, body_fat_percentage: float, height_cm: float = 175.0
    ) -> "BodyComposition":
        lean, ffmi = MathTools.body_composition(weight_kg, body_fat_percentage, height_cm)
        return cls(
            total_weight_kg=weight_kg,
            height_cm=height_cm,
            body_fat_percentage=body_fat_percentage,
            lean_mass_kg=lean,
            ffmi=ffmi,
        )


class StrengthCalibrationRecord(FrozenModel):
    exercise_name: str
    tested_weight_kg: float
    tested_reps: int
    tested_rpe: float | None = None
    estimated_1rm_kg: float
    confidence: Confidence = "high"
    source: Literal["calibration", "workout"] = "calibration"
    percentile_general: float | None = None
    percentile_trained: float | None = None
    strength_level: str | None = None
    tested_at: str | None = None


class HistorySet(FrozenModel):
    weight_kg: float
    reps: int
    rpe: float | None = None
    completed: bool = True


class ExerciseHistoryRecord(FrozenModel):
    exercise_name: str
    performed_at: str
    sets: tuple[HistorySet, ...] = ()
    estimated_1rm_kg: float | None = None
    workout_session_id: str | None = None


class WeeklyFatigueLog(FrozenModel):
    mesocycle_id: int
    week_number: int
    perceived_fatigue: int | None = None
    sleep_quality: int | None = None
    motivation_level: int | None = None
    missed_reps: int = 0
    strength_decline: bool = False
    joint_pain: bool = False
    notes: str | None = None


class ExerciseDefinition(FrozenModel):
    name: str
    primary_muscle: str
    secondary_muscles: tuple[str, ...] = ()
    pattern: Pattern
    equipment: Equipment
    difficulty: Difficulty = "beginner"
    fatigue_rating: int = 1

    @property
    def is_compound(self) -> bool:
        return self.pattern != "isolation"

    @property
    def mechanic(self) -> str:
        return "compound" if self.is_compound else "isolation"


class RecoveryFactors(FrozenModel):
    volume_multiplier: float
    frequency_multiplier: float
    deload_frequency_weeks: int
    warnings: tuple[str, ...] = ()


class FatigueBudgetConfig(FrozenModel):
    systemic_limit: float
    local_limit: float
    min_sfr_threshold: float
    warning_threshold: float = 0.8


class VolumePerMuscle(FrozenModel):
    """Weekly set target for one muscle with its MEV/MRV landmarks."""

    sets: int
    frequency: int
    mev: int
    mrv: int


class RpeRange(FrozenModel):
    min: int
    max: int


class WeeklyProgression(FrozenModel):
    week: int
    intensity_modifier: float
    volume_modifier: float
    rpe_target: RpeRange
    focus: str


class PeriodizationPlan(FrozenModel):
    model: PeriodizationModel
    mesocycle_weeks: int
    weekly_progression: tuple[WeeklyProgression, ...]
    deload_frequency: int
    deload_strategy: Literal["proactive", "reactive"]


class RepRangeConfig(FrozenModel):
    min: int
    max: int
    target_rir: int
    tempo: str = "2-0-1-0"
    notes: str = ""


class RepTarget(FrozenModel):
    min: int
    max: int


class WarmupSet(FrozenModel):
    percent_of_working: int
    reps: int
    rest_seconds: int
    notes: str


class FindingWeightProtocol(FrozenModel):
    starting_weight: float
    increment_kg: float
    target_rpe: int
    max_attempts: int
    instructions: str


class WeightRange(FrozenModel):
    low: float
    high: float


class WorkingWeightRecommendation(FrozenModel):
    exercise: str
    target_reps: RepTarget
    target_rir: int
    recommended_weight: float
    weight_range: WeightRange
    confidence: Confidence
    rationale: str
    source: Literal["calibration", "history", "related_lift", "standards", "finding"]
    warmup_protocol: tuple[WarmupSet, ...] = ()
    finding_weight_protocol: FindingWeightProtocol | None = None


class FatigueProfile(FrozenModel):
    systemic_cost: float
    local_cost: dict[str, float]
    sfr: float
    efficiency: Literal["optimal", "acceptable", "suboptimal"]


class DetailedExercise(FrozenModel):
    exercise: ExerciseDefinition
    sets: int
    reps: RepRangeConfig
    rest_seconds: int
    load_guidance: str
    notes: str
    weight_recommendation: WorkingWeightRecommendation
    fatigue_profile: FatigueProfile


class FatigueSummary(FrozenModel):
    systemic_fatigue_generated: int
    systemic_capacity_used: int
    average_sfr: float
    local_fatigue_by_muscle: dict[str, float]


class DetailedSession(FrozenModel):
    day_index: int
    day: str
    focus: str
    exercises: tuple[DetailedExercise, ...]
    total_sets: int
    estimated_minutes: int
    warmup: tuple[str, ...]
    fatigue_summary: FatigueSummary


class MesocycleWeek(FrozenModel):
    week_number: int
    focus: str
    intensity_modifier: float
    volume_modifier: float
    rpe_target: RpeRange
    sessions: tuple[DetailedSession, ...]
    is_deload: bool


class FullProgramRecommendation(FrozenModel):
    split: str
    days_per_week: int
    schedule: tuple[str, ...]
    periodization: PeriodizationPlan
    recovery_profile: RecoveryFactors
    fatigue_budget: FatigueBudgetConfig
    volume_per_muscle: dict[str, VolumePerMuscle]
    sessions: tuple[DetailedSession, ...]
    mesocycle_weeks: tuple[MesocycleWeek, ...]
    warnings: tuple[str, ...] = ()
    program_notes: tuple[str, ...] = ()


class DeloadTriggers(FrozenModel):
    should_deload: bool
    reasons: tuple[str, ...] = ()
    suggested_deload_type: DeloadType = "volume"


class ProgramConfig(FrozenModel):
    days_per_week: int = Field(4, ge=2, le=6)
    session_minutes: int = Field(60, gt=0)
    name: str | None = None


class TrainingSnapshot(FrozenModel):
    """Everything the engine reads for one user, loaded up front."""

    profile: UserTrainingProfile = UserTrainingProfile()
    body_composition: BodyComposition | None = None
    calibrations: dict[str, StrengthCalibrationRecord] = {}
    history: dict[str, tuple[ExerciseHistoryRecord, ...]] = {}
    catalog: tuple[ExerciseDefinition, ...] = ()

    @classmethod
    def from_records(
        cls,
        profile: UserTrainingProfile | None = None,
        body_composition: BodyComposition | None = None,
        calibrations: Iterable[StrengthCalibrationRecord] = (),
        history: Iterable[ExerciseHistoryRecord] = (),
        catalog: Iterable[ExerciseDefinition] = (),
    ) -> "TrainingSnapshot":
        # newest calibration per exercise wins
        latest: dict[str, StrengthCalibrationRecord] = {}
        for rec in sorted(calibrations, key=lambda c: c.tested_at or "", reverse=True):
            latest.setdefault(rec.exercise_name, rec)
        grouped: dict[str, list[ExerciseHistoryRecord]] = {}
        for rec in sorted(history, key=lambda h: h.performed_at, reverse=True):
            grouped.setdefault(rec.exercise_name, []).append(rec)
        return cls(
            profile=profile or UserTrainingProfile(),
            body_composition=body_composition,
            calibrations=latest,
            history={k: tuple(v) for k, v in grouped.items()},
            catalog=tuple(catalog),
        )
