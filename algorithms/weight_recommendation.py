"""Working-weight resolution over a fixed chain of evidence tiers.

Each tier is a distinct result type so callers can tell exactly which
source produced a recommendation:

``Calibrated`` -> ``FromHistory`` -> ``FromRelatedLift`` -> ``FromStandards``
-> ``NeedsCalibration``.
"""

from __future__ import annotations

from .constants import (
    EXERCISE_RELATIONSHIPS,
    STANDARD_LIFT_KEYS,
    STRENGTH_STANDARDS,
    match_lift,
)
from .math_tools import MathTools
from .models import (
    ExerciseHistoryRecord,
    FindingWeightProtocol,
    FrozenModel,
    RepTarget,
    StrengthCalibrationRecord,
    TrainingSnapshot,
    WarmupSet,
    WeightRange,
    WorkingWeightRecommendation,
)


class Calibrated(FrozenModel):
    record: StrengthCalibrationRecord


class FromHistory(FrozenModel):
    estimated_1rm: float
    sessions: int


class FromRelatedLift(FrozenModel):
    estimated_1rm: float
    parent: str
    ratio: float


class FromStandards(FrozenModel):
    estimated_1rm: float
    ffmi_bracket: str


class NeedsCalibration(FrozenModel):
    pass


WeightTier = Calibrated | FromHistory | FromRelatedLift | FromStandards | NeedsCalibration


def format_weight(weight: float) -> str:
    return f"{weight:g}"


def _usable_estimates(sessions: tuple[ExerciseHistoryRecord, ...]) -> list[float]:
    return [
        MathTools.estimate_1rm(s.weight_kg, s.reps, s.rpe)
        for session in sessions
        for s in session.sets
        if s.completed and 1 <= s.reps <= MathTools.REP_CEILING
    ]


class WeightRecommendationResolver:
    """Turn a snapshot's strength evidence into a load for given targets."""

    HISTORY_SESSIONS: int = 10
    HIGH_CONFIDENCE_SESSIONS: int = 3
    CONSERVATIVE_FACTOR: float = 0.85
    ESTIMATE_VARIANCE: float = 0.10
    FINDING_START_FACTOR: float = 0.7
    BODYWEIGHT_START_FACTOR: float = 0.2
    DEFAULT_START_WEIGHT: float = 20.0
    SMALL_MUSCLE_KEYWORDS = ("Lateral", "Curl", "Tricep", "Calf", "Raise", "Fly", "Extension")
    HEAVY_COMPOUND_KEYWORDS = ("Squat", "Deadlift", "Bench Press", "Overhead Press")

    @classmethod
    def resolve_tier(cls, snapshot: TrainingSnapshot, exercise_name: str) -> WeightTier:
        calibration = snapshot.calibrations.get(exercise_name)
        if calibration is not None:
            return Calibrated(record=calibration)

        sessions = snapshot.history.get(exercise_name, ())
        estimates = _usable_estimates(sessions[: cls.HISTORY_SESSIONS])
        if estimates:
            return FromHistory(
                estimated_1rm=MathTools.conservative_estimate(estimates),
                sessions=len(sessions),
            )

        related = cls._from_related(snapshot, exercise_name)
        if related is not None:
            return related

        standards = cls._from_standards(snapshot, exercise_name)
        if standards is not None:
            return standards

        return NeedsCalibration()

    @classmethod
    def _direct_estimate(cls, snapshot: TrainingSnapshot, exercise_name: str) -> float | None:
        calibration = snapshot.calibrations.get(exercise_name)
        if calibration is not None:
            return calibration.estimated_1rm_kg
        estimates = _usable_estimates(snapshot.history.get(exercise_name, ())[: cls.HISTORY_SESSIONS])
        if estimates:
            return MathTools.conservative_estimate(estimates)
        return None

    @classmethod
    def _from_related(cls, snapshot: TrainingSnapshot, exercise_name: str) -> FromRelatedLift | None:
        relationship = EXERCISE_RELATIONSHIPS.get(exercise_name)
        if relationship is None:
            return None
        if relationship.parent != exercise_name:
            parent_1rm = cls._direct_estimate(snapshot, relationship.parent)
            if parent_1rm is not None:
                return FromRelatedLift(
                    estimated_1rm=MathTools.round_half_up(parent_1rm * relationship.ratio, 1),
                    parent=relationship.parent,
                    ratio=relationship.ratio,
                )
        # siblings only count with their own history and a known ratio
        for name, _ in relationship.related:
            sibling = EXERCISE_RELATIONSHIPS.get(name)
            if sibling is None:
                continue
            estimates = _usable_estimates(snapshot.history.get(name, ())[: cls.HISTORY_SESSIONS])
            if estimates:
                ratio = relationship.ratio / sibling.ratio
                return FromRelatedLift(
                    estimated_1rm=MathTools.round_half_up(
                        MathTools.conservative_estimate(estimates) * ratio, 1
                    ),
                    parent=name,
                    ratio=ratio,
                )
        return None

    @staticmethod
    def _from_standards(snapshot: TrainingSnapshot, exercise_name: str) -> FromStandards | None:
        body = snapshot.body_composition
        if body is None:
            return None
        bracket = MathTools.ffmi_bracket(body.ffmi)
        standards = STRENGTH_STANDARDS[snapshot.profile.experience][bracket]

        lift: str | None = exercise_name
        if lift not in STANDARD_LIFT_KEYS and lift not in EXERCISE_RELATIONSHIPS:
            lift = match_lift(exercise_name)
        factor = 1.0
        visited: set[str] = set()
        while lift is not None and lift not in visited:
            key = STANDARD_LIFT_KEYS.get(lift)
            if key is not None:
                return FromStandards(
                    estimated_1rm=MathTools.round_half_up(
                        body.total_weight_kg * standards[key] * factor, 1
                    ),
                    ffmi_bracket=bracket,
                )
            visited.add(lift)
            relationship = EXERCISE_RELATIONSHIPS.get(lift)
            if relationship is None:
                return None
            factor *= relationship.ratio
            lift = relationship.parent
        return None

    @classmethod
    def recommend(
        cls,
        snapshot: TrainingSnapshot,
        exercise_name: str,
        target_reps: RepTarget,
        target_rir: int,
    ) -> WorkingWeightRecommendation:
        tier = cls.resolve_tier(snapshot, exercise_name)
        if isinstance(tier, Calibrated):
            record = tier.record
            return cls._direct(
                exercise_name,
                record.estimated_1rm_kg,
                target_reps,
                target_rir,
                record.confidence,
                f"Based on calibration test. Estimated 1RM: {format_weight(record.estimated_1rm_kg)}kg.",
                "calibration",
            )
        if isinstance(tier, FromHistory):
            confidence = "high" if tier.sessions >= cls.HIGH_CONFIDENCE_SESSIONS else "medium"
            return cls._direct(
                exercise_name,
                tier.estimated_1rm,
                target_reps,
                target_rir,
                confidence,
                "Based on recent training history. "
                f"Estimated 1RM: {format_weight(MathTools.round_half_up(tier.estimated_1rm))}kg.",
                "history",
            )
        if isinstance(tier, FromRelatedLift):
            return cls._estimated(
                exercise_name,
                tier.estimated_1rm,
                target_reps,
                target_rir,
                f"Estimated from {tier.parent} at {tier.ratio:.0%} of its 1RM. Start conservative.",
                "related_lift",
            )
        if isinstance(tier, FromStandards):
            return cls._estimated(
                exercise_name,
                tier.estimated_1rm,
                target_reps,
                target_rir,
                f"Estimated from strength standards ({tier.ffmi_bracket} FFMI). Start conservative.",
                "standards",
            )
        if isinstance(tier, NeedsCalibration):
            return cls._finding(snapshot, exercise_name, target_reps, target_rir)
        raise TypeError(f"unhandled weight tier: {type(tier).__name__}")

    @classmethod
    def _direct(
        cls,
        exercise_name: str,
        estimated_1rm: float,
        target_reps: RepTarget,
        target_rir: int,
        confidence: str,
        rationale: str,
        source: str,
    ) -> WorkingWeightRecommendation:
        working = MathTools.working_weight(estimated_1rm, target_reps.max, target_rir)
        variance = 0.05 if confidence == "high" else 0.10
        return WorkingWeightRecommendation(
            exercise=exercise_name,
            target_reps=target_reps,
            target_rir=target_rir,
            recommended_weight=MathTools.round_to_plate(working),
            weight_range=WeightRange(
                low=MathTools.round_to_plate(working * (1 - variance)),
                high=MathTools.round_to_plate(working * (1 + variance)),
            ),
            confidence=confidence,
            rationale=rationale,
            source=source,
            warmup_protocol=cls.warmup_sets(working, exercise_name),
        )

    @classmethod
    def _estimated(
        cls,
        exercise_name: str,
        estimated_1rm: float,
        target_reps: RepTarget,
        target_rir: int,
        rationale: str,
        source: str,
    ) -> WorkingWeightRecommendation:
        working = MathTools.working_weight(estimated_1rm, target_reps.max, target_rir)
        conservative = working * cls.CONSERVATIVE_FACTOR
        start = MathTools.round_to_plate(conservative * cls.FINDING_START_FACTOR)
        return WorkingWeightRecommendation(
            exercise=exercise_name,
            target_reps=target_reps,
            target_rir=target_rir,
            recommended_weight=MathTools.round_to_plate(conservative),
            weight_range=WeightRange(
                low=MathTools.round_to_plate(conservative * (1 - cls.ESTIMATE_VARIANCE)),
                high=MathTools.round_to_plate(conservative * (1 + cls.ESTIMATE_VARIANCE)),
            ),
            confidence="low",
            rationale=rationale,
            source=source,
            warmup_protocol=cls.warmup_sets(conservative, exercise_name),
            finding_weight_protocol=FindingWeightProtocol(
                starting_weight=start,
                increment_kg=cls.increment_for(exercise_name),
                target_rpe=10 - target_rir,
                max_attempts=4,
                instructions=f"Start at {format_weight(start)}kg and work up.",
            ),
        )

    @classmethod
    def _finding(
        cls,
        snapshot: TrainingSnapshot,
        exercise_name: str,
        target_reps: RepTarget,
        target_rir: int,
    ) -> WorkingWeightRecommendation:
        body = snapshot.body_composition
        raw_start = (
            body.total_weight_kg * cls.BODYWEIGHT_START_FACTOR
            if body is not None
            else cls.DEFAULT_START_WEIGHT
        )
        start = MathTools.round_to_plate(raw_start)
        increment = cls.increment_for(exercise_name)
        target_rpe = 10 - target_rir
        instructions = (
            f"Start with {format_weight(start)}kg for {target_reps.max} reps. "
            f"If RPE < {target_rpe - 1}: Add {format_weight(increment)}kg, rest 2-3 min, repeat. "
            f"If RPE = {target_rpe}: You've found your working weight. Record for next session."
        )
        return WorkingWeightRecommendation(
            exercise=exercise_name,
            target_reps=target_reps,
            target_rir=target_rir,
            recommended_weight=0.0,
            weight_range=WeightRange(low=0.0, high=0.0),
            confidence="find_working_weight",
            rationale="No history available. Use finding weight protocol.",
            source="finding",
            finding_weight_protocol=FindingWeightProtocol(
                starting_weight=start,
                increment_kg=increment,
                target_rpe=target_rpe,
                max_attempts=5,
                instructions=instructions,
            ),
        )

    @classmethod
    def increment_for(cls, exercise_name: str) -> float:
        if any(k in exercise_name for k in cls.SMALL_MUSCLE_KEYWORDS):
            return 1.0
        if "Dumbbell" in exercise_name:
            return 2.0
        return 2.5

    @classmethod
    def warmup_sets(cls, working_weight: float, exercise_name: str) -> tuple[WarmupSet, ...]:
        if working_weight < 20:
            return (WarmupSet(percent_of_working=50, reps=12, rest_seconds=60, notes="Light warmup"),)
        sets = [
            WarmupSet(percent_of_working=40, reps=10, rest_seconds=60, notes="Empty bar or very light"),
            WarmupSet(percent_of_working=60, reps=6, rest_seconds=90, notes="Building up"),
            WarmupSet(percent_of_working=80, reps=3, rest_seconds=120, notes="Near working weight"),
        ]
        if working_weight > 80 and any(k in exercise_name for k in cls.HEAVY_COMPOUND_KEYWORDS):
            sets.append(
                WarmupSet(percent_of_working=90, reps=1, rest_seconds=120, notes="Final warmup single")
            )
        return tuple(sets)
