from __future__ import annotations

import datetime
import math
from typing import Sequence

from loguru import logger

from .constants import sfr_for, systemic_fatigue_for
from .math_tools import MathTools
from .models import (
    MUSCLE_GROUPS,
    DetailedExercise,
    DetailedSession,
    ExerciseDefinition,
    FatigueBudgetConfig,
    FatigueProfile,
    FatigueSummary,
    MesocycleWeek,
    PeriodizationPlan,
    RepTarget,
    TrainingSnapshot,
    VolumePerMuscle,
    WeeklyProgression,
)
from .rep_range import RepRangeCalculator
from .weight_recommendation import WeightRecommendationResolver, format_weight

UPPER = ("chest", "back", "shoulders", "biceps", "triceps")
LOWER = ("quads", "hamstrings", "glutes", "calves", "abs")

# every muscle is trained at least once per week by each split
SESSION_TEMPLATES = {
    "Full Body": (("Full Body", MUSCLE_GROUPS),),
    "Upper/Lower": (
        ("Upper A", UPPER),
        ("Lower A", LOWER),
        ("Upper B", UPPER),
        ("Lower B", LOWER),
    ),
    "Arnold": (
        ("Chest & Back", ("chest", "back")),
        ("Shoulders & Arms", ("shoulders", "biceps", "triceps")),
        ("Legs", LOWER),
    ),
    "PPL": (
        ("Push", ("chest", "shoulders", "triceps")),
        ("Pull", ("back", "biceps", "shoulders")),
        ("Legs", LOWER),
    ),
}

# template order when plain cycling would shortchange legs
ROTATIONS = {("Arnold", 5): (0, 1, 2, 0, 2)}

# ISO weekdays (Monday=1) that carry a session, by days per week
TRAINING_DAYS = {
    2: (1, 4),
    3: (1, 3, 5),
    4: (1, 2, 4, 5),
    5: (1, 2, 3, 5, 6),
    6: (1, 2, 3, 5, 6, 7),
}

MUSCLE_ORDER = (
    "quads",
    "hamstrings",
    "glutes",
    "back",
    "chest",
    "shoulders",
    "biceps",
    "triceps",
    "calves",
    "abs",
)

LOWER_BODY = frozenset({"quads", "hamstrings", "glutes", "calves"})
LOWER_BODY_WARMUP = (
    "5 min bike or walking",
    "Leg swings x 10 each direction",
    "Bodyweight squats x 10",
    "Glute bridges x 10",
)
UPPER_BODY_WARMUP = (
    "5 min rowing or arm circles",
    "Band pull-aparts x 15",
    "Push-ups x 10",
    "Face pulls x 10 (light)",
)

REST_SECONDS = {"cut": (120, 60), "bulk": (180, 90)}
DEFAULT_REST_SECONDS = (150, 75)


class SessionBuilder:
    """Assemble detailed sessions and mesocycle weeks from engine components."""

    MAX_COMPOUND_SETS: int = 4
    MAX_ISOLATION_SETS: int = 3
    FATIGUE_COST_FACTOR: float = 0.15
    LOCAL_COST_PER_SET: int = 8
    DELOAD_SYSTEMIC_FACTOR: float = 0.5

    STANDARD_SESSION_MINUTES: int = 60
    QUICK_SESSION_MINUTES: int = 25
    SHORT_SESSION_MINUTES: int = 45
    QUICK_SYSTEMIC_FACTOR: float = 0.5
    TIME_BUFFER_MINUTES: int = 5
    COMPOUND_SET_SECONDS: int = 50
    ISOLATION_SET_SECONDS: int = 35
    WARMUP_SECONDS: int = 240
    TRANSITION_SECONDS: int = 60

    def __init__(self, snapshot: TrainingSnapshot, catalog: Sequence[ExerciseDefinition]) -> None:
        self.snapshot = snapshot
        self.profile = snapshot.profile
        self.catalog = tuple(catalog)

    @staticmethod
    def session_templates(split: str, days_per_week: int) -> list[tuple[str, tuple[str, ...]]]:
        """The week's sessions in training order, as ``(day, muscles)`` pairs."""
        base = SESSION_TEMPLATES.get(split, SESSION_TEMPLATES["Upper/Lower"])
        order = ROTATIONS.get((split, days_per_week), range(days_per_week))
        return [base[i % len(base)] for i in order]

    @classmethod
    def build_schedule(cls, split: str, days_per_week: int) -> tuple[str, ...]:
        training_days = TRAINING_DAYS.get(days_per_week, TRAINING_DAYS[4])
        sessions = iter(cls.session_templates(split, len(training_days)))
        return tuple(
            next(sessions)[0] if weekday in training_days else "Rest" for weekday in range(1, 8)
        )

    @staticmethod
    def muscle_frequencies(templates: Sequence[tuple[str, Sequence[str]]]) -> dict[str, int]:
        counts: dict[str, int] = {}
        for _, muscles in templates:
            for muscle in muscles:
                counts[muscle] = counts.get(muscle, 0) + 1
        return counts

    @staticmethod
    def distribute_sets(
        templates: Sequence[tuple[str, Sequence[str]]], volume: dict[str, VolumePerMuscle]
    ) -> list[dict[str, int]]:
        """Split each muscle's weekly sets over the sessions that train it.

        The first ``sets % frequency`` sessions take ``ceil(sets / frequency)``
        and the rest take the floor, so a week adds up to exactly ``sets``.
        """
        seen: dict[str, int] = {}
        planned: list[dict[str, int]] = []
        for _, muscles in templates:
            session: dict[str, int] = {}
            for muscle in muscles:
                muscle_volume = volume.get(muscle)
                if muscle_volume is None:
                    continue
                index = seen.get(muscle, 0)
                seen[muscle] = index + 1
                base, extra = divmod(muscle_volume.sets, max(1, muscle_volume.frequency))
                sets = base + (1 if index < extra else 0)
                if sets > 0:
                    session[muscle] = sets
            planned.append(session)
        return planned

    @staticmethod
    def scale_week(
        planned: Sequence[dict[str, int]],
        volume_modifier: float,
        volume: dict[str, VolumePerMuscle],
    ) -> list[dict[str, int]]:
        """Apply a week's volume modifier without pushing any muscle past MRV."""
        used: dict[str, int] = {}
        scaled: list[dict[str, int]] = []
        for session in planned:
            week_session: dict[str, int] = {}
            for muscle, sets in session.items():
                target = max(1, int(MathTools.round_half_up(sets * volume_modifier)))
                ceiling = volume[muscle].mrv - used.get(muscle, 0)
                target = min(target, ceiling)
                if target > 0:
                    week_session[muscle] = target
                    used[muscle] = used.get(muscle, 0) + target
            scaled.append(week_session)
        return scaled

    @classmethod
    def time_volume_factor(cls, session_minutes: int) -> float:
        return min(1.0, session_minutes / cls.STANDARD_SESSION_MINUTES)

    @classmethod
    def time_mode(cls, session_minutes: int) -> str:
        if session_minutes <= cls.QUICK_SESSION_MINUTES:
            return "quick"
        if session_minutes <= cls.SHORT_SESSION_MINUTES:
            return "short"
        return "standard"

    @classmethod
    def budget_for_time(
        cls, budget: FatigueBudgetConfig, session_minutes: int
    ) -> FatigueBudgetConfig:
        mode = cls.time_mode(session_minutes)
        if mode == "quick":
            factor = cls.QUICK_SYSTEMIC_FACTOR
        elif mode == "short":
            factor = cls.time_volume_factor(session_minutes)
        else:
            return budget
        return budget.model_copy(update={"systemic_limit": budget.systemic_limit * factor})

    @staticmethod
    def rest_period(is_compound: bool, goal: str) -> int:
        compound, isolation = REST_SECONDS.get(goal, DEFAULT_REST_SECONDS)
        return compound if is_compound else isolation

    @classmethod
    def exercise_minutes(cls, is_compound: bool, goal: str, sets: int, warmup: bool) -> float:
        """Working sets plus rest, an optional ramp-up and the changeover."""
        rest = cls.rest_period(is_compound, goal)
        set_seconds = cls.COMPOUND_SET_SECONDS if is_compound else cls.ISOLATION_SET_SECONDS
        working = (set_seconds + rest) * sets - rest
        ramp = cls.WARMUP_SECONDS if warmup and is_compound else 0
        return (working + ramp + cls.TRANSITION_SECONDS) / 60

    @classmethod
    def max_exercises(cls, session_minutes: int, goal: str) -> int:
        # one compound in three carries a ramp-up; compounds and isolations split evenly
        compound = (
            cls.exercise_minutes(True, goal, 3, True) + cls.exercise_minutes(True, goal, 3, False) * 2
        ) / 3
        average = compound * 0.5 + cls.exercise_minutes(False, goal, 3, False) * 0.5
        return max(1, math.floor(session_minutes / average))

    @staticmethod
    def general_warmup(first_muscle: str | None) -> tuple[str, ...]:
        if first_muscle in LOWER_BODY:
            return LOWER_BODY_WARMUP
        return UPPER_BODY_WARMUP

    def candidates_for(self, muscle: str) -> list[ExerciseDefinition]:
        if muscle in self.profile.injured_muscles:
            return []
        eligible = [
            e
            for e in self.catalog
            if e.primary_muscle == muscle and e.equipment in self.profile.available_equipment
        ]
        if self.profile.experience == "novice":
            filtered = [e for e in eligible if e.difficulty == "beginner"]
        elif self.profile.experience == "intermediate":
            filtered = [e for e in eligible if e.difficulty != "advanced"]
        else:
            filtered = eligible
        # relax difficulty before giving the muscle nothing
        return filtered or eligible

    def select_exercises(
        self,
        muscle: str,
        sets_needed: int,
        starting_position: int,
        min_sfr: float | None = None,
    ) -> list[tuple[ExerciseDefinition, int]]:
        compound_first = starting_position <= 2
        candidates = self.candidates_for(muscle)
        if min_sfr is not None:
            efficient = [e for e in candidates if sfr_for(e.pattern, e.equipment) >= min_sfr]
            candidates = efficient or candidates

        def rank(e: ExerciseDefinition) -> tuple[int, float]:
            bias = (0 if e.is_compound else 1) if compound_first else 0
            return bias, -sfr_for(e.pattern, e.equipment)

        selected: list[tuple[ExerciseDefinition, int]] = []
        remaining = sets_needed
        for exercise in sorted(candidates, key=rank):
            if remaining <= 0:
                break
            cap = self.MAX_COMPOUND_SETS if exercise.is_compound else self.MAX_ISOLATION_SETS
            sets = min(remaining, cap)
            selected.append((exercise, sets))
            remaining -= sets
        return selected

    def build_session(
        self,
        day: str,
        session_sets: dict[str, int],
        day_index: int,
        week_number: int,
        total_weeks: int,
        model: str,
        progression: WeeklyProgression,
        budget: FatigueBudgetConfig,
        session_minutes: int = 60,
    ) -> DetailedSession:
        """Fill one session with exercises until its sets, time or fatigue run out.

        ``session_sets`` already carries the week's volume modifier. Fatigue is a
        hard cutoff for the rest of the session; an exercise that does not fit
        the clock loses a set or is skipped.
        """
        ordered = sorted(session_sets, key=MUSCLE_ORDER.index)
        goal = self.profile.goal
        max_count = self.max_exercises(session_minutes, goal)
        min_sfr = (
            budget.min_sfr_threshold if self.time_mode(session_minutes) == "quick" else None
        )
        exercises: list[DetailedExercise] = []
        position = 1
        total_cost = 0.0
        minutes_used = 0.0
        exhausted = False

        for muscle in ordered:
            if (
                exhausted
                or len(exercises) >= max_count
                or minutes_used >= session_minutes - self.TIME_BUFFER_MINUTES
            ):
                break
            warmed_up = False
            for exercise, sets in self.select_exercises(
                muscle, session_sets[muscle], position, min_sfr
            ):
                if (
                    len(exercises) >= max_count
                    or minutes_used >= session_minutes - self.TIME_BUFFER_MINUTES
                ):
                    break
                needs_warmup = exercise.is_compound and not warmed_up
                minutes = self.exercise_minutes(exercise.is_compound, goal, sets, needs_warmup)
                if minutes_used + minutes > session_minutes + self.TIME_BUFFER_MINUTES:
                    if sets <= 2:
                        continue
                    sets -= 1
                    minutes = self.exercise_minutes(exercise.is_compound, goal, sets, needs_warmup)
                    if minutes_used + minutes > session_minutes + self.TIME_BUFFER_MINUTES:
                        continue
                cost = (
                    systemic_fatigue_for(exercise.pattern, exercise.equipment)
                    * sets
                    * self.FATIGUE_COST_FACTOR
                )
                if total_cost + cost > budget.systemic_limit:
                    logger.debug(
                        "[ENGINE] Session truncated by fatigue budget",
                        day=day,
                        week=week_number,
                        exercise=exercise.name,
                    )
                    exhausted = True
                    break
                total_cost += cost
                minutes_used += minutes
                warmed_up = warmed_up or exercise.is_compound
                exercises.append(
                    self._detailed_exercise(
                        exercise, muscle, sets, position, week_number, total_weeks, model, progression, cost
                    )
                )
                position += 1

        total_sets = sum(e.sets for e in exercises)
        average_sfr = (
            sum(e.fatigue_profile.sfr for e in exercises) / len(exercises) if exercises else 0.0
        )
        local: dict[str, float] = {}
        for e in exercises:
            for m, v in e.fatigue_profile.local_cost.items():
                local[m] = local.get(m, 0) + v

        return DetailedSession(
            day_index=day_index,
            day=day,
            focus=f"{day} - Week {week_number}",
            exercises=tuple(exercises),
            total_sets=total_sets,
            estimated_minutes=int(MathTools.round_half_up(total_sets * 2.5 + 10)),
            warmup=self.general_warmup(ordered[0] if ordered else None),
            fatigue_summary=FatigueSummary(
                systemic_fatigue_generated=int(MathTools.round_half_up(total_cost)),
                systemic_capacity_used=int(
                    MathTools.round_half_up(total_cost / budget.systemic_limit * 100)
                )
                if budget.systemic_limit
                else 0,
                average_sfr=MathTools.round_half_up(average_sfr, 2),
                local_fatigue_by_muscle=local,
            ),
        )

    def _detailed_exercise(
        self,
        exercise: ExerciseDefinition,
        muscle: str,
        sets: int,
        position: int,
        week_number: int,
        total_weeks: int,
        model: str,
        progression: WeeklyProgression,
        cost: float,
    ) -> DetailedExercise:
        rep_config = RepRangeCalculator.calculate(
            self.profile, muscle, exercise.is_compound, position, week_number, total_weeks, model
        )
        rir = int(
            MathTools.clamp(
                rep_config.target_rir
                + MathTools.round_half_up((1 - progression.intensity_modifier) * 3),
                0,
                4,
            )
        )
        recommendation = WeightRecommendationResolver.recommend(
            self.snapshot, exercise.name, RepTarget(min=rep_config.min, max=rep_config.max), rir
        )
        sfr = sfr_for(exercise.pattern, exercise.equipment)
        if sfr >= 1.0:
            efficiency = "optimal"
        elif sfr >= 0.8:
            efficiency = "acceptable"
        else:
            efficiency = "suboptimal"

        if recommendation.recommended_weight > 0:
            guidance = (
                f"{format_weight(recommendation.recommended_weight)}kg × "
                f"{rep_config.min}-{rep_config.max} @ {rir} RIR"
            )
        else:
            protocol = recommendation.finding_weight_protocol
            start = protocol.starting_weight if protocol else 20
            guidance = f"Find working weight (start: {format_weight(start)}kg)"

        return DetailedExercise(
            exercise=exercise,
            sets=sets,
            reps=rep_config.model_copy(update={"target_rir": rir}),
            rest_seconds=self.rest_period(exercise.is_compound, self.profile.goal),
            load_guidance=guidance,
            notes=rep_config.notes,
            weight_recommendation=recommendation,
            fatigue_profile=FatigueProfile(
                systemic_cost=cost,
                local_cost={muscle: float(sets * self.LOCAL_COST_PER_SET)},
                sfr=sfr,
                efficiency=efficiency,
            ),
        )

    def build_weeks(
        self,
        templates: Sequence[tuple[str, tuple[str, ...]]],
        volume: dict[str, VolumePerMuscle],
        plan: PeriodizationPlan,
        budget: FatigueBudgetConfig,
        session_minutes: int = 60,
    ) -> tuple[MesocycleWeek, ...]:
        planned = self.distribute_sets(templates, volume)
        weeks: list[MesocycleWeek] = []
        for week_number in range(1, plan.mesocycle_weeks + 1):
            progression = plan.weekly_progression[week_number - 1]
            is_deload = week_number == plan.mesocycle_weeks
            week_budget = (
                budget.model_copy(
                    update={"systemic_limit": budget.systemic_limit * self.DELOAD_SYSTEMIC_FACTOR}
                )
                if is_deload
                else budget
            )
            week_sets = self.scale_week(planned, progression.volume_modifier, volume)
            sessions = tuple(
                self.build_session(
                    day,
                    week_sets[day_index],
                    day_index,
                    week_number,
                    plan.mesocycle_weeks,
                    plan.model,
                    progression,
                    week_budget,
                    session_minutes,
                )
                for day_index, (day, _) in enumerate(templates)
            )
            weeks.append(
                MesocycleWeek(
                    week_number=week_number,
                    focus=progression.focus,
                    intensity_modifier=progression.intensity_modifier,
                    volume_modifier=progression.volume_modifier,
                    rpe_target=progression.rpe_target,
                    sessions=sessions,
                    is_deload=is_deload,
                )
            )
        return tuple(weeks)


def session_for_day(
    weeks: Sequence[MesocycleWeek],
    days_per_week: int,
    current_week: int,
    today: datetime.date,
) -> DetailedSession | None:
    """The session scheduled on ``today``, or None on a rest day."""
    training_days = TRAINING_DAYS.get(days_per_week, TRAINING_DAYS[4])
    weekday = today.isoweekday()
    if weekday not in training_days:
        return None
    if not 1 <= current_week <= len(weeks):
        return None
    sessions = weeks[current_week - 1].sessions
    if not sessions:
        return None
    return sessions[training_days.index(weekday) % len(sessions)]
