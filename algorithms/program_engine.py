from __future__ import annotations

from loguru import logger

from .constants import EXERCISE_CATALOG
from .fatigue_budget import FatigueBudgetCalculator
from .math_tools import MathTools
from .models import FullProgramRecommendation, ProgramConfig, TrainingSnapshot
from .periodization import PeriodizationPlanner
from .recovery_profile import RecoveryProfileCalculator
from .session_builder import SessionBuilder
from .volume_allocator import VolumeAllocator

LONG_SESSION_TOLERANCE = 1.2


def time_notes(session_minutes: int) -> tuple[str, ...]:
    mode = SessionBuilder.time_mode(session_minutes)
    percent = int(MathTools.round_half_up(SessionBuilder.time_volume_factor(session_minutes) * 100))
    notes = []
    if mode == "quick":
        notes.append(
            f"Quick session mode ({session_minutes} min): high-SFR exercises only, reduced volume"
        )
    elif mode == "short":
        notes.append(f"Time-efficient mode ({session_minutes} min): volume scaled to {percent}%")
    if percent < 100:
        notes.append(f"Volume reduced to {percent}% to fit {session_minutes} min sessions")
    return tuple(notes)


def generate_program(
    snapshot: TrainingSnapshot, config: ProgramConfig | None = None
) -> FullProgramRecommendation:
    """Build a complete mesocycle for ``snapshot``; pure and repeatable."""
    config = config or ProgramConfig()
    profile = snapshot.profile
    catalog = snapshot.catalog or EXERCISE_CATALOG

    recovery = RecoveryProfileCalculator.calculate(profile)
    budget = SessionBuilder.budget_for_time(
        FatigueBudgetCalculator.calculate(profile), config.session_minutes
    )
    split = VolumeAllocator.recommend_split(
        config.days_per_week, config.session_minutes, profile.experience
    )
    builder = SessionBuilder(snapshot, catalog)
    templates = builder.session_templates(split, config.days_per_week)
    volume = VolumeAllocator.allocate(
        config.days_per_week,
        split,
        recovery,
        profile,
        frequencies=builder.muscle_frequencies(templates),
        time_factor=builder.time_volume_factor(config.session_minutes),
    )
    plan = PeriodizationPlanner.build_plan(profile, recovery)
    weeks = builder.build_weeks(templates, volume, plan, budget, config.session_minutes)
    sessions = weeks[0].sessions if weeks else ()

    warnings = list(recovery.warnings)
    if sessions:
        average = sum(s.estimated_minutes for s in sessions) / len(sessions)
        if average > config.session_minutes * LONG_SESSION_TOLERANCE:
            warnings.append(
                f"Sessions averaging {int(MathTools.round_half_up(average))} min may exceed your "
                f"{config.session_minutes} min target. "
                "Consider reducing volume or extending session time."
            )

    logger.debug(
        "[ENGINE] Program assembled",
        split=split,
        model=plan.model,
        weeks=plan.mesocycle_weeks,
        sessions_per_week=len(templates),
    )

    return FullProgramRecommendation(
        split=split,
        days_per_week=config.days_per_week,
        schedule=builder.build_schedule(split, config.days_per_week),
        periodization=plan,
        recovery_profile=recovery,
        fatigue_budget=budget,
        volume_per_muscle=volume,
        sessions=sessions,
        mesocycle_weeks=weeks,
        warnings=tuple(warnings),
        program_notes=(
            f"Periodization: {plan.model}",
            f"Mesocycle: {plan.mesocycle_weeks} weeks",
            f"Deload: Week {plan.deload_frequency + 1}",
        )
        + time_notes(config.session_minutes),
    )
