import math

from .models import (
    PeriodizationPlan,
    RecoveryFactors,
    RpeRange,
    UserTrainingProfile,
    WeeklyProgression,
)


class PeriodizationPlanner:
    """Choose a periodization model and lay out the weeks of a mesocycle."""

    DELOAD_INTENSITY: float = 0.6
    DELOAD_VOLUME: float = 0.5
    DELOAD_FOCUS = "DELOAD: Recovery week"

    @staticmethod
    def select_model(profile: UserTrainingProfile) -> str:
        if profile.experience == "novice" or profile.training_age_years < 1:
            return "linear"
        if profile.experience == "intermediate" or profile.training_age_years < 3:
            return "weekly_undulating" if profile.goal == "cut" else "daily_undulating"
        return "block"

    @classmethod
    def build_plan(
        cls, profile: UserTrainingProfile, recovery: RecoveryFactors
    ) -> PeriodizationPlan:
        model = cls.select_model(profile)
        training_weeks = recovery.deload_frequency_weeks
        return PeriodizationPlan(
            model=model,
            mesocycle_weeks=training_weeks + 1,
            weekly_progression=tuple(cls.weekly_progression(model, training_weeks)),
            deload_frequency=training_weeks,
            deload_strategy="reactive" if profile.experience == "novice" else "proactive",
        )

    @classmethod
    def weekly_progression(cls, model: str, training_weeks: int) -> list[WeeklyProgression]:
        weeks = [cls._training_week(model, i, training_weeks) for i in range(1, training_weeks + 1)]
        weeks.append(
            WeeklyProgression(
                week=training_weeks + 1,
                intensity_modifier=cls.DELOAD_INTENSITY,
                volume_modifier=cls.DELOAD_VOLUME,
                rpe_target=RpeRange(min=5, max=6),
                focus=cls.DELOAD_FOCUS,
            )
        )
        return weeks

    @staticmethod
    def _training_week(model: str, i: int, training_weeks: int) -> WeeklyProgression:
        progress = i / training_weeks
        if model == "linear":
            step = math.floor(progress * 2)
            return WeeklyProgression(
                week=i,
                intensity_modifier=0.85 + progress * 0.15,
                volume_modifier=0.9 + progress * 0.1,
                rpe_target=RpeRange(min=6 + step, max=7 + step),
                focus="Technique and base building" if progress < 0.5 else "Progressive overload",
            )
        if model == "daily_undulating":
            return WeeklyProgression(
                week=i,
                intensity_modifier=0.9 + progress * 0.1,
                volume_modifier=0.85 + progress * 0.15,
                rpe_target=RpeRange(min=7, max=9),
                focus=f"DUP Week {i}: Rotate hypertrophy/strength/power daily",
            )
        if model == "block":
            hypertrophy = math.ceil(training_weeks * 0.5)
            strength = math.ceil(training_weeks * 0.35)
            if i <= hypertrophy:
                return WeeklyProgression(
                    week=i,
                    intensity_modifier=0.70 + i / hypertrophy * 0.1,
                    volume_modifier=1.1,
                    rpe_target=RpeRange(min=7, max=8),
                    focus="Hypertrophy block: Volume accumulation",
                )
            if i <= hypertrophy + strength:
                return WeeklyProgression(
                    week=i,
                    intensity_modifier=0.85 + (i - hypertrophy) / strength * 0.1,
                    volume_modifier=0.8,
                    rpe_target=RpeRange(min=8, max=9),
                    focus="Strength block: Heavy loads",
                )
            peak = max(1, training_weeks - hypertrophy - strength)
            return WeeklyProgression(
                week=i,
                intensity_modifier=0.95 + (i - hypertrophy - strength) / peak * 0.05,
                volume_modifier=0.6,
                rpe_target=RpeRange(min=9, max=10),
                focus="Peaking block: Low volume, max intensity",
            )
        # weekly undulating: odd weeks accumulate, even weeks intensify
        if i % 2 == 1:
            return WeeklyProgression(
                week=i,
                intensity_modifier=0.85 + progress * 0.1,
                volume_modifier=1.0 + progress * 0.1,
                rpe_target=RpeRange(min=7, max=8),
                focus="Volume accumulation",
            )
        return WeeklyProgression(
            week=i,
            intensity_modifier=0.95 + progress * 0.05,
            volume_modifier=0.7,
            rpe_target=RpeRange(min=8, max=9),
            focus="Intensity/recovery",
        )
