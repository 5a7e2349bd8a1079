from .math_tools import MathTools
from .models import FatigueBudgetConfig, UserTrainingProfile


class FatigueBudgetCalculator:
    """Per-session systemic and local fatigue limits."""

    BASE_SYSTEMIC: float = 100.0
    BASE_LOCAL: float = 80.0
    BASE_MIN_SFR: float = 0.6
    WARNING_THRESHOLD: float = 0.8

    @staticmethod
    def recovery_multiplier(sleep_quality: int, stress_level: int) -> float:
        return (sleep_quality / 5) * (1 - (stress_level - 1) / 8)

    @classmethod
    def calculate(cls, profile: UserTrainingProfile) -> FatigueBudgetConfig:
        systemic = cls.BASE_SYSTEMIC
        local = cls.BASE_LOCAL
        min_sfr = cls.BASE_MIN_SFR

        if profile.age >= 55:
            systemic *= 0.7
            local *= 0.8
            min_sfr = 0.8
        elif profile.age >= 45:
            systemic *= 0.85
            local *= 0.9
            min_sfr = 0.7

        if profile.experience == "novice":
            systemic *= 0.75
            local *= 0.8
            min_sfr = 0.8
        elif profile.experience == "advanced":
            systemic *= 1.15
            local *= 1.1
            min_sfr = 0.5

        rm = cls.recovery_multiplier(profile.sleep_quality, profile.stress_level)
        systemic *= 0.7 + rm * 0.6

        if profile.goal == "cut":
            systemic *= 0.85
            local *= 0.9

        return FatigueBudgetConfig(
            systemic_limit=MathTools.round_half_up(systemic),
            local_limit=MathTools.round_half_up(local),
            min_sfr_threshold=MathTools.round_half_up(min_sfr, 2),
            warning_threshold=cls.WARNING_THRESHOLD,
        )
