from .math_tools import MathTools
from .models import RecoveryFactors, UserTrainingProfile


class RecoveryProfileCalculator:
    """Derive volume/frequency multipliers and deload cadence from a profile."""

    BASE_DELOAD_WEEKS: int = 5
    MIN_DELOAD_WEEKS: int = 3
    SLEEP_MULTIPLIER = {1: 0.70, 2: 0.85, 3: 1.00, 4: 1.05, 5: 1.10}
    STRESS_MULTIPLIER = {1: 1.10, 2: 1.05, 3: 1.00, 4: 0.90, 5: 0.75}
    VOLUME_BOUNDS: tuple[float, float] = (0.5, 1.3)
    FREQUENCY_BOUNDS: tuple[float, float] = (0.7, 1.2)

    JOINT_CARE_WARNING = "Consider extra warm-up sets and joint-friendly exercise variations."
    RECOVERY_PRIORITY_WARNING = "Prioritize recovery. Consider 2-on-1-off training schedules."
    POOR_SLEEP_WARNING = "Sleep quality is limiting recovery. Fix this before adding volume."
    HIGH_STRESS_WARNING = (
        "High life stress impairs recovery. Training should be a release, not another stressor."
    )

    @classmethod
    def calculate(cls, profile: UserTrainingProfile) -> RecoveryFactors:
        volume = 1.0
        frequency = 1.0
        deload = cls.BASE_DELOAD_WEEKS
        warnings: list[str] = []

        age = profile.age
        if age < 25:
            volume *= 1.05
            frequency *= 1.05
            deload = 6
        elif 35 <= age < 45:
            volume *= 0.95
            deload = 5
        elif 45 <= age < 55:
            volume *= 0.85
            frequency *= 0.95
            deload = 4
            warnings.append(cls.JOINT_CARE_WARNING)
        elif age >= 55:
            volume *= 0.75
            frequency *= 0.90
            deload = 3
            warnings.append(cls.RECOVERY_PRIORITY_WARNING)

        volume *= cls.SLEEP_MULTIPLIER.get(profile.sleep_quality, 1.0)
        if profile.sleep_quality <= 2:
            warnings.append(cls.POOR_SLEEP_WARNING)
            deload = max(cls.MIN_DELOAD_WEEKS, deload - 1)

        volume *= cls.STRESS_MULTIPLIER.get(profile.stress_level, 1.0)
        if profile.stress_level >= 4:
            warnings.append(cls.HIGH_STRESS_WARNING)
            deload = max(cls.MIN_DELOAD_WEEKS, deload - 1)

        if profile.training_age_years < 1:
            volume *= 0.8
            deload = 8
        elif profile.training_age_years >= 5:
            deload = max(cls.MIN_DELOAD_WEEKS, deload - 1)

        return RecoveryFactors(
            volume_multiplier=MathTools.clamp(volume, *cls.VOLUME_BOUNDS),
            frequency_multiplier=MathTools.clamp(frequency, *cls.FREQUENCY_BOUNDS),
            deload_frequency_weeks=deload,
            warnings=tuple(warnings),
        )
