from __future__ import annotations

from .math_tools import MathTools
from .models import MUSCLE_GROUPS, RecoveryFactors, UserTrainingProfile, VolumePerMuscle


class VolumeAllocator:
    """Weekly set targets per muscle between MEV and MRV."""

    LANDMARKS = {
        "novice": (6, 12),
        "intermediate": (10, 18),
        "advanced": (12, 25),
    }
    GOAL_FRACTION = {"cut": 0.3, "bulk": 0.7}
    DEFAULT_FRACTION: float = 0.5
    SMALL_MUSCLES = frozenset({"biceps", "triceps", "calves", "abs"})
    SMALL_MUSCLE_FACTOR: float = 0.7
    MIN_SETS: int = 4
    MIN_TIME_LIMITED_SETS: int = 2

    @staticmethod
    def recommend_split(days_per_week: int, session_minutes: int, experience: str) -> str:
        if days_per_week <= 3:
            return "Full Body"
        if days_per_week == 4:
            return "Upper/Lower"
        if days_per_week == 5:
            if experience == "novice" or session_minutes < 45:
                return "Upper/Lower"
            return "Arnold"
        return "PPL"

    @classmethod
    def target_volume(
        cls, experience: str, goal: str, volume_multiplier: float
    ) -> int:
        """Interpolated weekly sets, held inside the tier's MEV/MRV."""
        mev, mrv = cls.LANDMARKS.get(experience, cls.LANDMARKS["novice"])
        fraction = cls.GOAL_FRACTION.get(goal, cls.DEFAULT_FRACTION)
        raw = (mev + (mrv - mev) * fraction) * volume_multiplier
        return int(MathTools.clamp(MathTools.round_half_up(raw), mev, mrv))

    @classmethod
    def _scale_small(cls, sets: int) -> int:
        return max(cls.MIN_SETS, int(MathTools.round_half_up(sets * cls.SMALL_MUSCLE_FACTOR)))

    @classmethod
    def allocate(
        cls,
        days_per_week: int,
        split: str,
        recovery: RecoveryFactors,
        profile: UserTrainingProfile,
        frequencies: dict[str, int] | None = None,
        time_factor: float = 1.0,
    ) -> dict[str, VolumePerMuscle]:
        """Weekly sets per muscle.

        ``frequencies`` counts the sessions per week that train each muscle;
        without it every muscle gets the split's default. A ``time_factor``
        below 1 shrinks the sets for short sessions, floor 2, and may take a
        muscle under its MEV.
        """
        mev, mrv = cls.LANDMARKS.get(profile.experience, cls.LANDMARKS["novice"])
        target = cls.target_volume(profile.experience, profile.goal, recovery.volume_multiplier)
        default_frequency = min(days_per_week, 3) if split == "Full Body" else 2

        result: dict[str, VolumePerMuscle] = {}
        for muscle in MUSCLE_GROUPS:
            frequency = default_frequency
            if frequencies is not None:
                frequency = max(1, frequencies.get(muscle, default_frequency))
            if muscle in cls.SMALL_MUSCLES:
                sets, low, high = cls._scale_small(target), cls._scale_small(mev), cls._scale_small(mrv)
            else:
                sets, low, high = max(cls.MIN_SETS, target), mev, mrv
            if time_factor < 1.0:
                sets = max(cls.MIN_TIME_LIMITED_SETS, int(MathTools.round_half_up(sets * time_factor)))
            result[muscle] = VolumePerMuscle(sets=sets, frequency=frequency, mev=low, mrv=high)
        return result
