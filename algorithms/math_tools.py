import math
import datetime
from typing import Iterable
import numpy as np


class MathTools:
    """Provides essential mathematical utilities for strength calculations."""

    REP_CEILING: int = 12
    HIGH_REP_DIVISOR: float = 40.0
    SAFETY_MARGIN: float = 0.95
    PLATE_STEP: float = 2.5
    PLATE_THRESHOLD: float = 20.0
    FFMI_HEIGHT_REF: float = 1.8
    FFMI_HEIGHT_COEFF: float = 6.1
    FFMI_BRACKETS: tuple[tuple[float, str], ...] = (
        (18.0, "below_average"),
        (20.0, "average"),
        (22.0, "above_average"),
        (24.0, "excellent"),
    )

    @staticmethod
    def clamp(value: float, min_value: float, max_value: float) -> float:
        """Clamp ``value`` to the inclusive range [min_value, max_value]."""
        if min_value > max_value:
            raise ValueError("min_value must not exceed max_value")
        return max(min_value, min(value, max_value))

    @staticmethod
    def round_half_up(value: float, digits: int = 0) -> float:
        """Round with halves going up instead of to the nearest even digit."""
        factor = 10**digits
        return math.floor(value * factor + 0.5) / factor

    @classmethod
    def estimate_1rm(cls, weight: float, reps: int, rpe: float | None = None) -> float:
        """Return the estimated one-rep max averaged over Brzycki, Epley and Lombardi."""
        if reps < 1:
            raise ValueError("reps must be at least 1")
        if reps == 1:
            return weight
        if reps > cls.REP_CEILING:
            return weight * (1 + reps / cls.HIGH_REP_DIVISOR)
        effective = reps + (10 - rpe) if rpe is not None else reps
        brzycki = weight * 36 / (37 - effective)
        epley = weight * (1 + effective / 30)
        lombardi = weight * effective**0.10
        return cls.round_half_up(float(np.mean([brzycki, epley, lombardi])), 1)

    @classmethod
    def working_weight(cls, estimated_1rm: float, target_reps: int, target_rir: int) -> float:
        """Load for ``target_reps`` leaving ``target_rir`` in reserve."""
        effective = target_reps + target_rir
        percentage = (37 - effective) / 36
        return cls.round_half_up(estimated_1rm * percentage * cls.SAFETY_MARGIN, 1)

    @classmethod
    def round_to_plate(cls, weight: float) -> float:
        if weight < cls.PLATE_THRESHOLD:
            return float(math.floor(weight + 0.5))
        return math.floor(weight / cls.PLATE_STEP + 0.5) * cls.PLATE_STEP

    @classmethod
    def body_composition(
        cls, weight_kg: float, body_fat_percentage: float, height_cm: float
    ) -> tuple[float, float]:
        """Return ``(lean_mass_kg, ffmi)`` for the given measurements."""
        if height_cm <= 0:
            raise ValueError("height must be positive")
        lean = weight_kg * (1 - body_fat_percentage / 100)
        height_m = height_cm / 100
        ffmi = lean / (height_m**2) + cls.FFMI_HEIGHT_COEFF * (cls.FFMI_HEIGHT_REF - height_m)
        return lean, cls.round_half_up(ffmi, 1)

    @classmethod
    def ffmi_bracket(cls, ffmi: float) -> str:
        for upper, name in cls.FFMI_BRACKETS:
            if ffmi < upper:
                return name
        return "elite"

    @staticmethod
    def conservative_estimate(values: Iterable[float], fraction: float = 0.1) -> float:
        """Pick the value at ``floor(n * fraction)`` of the descending sort."""
        arr = np.sort(np.asarray(list(values), dtype=float))[::-1]
        if arr.size == 0:
            raise ValueError("values must not be empty")
        return float(arr[int(math.floor(arr.size * fraction))])

    @staticmethod
    def calculate_age(birth_date: str | None, today: datetime.date | None = None) -> int:
        """Age in whole years, 30 when no birth date is known."""
        if not birth_date:
            return 30
        born = datetime.date.fromisoformat(birth_date[:10])
        today = today or datetime.date.today()
        age = today.year - born.year
        if (today.month, today.day) < (born.month, born.day):
            age -= 1
        return age
