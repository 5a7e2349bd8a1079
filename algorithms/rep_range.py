import math

from .constants import MUSCLE_FIBER_PROFILE
from .math_tools import MathTools
from .models import RepRangeConfig, UserTrainingProfile


class RepRangeCalculator:
    """Rep range, RIR and tempo for one exercise slot in a session."""

    BASE_RANGES = {
        "cut": {"compound": (4, 6), "isolation": (8, 12)},
        "bulk": {"compound": (6, 10), "isolation": (10, 15)},
        "recomp": {"compound": (5, 8), "isolation": (8, 12)},
        "maintain": {"compound": (5, 8), "isolation": (8, 12)},
    }
    RIR_CEILING = {"novice": 3, "intermediate": 3, "advanced": 2}
    RIR_RATE = {"novice": 1.5, "intermediate": 2.0, "advanced": 2.0}
    DEFAULT_TEMPO = "2-0-1-0"

    @staticmethod
    def _narrow(min_reps: int, max_reps: int, step: int) -> tuple[int, int]:
        min_reps = max(3, min_reps - step)
        return min_reps, max(min_reps + 2, max_reps - step)

    @classmethod
    def target_rir(cls, experience: str, progress: float) -> int:
        ceiling = cls.RIR_CEILING.get(experience, 2)
        rate = cls.RIR_RATE.get(experience, 2.0)
        return int(MathTools.clamp(ceiling - math.floor(progress * rate), 0, 4))

    @classmethod
    def calculate(
        cls,
        profile: UserTrainingProfile,
        muscle: str,
        is_compound: bool,
        position: int,
        week_in_mesocycle: int,
        total_weeks: int,
        model: str,
    ) -> RepRangeConfig:
        mechanic = "compound" if is_compound else "isolation"
        min_reps, max_reps = cls.BASE_RANGES.get(profile.goal, cls.BASE_RANGES["maintain"])[mechanic]

        fiber = MUSCLE_FIBER_PROFILE.get(muscle, "mixed")
        if fiber == "fast":
            min_reps, max_reps = cls._narrow(min_reps, max_reps, 1)
        elif fiber == "slow":
            min_reps += 2
            max_reps += 3

        # later slots favour higher reps
        if position > 4:
            min_reps += 2
            max_reps += 2
        elif position > 2:
            min_reps += 1
            max_reps += 1

        progress = week_in_mesocycle / total_weeks
        if model == "linear":
            if progress < 0.33:
                min_reps += 2
                max_reps += 2
            elif progress > 0.66:
                min_reps, max_reps = cls._narrow(min_reps, max_reps, 1)
        elif model == "block":
            if progress < 0.5:
                min_reps += 2
                max_reps += 3
            elif progress < 0.85:
                min_reps, max_reps = cls._narrow(min_reps, max_reps, 2)

        if profile.experience == "novice":
            min_reps = max(6, min_reps)
            max_reps = max(8, max_reps)

        rir = cls.target_rir(profile.experience, progress)

        tempo = cls.DEFAULT_TEMPO
        if profile.goal == "bulk" and progress < 0.5:
            tempo = "3-0-1-1" if is_compound else "3-1-1-0"

        low = max(1, min(20, min_reps))
        return RepRangeConfig(
            min=low,
            max=max(low + 2, min(30, max_reps)),
            target_rir=rir,
            tempo=tempo,
            notes=cls.notes(fiber, muscle, position, rir),
        )

    @staticmethod
    def notes(fiber: str, muscle: str, position: int, rir: int) -> str:
        notes = []
        if fiber == "fast":
            notes.append(f"{muscle} responds well to heavier loads")
        elif fiber == "slow":
            notes.append(f"{muscle} benefits from higher reps and time under tension")
        if position > 4:
            notes.append("Late in workout - prioritize form over load")
        if rir <= 1:
            notes.append("High intensity - push close to failure")
        return ". ".join(notes)
