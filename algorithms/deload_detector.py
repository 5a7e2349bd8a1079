from typing import Sequence

from .models import DeloadTriggers, WeeklyFatigueLog


class DeloadDetector:
    """Decide whether logged fatigue warrants a recovery week."""

    FATIGUE_REASON = "Perceived fatigue elevated for 2+ weeks"
    REGRESSION_REASON = "Strength regression or significant missed reps"
    SLEEP_REASON = "Poor sleep for 2+ weeks"
    MOTIVATION_REASON = "Declining motivation - possible overreaching"
    JOINT_PAIN_REASON = "Joint pain reported"
    MISSED_REPS_LIMIT: int = 5

    @classmethod
    def evaluate(cls, logs: Sequence[WeeklyFatigueLog], experience: str) -> DeloadTriggers:
        """``logs`` are ordered most recent first."""
        if len(logs) < 2:
            return DeloadTriggers(should_deload=False, reasons=(), suggested_deload_type="volume")
        last, previous = logs[0], logs[1]

        reasons: list[str] = []
        deload_type = "volume"

        if (last.perceived_fatigue or 0) >= 4 and (previous.perceived_fatigue or 0) >= 3:
            reasons.append(cls.FATIGUE_REASON)
        if last.strength_decline or last.missed_reps > cls.MISSED_REPS_LIMIT:
            reasons.append(cls.REGRESSION_REASON)
            deload_type = "intensity"
        if (last.sleep_quality or 3) <= 2 and (previous.sleep_quality or 3) <= 2:
            reasons.append(cls.SLEEP_REASON)
            deload_type = "full"
        if (last.motivation_level or 3) <= 2 and (previous.motivation_level or 3) <= 3:
            reasons.append(cls.MOTIVATION_REASON)
        if last.joint_pain:
            reasons.append(cls.JOINT_PAIN_REASON)
            deload_type = "intensity"

        should_deload = bool(reasons)
        # novices need two independent signals
        if experience == "novice" and len(reasons) < 2:
            should_deload = False

        return DeloadTriggers(
            should_deload=should_deload,
            reasons=tuple(reasons),
            suggested_deload_type=deload_type,
        )
