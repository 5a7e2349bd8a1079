import os
import sys
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from algorithms import DeloadDetector
from algorithms.models import WeeklyFatigueLog


def log(week: int, **fields) -> WeeklyFatigueLog:
    return WeeklyFatigueLog(mesocycle_id=1, week_number=week, **fields)


class DeloadDetectorTestCase(unittest.TestCase):
    def test_single_log_never_fires(self) -> None:
        triggers = DeloadDetector.evaluate(
            [log(1, perceived_fatigue=5, joint_pain=True, strength_decline=True)], "advanced"
        )
        self.assertFalse(triggers.should_deload)
        self.assertEqual(triggers.reasons, ())
        self.assertFalse(DeloadDetector.evaluate([], "advanced").should_deload)

    def test_elevated_fatigue_two_weeks(self) -> None:
        triggers = DeloadDetector.evaluate(
            [log(2, perceived_fatigue=4), log(1, perceived_fatigue=5)], "intermediate"
        )
        self.assertTrue(triggers.should_deload)
        self.assertIn("Perceived fatigue elevated for 2+ weeks", triggers.reasons)
        self.assertEqual(triggers.suggested_deload_type, "volume")

    def test_fatigue_below_threshold(self) -> None:
        triggers = DeloadDetector.evaluate(
            [log(2, perceived_fatigue=4), log(1, perceived_fatigue=2)], "intermediate"
        )
        self.assertFalse(triggers.should_deload)

    def test_regression_overrides_type(self) -> None:
        triggers = DeloadDetector.evaluate(
            [log(3, perceived_fatigue=4, strength_decline=True), log(2, perceived_fatigue=3)],
            "advanced",
        )
        self.assertTrue(triggers.should_deload)
        self.assertEqual(triggers.suggested_deload_type, "intensity")
        self.assertEqual(len(triggers.reasons), 2)

    def test_missed_reps(self) -> None:
        triggers = DeloadDetector.evaluate([log(2, missed_reps=6), log(1)], "advanced")
        self.assertEqual(triggers.reasons, (DeloadDetector.REGRESSION_REASON,))
        triggers = DeloadDetector.evaluate([log(2, missed_reps=5), log(1)], "advanced")
        self.assertFalse(triggers.should_deload)

    def test_poor_sleep_then_joint_pain(self) -> None:
        triggers = DeloadDetector.evaluate(
            [log(2, sleep_quality=2), log(1, sleep_quality=1)], "intermediate"
        )
        self.assertEqual(triggers.suggested_deload_type, "full")
        triggers = DeloadDetector.evaluate(
            [log(2, sleep_quality=2, joint_pain=True), log(1, sleep_quality=1)], "intermediate"
        )
        self.assertEqual(triggers.suggested_deload_type, "intensity")
        self.assertIn(DeloadDetector.JOINT_PAIN_REASON, triggers.reasons)

    def test_motivation(self) -> None:
        triggers = DeloadDetector.evaluate(
            [log(2, motivation_level=2), log(1, motivation_level=3)], "intermediate"
        )
        self.assertEqual(triggers.reasons, (DeloadDetector.MOTIVATION_REASON,))

    def test_novice_needs_two_signals(self) -> None:
        logs = [log(2, perceived_fatigue=4), log(1, perceived_fatigue=5)]
        triggers = DeloadDetector.evaluate(logs, "novice")
        self.assertFalse(triggers.should_deload)
        self.assertEqual(len(triggers.reasons), 1)
        logs = [log(2, perceived_fatigue=5, joint_pain=True), log(1, perceived_fatigue=4)]
        self.assertTrue(DeloadDetector.evaluate(logs, "novice").should_deload)


if __name__ == "__main__":
    unittest.main()
