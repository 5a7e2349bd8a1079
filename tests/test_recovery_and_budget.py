import os
import sys
import itertools
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from algorithms import FatigueBudgetCalculator, RecoveryProfileCalculator
from algorithms.constants import (
    EXERCISE_RELATIONSHIPS,
    match_lift,
    sfr_for,
    systemic_fatigue_for,
)
from algorithms.models import UserTrainingProfile


class RecoveryProfileTestCase(unittest.TestCase):
    def test_novice_defaults(self) -> None:
        factors = RecoveryProfileCalculator.calculate(
            UserTrainingProfile(training_age_years=0.5)
        )
        self.assertAlmostEqual(factors.volume_multiplier, 0.8)
        self.assertEqual(factors.frequency_multiplier, 1.0)
        self.assertEqual(factors.deload_frequency_weeks, 8)
        self.assertEqual(factors.warnings, ())

    def test_older_lifter(self) -> None:
        factors = RecoveryProfileCalculator.calculate(
            UserTrainingProfile(age=60, experience="intermediate", training_age_years=2)
        )
        self.assertAlmostEqual(factors.volume_multiplier, 0.75)
        self.assertAlmostEqual(factors.frequency_multiplier, 0.9)
        self.assertEqual(factors.deload_frequency_weeks, 3)
        self.assertIn(RecoveryProfileCalculator.RECOVERY_PRIORITY_WARNING, factors.warnings)

    def test_poor_sleep_and_stress_shorten_deload(self) -> None:
        factors = RecoveryProfileCalculator.calculate(
            UserTrainingProfile(age=30, sleep_quality=2, stress_level=4, training_age_years=2)
        )
        self.assertEqual(factors.deload_frequency_weeks, 3)
        self.assertIn(RecoveryProfileCalculator.POOR_SLEEP_WARNING, factors.warnings)
        self.assertIn(RecoveryProfileCalculator.HIGH_STRESS_WARNING, factors.warnings)

    def test_multipliers_stay_clamped(self) -> None:
        for age, sleep, stress, years in itertools.product(
            (18, 30, 40, 50, 70), range(1, 6), range(1, 6), (0.0, 2.0, 8.0)
        ):
            factors = RecoveryProfileCalculator.calculate(
                UserTrainingProfile(
                    age=age, sleep_quality=sleep, stress_level=stress, training_age_years=years
                )
            )
            self.assertGreaterEqual(factors.volume_multiplier, 0.5)
            self.assertLessEqual(factors.volume_multiplier, 1.3)
            self.assertGreaterEqual(factors.frequency_multiplier, 0.7)
            self.assertLessEqual(factors.frequency_multiplier, 1.2)
            self.assertGreaterEqual(factors.deload_frequency_weeks, 3)


class FatigueBudgetTestCase(unittest.TestCase):
    def test_novice_budget(self) -> None:
        budget = FatigueBudgetCalculator.calculate(UserTrainingProfile())
        self.assertEqual(budget.systemic_limit, 73)
        self.assertEqual(budget.local_limit, 64)
        self.assertEqual(budget.min_sfr_threshold, 0.8)
        self.assertEqual(budget.warning_threshold, 0.8)

    def test_age_brackets_checked_oldest_first(self) -> None:
        older = FatigueBudgetCalculator.calculate(
            UserTrainingProfile(age=60, experience="intermediate")
        )
        middle = FatigueBudgetCalculator.calculate(
            UserTrainingProfile(age=50, experience="intermediate")
        )
        self.assertEqual(older.systemic_limit, 68)
        self.assertEqual(older.local_limit, 64)
        self.assertEqual(middle.systemic_limit, 82)
        self.assertEqual(middle.local_limit, 72)

    def test_cut_reduces_budget(self) -> None:
        bulk = FatigueBudgetCalculator.calculate(UserTrainingProfile(experience="advanced"))
        cut = FatigueBudgetCalculator.calculate(
            UserTrainingProfile(experience="advanced", goal="cut")
        )
        self.assertLess(cut.systemic_limit, bulk.systemic_limit)
        self.assertLess(cut.local_limit, bulk.local_limit)
        self.assertEqual(bulk.min_sfr_threshold, 0.5)

    def test_recovery_multiplier(self) -> None:
        self.assertAlmostEqual(FatigueBudgetCalculator.recovery_multiplier(5, 1), 1.0)
        self.assertAlmostEqual(FatigueBudgetCalculator.recovery_multiplier(3, 3), 0.45)


class ExerciseCostTableTestCase(unittest.TestCase):
    def test_systemic_fatigue(self) -> None:
        self.assertAlmostEqual(systemic_fatigue_for("hip_hinge", "barbell"), 39.0)
        self.assertAlmostEqual(systemic_fatigue_for("squat", "barbell"), 32.5)
        self.assertAlmostEqual(systemic_fatigue_for("squat", "machine"), 15.0)
        self.assertAlmostEqual(systemic_fatigue_for("isolation", "cable"), 2.4)
        self.assertAlmostEqual(systemic_fatigue_for("rotation", "bands"), 5.0)

    def test_sfr(self) -> None:
        self.assertEqual(sfr_for("hip_hinge", "barbell"), 0.5)
        self.assertEqual(sfr_for("horizontal_push", "machine"), 1.3)
        self.assertEqual(sfr_for("horizontal_push", "dumbbell"), 0.9)
        self.assertEqual(sfr_for("isolation", "cable"), 1.5)
        self.assertEqual(sfr_for("rotation", "cable"), 1.0)

    def test_lift_relationships(self) -> None:
        row = EXERCISE_RELATIONSHIPS["Barbell Row"]
        self.assertEqual((row.parent, row.ratio), ("Conventional Deadlift", 0.55))
        self.assertEqual(EXERCISE_RELATIONSHIPS["Leg Press"].ratio, 1.8)
        for name, relationship in EXERCISE_RELATIONSHIPS.items():
            with self.subTest(name=name):
                self.assertGreater(relationship.ratio, 0)
                self.assertNotIn(name, dict(relationship.related))

    def test_match_lift(self) -> None:
        self.assertEqual(match_lift("Paused Front Squat"), "Barbell Back Squat")
        self.assertEqual(match_lift("Stiff Leg RDL"), "Romanian Deadlift")
        self.assertIsNone(match_lift("Plank"))


if __name__ == "__main__":
    unittest.main()
