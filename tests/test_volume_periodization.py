import os
import sys
import itertools
import unittest

import numpy as np

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from algorithms import PeriodizationPlanner, RecoveryProfileCalculator, VolumeAllocator
from algorithms.models import MUSCLE_GROUPS, RecoveryFactors, UserTrainingProfile


class VolumeAllocatorTestCase(unittest.TestCase):
    def test_recommend_split(self) -> None:
        self.assertEqual(VolumeAllocator.recommend_split(2, 60, "novice"), "Full Body")
        self.assertEqual(VolumeAllocator.recommend_split(3, 60, "advanced"), "Full Body")
        self.assertEqual(VolumeAllocator.recommend_split(4, 60, "novice"), "Upper/Lower")
        self.assertEqual(VolumeAllocator.recommend_split(5, 60, "novice"), "Upper/Lower")
        self.assertEqual(VolumeAllocator.recommend_split(5, 40, "advanced"), "Upper/Lower")
        self.assertEqual(VolumeAllocator.recommend_split(5, 60, "intermediate"), "Arnold")
        self.assertEqual(VolumeAllocator.recommend_split(6, 60, "intermediate"), "PPL")

    def test_target_volume_within_landmarks(self) -> None:
        for experience, goal in itertools.product(
            VolumeAllocator.LANDMARKS, ("cut", "bulk", "recomp", "maintain")
        ):
            mev, mrv = VolumeAllocator.LANDMARKS[experience]
            for multiplier in np.linspace(0.5, 1.3, 17):
                target = VolumeAllocator.target_volume(experience, goal, float(multiplier))
                self.assertGreaterEqual(target, mev)
                self.assertLessEqual(target, mrv)

    def test_allocate_novice(self) -> None:
        profile = UserTrainingProfile(training_age_years=0.5)
        recovery = RecoveryProfileCalculator.calculate(profile)
        volume = VolumeAllocator.allocate(4, "Upper/Lower", recovery, profile)
        self.assertEqual(set(volume), set(MUSCLE_GROUPS))
        self.assertEqual(volume["chest"].sets, 8)
        self.assertEqual(volume["chest"].frequency, 2)
        self.assertEqual((volume["chest"].mev, volume["chest"].mrv), (6, 12))
        self.assertEqual(volume["biceps"].sets, 6)
        self.assertEqual((volume["biceps"].mev, volume["biceps"].mrv), (4, 8))

    def test_full_body_frequency(self) -> None:
        profile = UserTrainingProfile(experience="intermediate", training_age_years=2)
        recovery = RecoveryFactors(
            volume_multiplier=1.0, frequency_multiplier=1.0, deload_frequency_weeks=5
        )
        volume = VolumeAllocator.allocate(3, "Full Body", recovery, profile)
        self.assertEqual(volume["quads"].frequency, 3)
        self.assertEqual(volume["quads"].sets, 16)
        for entry in volume.values():
            self.assertGreaterEqual(entry.sets, entry.mev)
            self.assertLessEqual(entry.sets, entry.mrv)


class PeriodizationTestCase(unittest.TestCase):
    def test_select_model(self) -> None:
        self.assertEqual(PeriodizationPlanner.select_model(UserTrainingProfile()), "linear")
        self.assertEqual(
            PeriodizationPlanner.select_model(
                UserTrainingProfile(experience="advanced", training_age_years=0.5)
            ),
            "linear",
        )
        self.assertEqual(
            PeriodizationPlanner.select_model(
                UserTrainingProfile(experience="intermediate", training_age_years=2)
            ),
            "daily_undulating",
        )
        self.assertEqual(
            PeriodizationPlanner.select_model(
                UserTrainingProfile(experience="intermediate", goal="cut", training_age_years=2)
            ),
            "weekly_undulating",
        )
        self.assertEqual(
            PeriodizationPlanner.select_model(
                UserTrainingProfile(experience="advanced", training_age_years=6)
            ),
            "block",
        )

    def test_novice_scenario(self) -> None:
        profile = UserTrainingProfile(
            experience="novice", goal="bulk", sleep_quality=3, stress_level=3, training_age_years=0.5
        )
        recovery = RecoveryProfileCalculator.calculate(profile)
        plan = PeriodizationPlanner.build_plan(profile, recovery)
        self.assertTrue(6 <= recovery.deload_frequency_weeks <= 8)
        self.assertTrue(7 <= plan.mesocycle_weeks <= 9)
        self.assertEqual(plan.model, "linear")
        self.assertEqual(plan.deload_strategy, "reactive")

    def test_every_plan_ends_with_one_deload(self) -> None:
        for model in ("linear", "daily_undulating", "weekly_undulating", "block"):
            for training_weeks in range(3, 9):
                weeks = PeriodizationPlanner.weekly_progression(model, training_weeks)
                self.assertEqual(len(weeks), training_weeks + 1)
                deloads = [
                    w for w in weeks if w.volume_modifier == 0.5 and w.intensity_modifier == 0.6
                ]
                self.assertEqual(len(deloads), 1)
                self.assertIs(deloads[0], weeks[-1])
                self.assertEqual([w.week for w in weeks], list(range(1, training_weeks + 2)))

    def test_block_phases(self) -> None:
        weeks = PeriodizationPlanner.weekly_progression("block", 8)
        focuses = [w.focus for w in weeks]
        self.assertTrue(focuses[0].startswith("Hypertrophy block"))
        self.assertTrue(focuses[4].startswith("Strength block"))
        self.assertTrue(focuses[7].startswith("Peaking block"))
        self.assertEqual(focuses[8], PeriodizationPlanner.DELOAD_FOCUS)

    def test_intensity_ramps_inside_heavy_weeks(self) -> None:
        block = PeriodizationPlanner.weekly_progression("block", 8)
        self.assertAlmostEqual(block[4].intensity_modifier, 0.85 + 0.1 / 3)
        self.assertAlmostEqual(block[6].intensity_modifier, 0.95)
        self.assertAlmostEqual(block[7].intensity_modifier, 1.0)

        weekly = PeriodizationPlanner.weekly_progression("weekly_undulating", 6)
        self.assertAlmostEqual(weekly[1].intensity_modifier, 0.95 + 2 / 6 * 0.05)
        self.assertAlmostEqual(weekly[5].intensity_modifier, 1.0)
        even = [w.intensity_modifier for w in weekly[1:6:2]]
        self.assertEqual(even, sorted(even))
        self.assertLess(even[0], even[-1])


if __name__ == "__main__":
    unittest.main()
