import os
import sys
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from algorithms import WeightRecommendationResolver
from algorithms.models import (
    BodyComposition,
    ExerciseHistoryRecord,
    HistorySet,
    RepTarget,
    StrengthCalibrationRecord,
    TrainingSnapshot,
    UserTrainingProfile,
)
from algorithms.weight_recommendation import (
    Calibrated,
    FromHistory,
    FromRelatedLift,
    FromStandards,
    NeedsCalibration,
)


def calibration(name: str, e1rm: float) -> StrengthCalibrationRecord:
    return StrengthCalibrationRecord(
        exercise_name=name,
        tested_weight_kg=e1rm,
        tested_reps=1,
        estimated_1rm_kg=e1rm,
        tested_at="2026-10-01T10:00:00",
    )


def session(name: str, day: int, weight: float, reps: int, completed: bool = True):
    return ExerciseHistoryRecord(
        exercise_name=name,
        performed_at=f"2026-10-{day:02d}T10:00:00",
        sets=(HistorySet(weight_kg=weight, reps=reps, completed=completed),),
    )


class WeightRecommendationTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.profile = UserTrainingProfile(experience="intermediate", training_age_years=2)
        self.body = BodyComposition.from_measurements(80.0, 15.0, 180.0)
        self.targets = RepTarget(min=8, max=10)

    def test_calibrated_bench_scenario(self) -> None:
        snapshot = TrainingSnapshot.from_records(
            profile=self.profile, calibrations=[calibration("Barbell Bench Press", 100.0)]
        )
        tier = WeightRecommendationResolver.resolve_tier(snapshot, "Barbell Bench Press")
        self.assertIsInstance(tier, Calibrated)
        rec = WeightRecommendationResolver.recommend(
            snapshot, "Barbell Bench Press", self.targets, 2
        )
        self.assertEqual(rec.recommended_weight, 65.0)
        self.assertEqual(rec.confidence, "high")
        self.assertEqual(rec.source, "calibration")
        self.assertIsNone(rec.finding_weight_protocol)
        self.assertEqual(len(rec.warmup_protocol), 3)

    def test_newest_calibration_wins(self) -> None:
        old = calibration("Barbell Bench Press", 80.0).model_copy(
            update={"tested_at": "2025-01-01T10:00:00"}
        )
        snapshot = TrainingSnapshot.from_records(
            calibrations=[old, calibration("Barbell Bench Press", 100.0)]
        )
        self.assertEqual(snapshot.calibrations["Barbell Bench Press"].estimated_1rm_kg, 100.0)

    def test_history_tier(self) -> None:
        history = [session("Dumbbell Row", d, 30.0, 10) for d in (1, 5, 9)]
        snapshot = TrainingSnapshot.from_records(profile=self.profile, history=history)
        tier = WeightRecommendationResolver.resolve_tier(snapshot, "Dumbbell Row")
        self.assertIsInstance(tier, FromHistory)
        self.assertEqual(tier.sessions, 3)
        rec = WeightRecommendationResolver.recommend(snapshot, "Dumbbell Row", self.targets, 2)
        self.assertEqual(rec.source, "history")
        self.assertEqual(rec.confidence, "high")

        snapshot = TrainingSnapshot.from_records(profile=self.profile, history=history[:1])
        rec = WeightRecommendationResolver.recommend(snapshot, "Dumbbell Row", self.targets, 2)
        self.assertEqual(rec.confidence, "medium")

    def test_unusable_history_falls_through(self) -> None:
        snapshot = TrainingSnapshot.from_records(
            profile=self.profile,
            calibrations=[calibration("Barbell Bench Press", 100.0)],
            history=[session("Dumbbell Bench Press", 3, 30.0, 8, completed=False)],
        )
        tier = WeightRecommendationResolver.resolve_tier(snapshot, "Dumbbell Bench Press")
        self.assertIsInstance(tier, FromRelatedLift)
        self.assertAlmostEqual(tier.estimated_1rm, 80.0)

    def test_related_lift(self) -> None:
        snapshot = TrainingSnapshot.from_records(
            profile=self.profile, calibrations=[calibration("Barbell Bench Press", 100.0)]
        )
        rec = WeightRecommendationResolver.recommend(
            snapshot, "Incline Dumbbell Press", self.targets, 2
        )
        self.assertEqual(rec.source, "related_lift")
        self.assertEqual(rec.confidence, "low")
        self.assertEqual(rec.finding_weight_protocol.max_attempts, 4)
        self.assertEqual(rec.finding_weight_protocol.increment_kg, 2.0)
        self.assertLess(rec.recommended_weight, 40.0)

    def test_standards_are_conservative(self) -> None:
        standards_only = TrainingSnapshot.from_records(
            profile=self.profile, body_composition=self.body
        )
        tier = WeightRecommendationResolver.resolve_tier(standards_only, "Barbell Bench Press")
        self.assertIsInstance(tier, FromStandards)
        self.assertEqual(tier.ffmi_bracket, "above_average")
        self.assertAlmostEqual(tier.estimated_1rm, 88.0)

        estimated = WeightRecommendationResolver.recommend(
            standards_only, "Barbell Bench Press", self.targets, 2
        )
        calibrated = WeightRecommendationResolver.recommend(
            TrainingSnapshot.from_records(
                profile=self.profile,
                calibrations=[calibration("Barbell Bench Press", tier.estimated_1rm)],
            ),
            "Barbell Bench Press",
            self.targets,
            2,
        )
        self.assertEqual(estimated.confidence, "low")
        self.assertEqual(estimated.source, "standards")
        self.assertLess(estimated.weight_range.high, calibrated.recommended_weight)
        self.assertLess(estimated.recommended_weight, calibrated.recommended_weight)

    def test_standards_through_parent_lift(self) -> None:
        snapshot = TrainingSnapshot.from_records(profile=self.profile, body_composition=self.body)
        tier = WeightRecommendationResolver.resolve_tier(snapshot, "Romanian Deadlift")
        self.assertIsInstance(tier, FromStandards)
        self.assertAlmostEqual(tier.estimated_1rm, 91.0)

    def test_standards_by_name_and_parent_chain(self) -> None:
        snapshot = TrainingSnapshot.from_records(profile=self.profile, body_composition=self.body)
        front = WeightRecommendationResolver.resolve_tier(snapshot, "Front Squat")
        self.assertAlmostEqual(front.estimated_1rm, 112.0)
        curl = WeightRecommendationResolver.resolve_tier(snapshot, "Lying Leg Curl")
        self.assertAlmostEqual(curl.estimated_1rm, 36.4)
        self.assertIsInstance(
            WeightRecommendationResolver.resolve_tier(snapshot, "Lat Pulldown"), NeedsCalibration
        )

    def test_related_lift_uses_conservative_parent_estimate(self) -> None:
        history = [session("Barbell Bench Press", d, 101.0 - d, 1) for d in range(1, 11)]
        snapshot = TrainingSnapshot.from_records(profile=self.profile, history=history)
        tier = WeightRecommendationResolver.resolve_tier(snapshot, "Dumbbell Bench Press")
        self.assertIsInstance(tier, FromRelatedLift)
        self.assertEqual(tier.parent, "Barbell Bench Press")
        self.assertAlmostEqual(tier.estimated_1rm, 99.0 * 0.8)

    def test_related_lift_from_sibling_history(self) -> None:
        snapshot = TrainingSnapshot.from_records(
            profile=self.profile, history=[session("Dumbbell Bench Press", 4, 80.0, 1)]
        )
        tier = WeightRecommendationResolver.resolve_tier(snapshot, "Barbell Bench Press")
        self.assertIsInstance(tier, FromRelatedLift)
        self.assertEqual(tier.parent, "Dumbbell Bench Press")
        self.assertAlmostEqual(tier.ratio, 1.25)
        self.assertAlmostEqual(tier.estimated_1rm, 100.0)

    def test_increment_for(self) -> None:
        self.assertEqual(WeightRecommendationResolver.increment_for("Leg Extension"), 1.0)
        self.assertEqual(WeightRecommendationResolver.increment_for("Standing Calf Raise"), 1.0)
        self.assertEqual(WeightRecommendationResolver.increment_for("Cable Fly"), 1.0)
        self.assertEqual(WeightRecommendationResolver.increment_for("Dumbbell Bench Press"), 2.0)
        self.assertEqual(WeightRecommendationResolver.increment_for("Cable Row"), 2.5)
        self.assertEqual(WeightRecommendationResolver.increment_for("Barbell Back Squat"), 2.5)

    def test_finding_protocol(self) -> None:
        snapshot = TrainingSnapshot.from_records(profile=self.profile)
        self.assertIsInstance(
            WeightRecommendationResolver.resolve_tier(snapshot, "Cable Fly"), NeedsCalibration
        )
        rec = WeightRecommendationResolver.recommend(snapshot, "Cable Fly", self.targets, 2)
        self.assertEqual(rec.recommended_weight, 0.0)
        self.assertEqual(rec.confidence, "find_working_weight")
        protocol = rec.finding_weight_protocol
        self.assertEqual(protocol.starting_weight, 20.0)
        self.assertEqual(protocol.increment_kg, 1.0)
        self.assertEqual(protocol.target_rpe, 8)
        self.assertEqual(protocol.max_attempts, 5)
        self.assertTrue(protocol.instructions.startswith("Start with 20kg for 10 reps."))

    def test_finding_start_scales_with_bodyweight(self) -> None:
        snapshot = TrainingSnapshot.from_records(
            profile=self.profile,
            body_composition=BodyComposition.from_measurements(80.0, 15.0, 180.0),
        )
        rec = WeightRecommendationResolver.recommend(snapshot, "Plank", self.targets, 2)
        self.assertEqual(rec.finding_weight_protocol.starting_weight, 16.0)

    def test_warmup_sets(self) -> None:
        self.assertEqual(len(WeightRecommendationResolver.warmup_sets(15, "Lateral Raise")), 1)
        heavy = WeightRecommendationResolver.warmup_sets(120, "Barbell Back Squat")
        self.assertEqual([w.percent_of_working for w in heavy], [40, 60, 80, 90])
        light = WeightRecommendationResolver.warmup_sets(120, "Leg Press")
        self.assertEqual(len(light), 3)


if __name__ == "__main__":
    unittest.main()
