import os
import sys
import unittest
from unittest.mock import patch
from fastapi.testclient import TestClient

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from client import ProgramClient
from rest_api import ProgramAPI


class ClientTest(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_client.db"
        self.yaml_path = "test_client.yaml"
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)
        self.api = ProgramAPI(db_path=self.db_path, yaml_path=self.yaml_path)
        self.patcher = patch("client.requests", TestClient(self.api.app))
        self.patcher.start()
        self.client = ProgramClient(base_url="http://testserver/")

    def tearDown(self) -> None:
        self.patcher.stop()
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)

    def test_program_round(self) -> None:
        uid = self.client.create_user(
            "Sam",
            experience="intermediate",
            training_age_years=3,
            available_equipment=["barbell", "dumbbell", "bodyweight"],
        )
        user = self.client.get_user(uid)
        self.assertEqual(user["name"], "Sam")
        self.assertEqual(user["available_equipment"], ["barbell", "dumbbell", "bodyweight"])

        self.client.log_body_composition(uid, 85.0, 18.0)
        cal = self.client.add_calibration(uid, "Barbell Back Squat", 140.0, 1)
        self.assertEqual(cal["estimated_1rm_kg"], 140.0)
        result = self.client.add_history(uid, "Barbell Row", [{"weight_kg": 80, "reps": 8}])
        self.assertTrue(result["calibration_updated"])
        self.client.report_injury(uid, "biceps", note="tendon")

        created = self.client.create_mesocycle(uid, days_per_week=4, start_date="2026-10-19")
        mid = created["id"]
        equipment = {"barbell", "dumbbell", "bodyweight"}
        for session in created["program"]["sessions"]:
            for ex in session["exercises"]:
                self.assertNotEqual(ex["exercise"]["primary_muscle"], "biceps")
                self.assertIn(ex["exercise"]["equipment"], equipment)

        today = self.client.todays_workout(uid, "2026-10-19")
        self.assertFalse(today["rest_day"])

        self.client.log_fatigue(mid, 1, perceived_fatigue=2, joint_pain=True)
        self.client.log_fatigue(mid, 2, perceived_fatigue=2, joint_pain=True)
        triggers = self.client.check_deload(mid)
        self.assertTrue(triggers["should_deload"])
        self.assertEqual(triggers["suggested_deload_type"], "intensity")

    def test_errors_raise(self) -> None:
        with self.assertRaises(Exception):
            self.client.get_user(5)


if __name__ == "__main__":
    unittest.main()
