import os
import sys
import unittest
from fastapi.testclient import TestClient

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from rest_api import ProgramAPI


class APITestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_program_api.db"
        self.yaml_path = "test_program_api.yaml"
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)
        self.api = ProgramAPI(db_path=self.db_path, yaml_path=self.yaml_path)
        self.client = TestClient(self.api.app)

    def tearDown(self) -> None:
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)

    def _create_user(self, **params) -> int:
        base = {
            "name": "Jordan",
            "experience": "intermediate",
            "training_age_years": 2,
            "height_cm": 180,
        }
        base.update(params)
        response = self.client.post("/users", params=base)
        self.assertEqual(response.status_code, 200)
        return response.json()["id"]

    def test_health(self) -> None:
        self.assertEqual(self.client.get("/health").json(), {"status": "ok"})

    def test_full_workflow(self) -> None:
        uid = self._create_user()
        self.assertEqual(uid, 1)

        response = self.client.get(f"/users/{uid}/onboarding")
        self.assertEqual(response.json(), {"completed": False})

        response = self.client.post(
            f"/users/{uid}/body_composition",
            params={"weight_kg": 80, "body_fat_percent": 15},
        )
        self.assertEqual(response.status_code, 200)
        response = self.client.get(f"/users/{uid}/body_composition")
        self.assertEqual(response.json()["ffmi"], 21.0)

        for exercise, weight in (
            ("Barbell Bench Press", 100),
            ("Barbell Back Squat", 140),
            ("Conventional Deadlift", 180),
        ):
            response = self.client.post(
                f"/users/{uid}/calibrations",
                params={"exercise": exercise, "weight_kg": weight, "reps": 1},
            )
            self.assertEqual(response.status_code, 200)
            self.assertEqual(response.json()["estimated_1rm_kg"], weight)
        self.assertEqual(
            self.client.get(f"/users/{uid}/onboarding").json(), {"completed": True}
        )

        response = self.client.get(
            f"/users/{uid}/weight_recommendation",
            params={"exercise": "Barbell Bench Press", "rep_min": 8, "rep_max": 10, "target_rir": 2},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["recommended_weight"], 65.0)

        response = self.client.post(
            f"/users/{uid}/mesocycles",
            params={"days_per_week": 4, "start_date": "2026-10-19"},
        )
        self.assertEqual(response.status_code, 200)
        mid = response.json()["id"]
        program = response.json()["program"]
        self.assertEqual(program["split"], "Upper/Lower")

        response = self.client.get(f"/users/{uid}/today", params={"date": "2026-10-19"})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertFalse(body["rest_day"])
        self.assertEqual(body["session"]["day"], "Upper A")
        response = self.client.get(f"/users/{uid}/today", params={"date": "2026-10-21"})
        self.assertEqual(response.json(), {"rest_day": True, "session": None})

        response = self.client.get(f"/mesocycles/{mid}")
        self.assertEqual(response.json()["current_week"], 1)
        response = self.client.get(f"/mesocycles/{mid}/exercises", params={"week": 1})
        self.assertTrue(all(row["week_number"] == 1 for row in response.json()))

        for week, fatigue in ((1, 5), (2, 4)):
            response = self.client.post(
                f"/mesocycles/{mid}/fatigue",
                params={"week_number": week, "perceived_fatigue": fatigue},
            )
            self.assertEqual(response.status_code, 200)
        response = self.client.get(f"/mesocycles/{mid}/deload")
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["should_deload"])
        self.assertEqual(response.json()["suggested_deload_type"], "volume")

        response = self.client.post(
            f"/mesocycles/{mid}/fatigue", params={"week_number": 2, "perceived_fatigue": 3}
        )
        self.assertEqual(response.status_code, 400)

        response = self.client.post(f"/mesocycles/{mid}/advance")
        self.assertEqual(response.json(), {"current_week": 2, "state": "active"})

    def test_history_endpoint(self) -> None:
        uid = self._create_user()
        response = self.client.post(
            f"/users/{uid}/history",
            params={"exercise": "Barbell Row"},
            json=[{"weight_kg": 80, "reps": 8, "rpe": 8}],
        )
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["calibration_updated"])
        calibrations = self.client.get(f"/users/{uid}/calibrations").json()
        self.assertEqual(calibrations[0]["source"], "workout")

    def test_injuries_shape_program(self) -> None:
        uid = self._create_user()
        response = self.client.post(f"/users/{uid}/injuries", params={"muscle": "chest"})
        self.assertEqual(response.status_code, 200)
        response = self.client.post(f"/users/{uid}/program/preview", params={"days_per_week": 4})
        self.assertEqual(response.status_code, 200)
        for session in response.json()["sessions"]:
            for ex in session["exercises"]:
                self.assertNotEqual(ex["exercise"]["primary_muscle"], "chest")
        iid = self.client.get(f"/users/{uid}/injuries").json()[0]["id"]
        self.assertEqual(self.client.put(f"/injuries/{iid}/resolve").status_code, 200)
        self.assertEqual(self.client.put("/injuries/99/resolve").status_code, 404)

    def test_errors(self) -> None:
        self.assertEqual(self.client.post("/users", params={"sex": "robot"}).status_code, 400)
        self.assertEqual(self.client.get("/users/99").status_code, 404)
        self.assertEqual(self.client.post("/users/99/mesocycles").status_code, 404)
        self.assertEqual(self.client.get("/users/99/today").status_code, 404)
        self.assertEqual(self.client.get("/mesocycles/5/deload").status_code, 404)
        uid = self._create_user()
        self.assertEqual(self.client.get(f"/users/{uid}/today").status_code, 404)
        self.assertEqual(
            self.client.post(f"/users/{uid}/mesocycles", params={"days_per_week": 9}).status_code,
            400,
        )
        self.assertEqual(
            self.client.post(f"/users/{uid}/injuries", params={"muscle": "neck"}).status_code, 400
        )
        self.assertEqual(self.client.get(f"/users/{uid}/body_composition").status_code, 404)

    def test_exercise_catalog(self) -> None:
        response = self.client.get(
            "/exercises", params={"muscle": "chest", "equipment": "dumbbell"}
        )
        names = [e["name"] for e in response.json()]
        self.assertEqual(names, ["Dumbbell Bench Press", "Incline Dumbbell Press"])
        response = self.client.post(
            "/exercises",
            params={
                "name": "Landmine Press",
                "primary_muscle": "shoulders",
                "pattern": "vertical_push",
                "equipment": "barbell",
            },
        )
        self.assertEqual(response.status_code, 200)
        response = self.client.post(
            "/exercises",
            params={
                "name": "Mystery Move",
                "primary_muscle": "shoulders",
                "pattern": "teleport",
                "equipment": "barbell",
            },
        )
        self.assertEqual(response.status_code, 400)

    def test_settings(self) -> None:
        response = self.client.get("/settings")
        self.assertEqual(response.json()["weight_unit"], "kg")
        response = self.client.post("/settings/weight_unit", params={"value": "lb"})
        self.assertEqual(response.status_code, 200)
        response = self.client.post("/settings/weight_unit", params={"value": "stone"})
        self.assertEqual(response.status_code, 400)


if __name__ == "__main__":
    unittest.main()
