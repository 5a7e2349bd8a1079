import requests
from typing import Optional


def _clean(params: dict) -> dict:
    return {k: v for k, v in params.items() if v is not None}


class ProgramClient:
    """Simple REST client for the training program API."""

    def __init__(self, base_url: str = "http://localhost:8000") -> None:
        self.base_url = base_url.rstrip("/")

    def create_user(self, name: Optional[str] = None, **params) -> int:
        if "available_equipment" in params and not isinstance(params["available_equipment"], str):
            params["available_equipment"] = "|".join(params["available_equipment"])
        resp = requests.post(f"{self.base_url}/users", params=_clean({"name": name, **params}))
        resp.raise_for_status()
        return resp.json()["id"]

    def get_user(self, user_id: int) -> dict:
        resp = requests.get(f"{self.base_url}/users/{user_id}")
        resp.raise_for_status()
        return resp.json()

    def log_body_composition(
        self, user_id: int, weight_kg: float, body_fat_percent: float, scan_date: Optional[str] = None
    ) -> int:
        resp = requests.post(
            f"{self.base_url}/users/{user_id}/body_composition",
            params=_clean({"weight_kg": weight_kg, "body_fat_percent": body_fat_percent, "scan_date": scan_date}),
        )
        resp.raise_for_status()
        return resp.json()["id"]

    def add_calibration(
        self, user_id: int, exercise: str, weight_kg: float, reps: int, rpe: Optional[float] = None
    ) -> dict:
        resp = requests.post(
            f"{self.base_url}/users/{user_id}/calibrations",
            params=_clean({"exercise": exercise, "weight_kg": weight_kg, "reps": reps, "rpe": rpe}),
        )
        resp.raise_for_status()
        return resp.json()

    def add_history(self, user_id: int, exercise: str, sets: list[dict], **params) -> dict:
        resp = requests.post(
            f"{self.base_url}/users/{user_id}/history",
            params=_clean({"exercise": exercise, **params}),
            json=sets,
        )
        resp.raise_for_status()
        return resp.json()

    def report_injury(self, user_id: int, muscle: str, note: Optional[str] = None) -> int:
        resp = requests.post(
            f"{self.base_url}/users/{user_id}/injuries", params=_clean({"muscle": muscle, "note": note})
        )
        resp.raise_for_status()
        return resp.json()["id"]

    def create_mesocycle(self, user_id: int, **params) -> dict:
        resp = requests.post(f"{self.base_url}/users/{user_id}/mesocycles", params=_clean(params))
        resp.raise_for_status()
        return resp.json()

    def todays_workout(self, user_id: int, date: Optional[str] = None) -> dict:
        resp = requests.get(f"{self.base_url}/users/{user_id}/today", params=_clean({"date": date}))
        resp.raise_for_status()
        return resp.json()

    def log_fatigue(self, mesocycle_id: int, week_number: int, **params) -> int:
        resp = requests.post(
            f"{self.base_url}/mesocycles/{mesocycle_id}/fatigue",
            params=_clean({"week_number": week_number, **params}),
        )
        resp.raise_for_status()
        return resp.json()["id"]

    def check_deload(self, mesocycle_id: int) -> dict:
        resp = requests.get(f"{self.base_url}/mesocycles/{mesocycle_id}/deload")
        resp.raise_for_status()
        return resp.json()
