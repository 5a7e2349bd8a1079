from typing import Literal, Optional

from pydantic import BaseModel, Field, ValidationError


class SettingsSchema(BaseModel):
    default_days_per_week: int = Field(4, ge=2, le=6)
    default_session_minutes: int = Field(60, gt=0)
    history_window_days: int = Field(28, gt=0)
    fatigue_log_limit: int = Field(3, ge=2)
    calibration_improvement_threshold: float = Field(0.02, ge=0)
    weight_unit: Literal["kg", "lb"] = "kg"
    db_path: Optional[str] = None
    db_url: Optional[str] = None


def validate_settings(data: dict) -> None:
    try:
        SettingsSchema(**data)
    except ValidationError as e:
        raise ValueError(str(e))
