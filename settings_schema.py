from typing import Literal

from pydantic import BaseModel, Field, ValidationError


class SettingsSchema(BaseModel):
    round_digits: int = Field(2, ge=0, le=6)
    fill: Literal["sparse", "null", "zero"] = "sparse"
    range_policy: Literal["fallback", "strict"] = "fallback"
    matcher: Literal["rules", "scored"] = "rules"
    match_threshold: float = Field(0.6, ge=0.0, le=1.0)
    streak_limit: int = Field(30, gt=0)
    streak_cap: int = Field(999, gt=0)
    log_level: str = "INFO"


def validate_settings(data: dict) -> SettingsSchema:
    try:
        return SettingsSchema(**data)
    except ValidationError as e:
        raise ValueError(str(e))
