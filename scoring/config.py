import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class CalibrationConfig(BaseModel):
    """Constants of the score compression curve.

    Ratings are compressed toward `anchor` only when the mean of the top-level
    ratings exceeds `inflation_threshold`; the factor is `target_mean / mean`
    and results are clamped into [floor, cap].
    """

    model_config = ConfigDict(frozen=True)

    inflation_threshold: float = 6.5
    anchor: float = 5.5
    target_mean: float = 6.0
    floor: float = Field(default=1.0, ge=0, le=10)
    cap: float = Field(default=9.5, ge=0, le=10)
    min_ratings: int = Field(default=2, ge=1)
    # None keeps full precision; the mobile client shows one decimal
    precision: Optional[int] = None

    @model_validator(mode="after")
    def _check_bounds(self):
        if self.floor > self.cap:
            raise ValueError("floor must not exceed cap")
        if self.target_mean <= 0:
            raise ValueError("target_mean must be positive")
        return self

    @classmethod
    def from_env(cls) -> "CalibrationConfig":
        return cls(
            inflation_threshold=float(os.getenv("CALIBRATION_THRESHOLD", "6.5")),
            anchor=float(os.getenv("CALIBRATION_ANCHOR", "5.5")),
            target_mean=float(os.getenv("CALIBRATION_TARGET_MEAN", "6.0")),
            floor=float(os.getenv("CALIBRATION_FLOOR", "1.0")),
            cap=float(os.getenv("CALIBRATION_CAP", "9.5")),
        )


class PotentialConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    top_n: int = Field(default=3, ge=1)
    max_score: float = 10.0
    range_low_offset: float = 0.5  # range.min = min(current + offset, potential - margin)
    range_potential_margin: float = 0.3
    range_high_offset: float = 0.5  # range.max = min(potential + offset, max_score)


DEFAULT_CALIBRATION = CalibrationConfig()
DEFAULT_POTENTIAL = PotentialConfig()
