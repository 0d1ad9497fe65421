from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator


class ConfigBase(BaseModel):
    model_config = {"extra": "forbid"}


class PhysicsSection(ConfigBase):
    gravity: float = 9.8
    track_curvature: float = 0.005
    mass: float = 1.0

    @field_validator("gravity")
    @classmethod
    def _gravity_nonneg(cls, value: float) -> float:
        if value < 0.0:
            raise ValueError("gravity must be >= 0")
        return value

    @field_validator("track_curvature", "mass")
    @classmethod
    def _positive(cls, value: float) -> float:
        if value <= 0.0:
            raise ValueError("value must be > 0")
        return value


class FrictionSection(ConfigBase):
    enabled: bool = False
    coefficient: float = 0.1

    @field_validator("coefficient")
    @classmethod
    def _coefficient_nonneg(cls, value: float) -> float:
        if value < 0.0:
            raise ValueError("coefficient must be >= 0")
        return value


class RunSection(ConfigBase):
    start_x: float = -100.0
    duration_s: float = 10.0
    frame_dt_s: float = 1.0 / 60.0
    autostart: bool = True

    @field_validator("duration_s")
    @classmethod
    def _duration_nonneg(cls, value: float) -> float:
        if value < 0.0:
            raise ValueError("duration_s must be >= 0")
        return value

    @field_validator("frame_dt_s")
    @classmethod
    def _frame_dt_positive(cls, value: float) -> float:
        if value <= 0.0:
            raise ValueError("frame_dt_s must be > 0")
        return value


class ViewportSection(ConfigBase):
    width: float = 800.0
    height: float = 500.0
    bottom_margin: float = 50.0

    @model_validator(mode="after")
    def _validate_size(self) -> "ViewportSection":
        if self.width <= 0.0 or self.height <= 0.0:
            raise ValueError("width and height must be > 0")
        if not (0.0 <= self.bottom_margin < self.height):
            raise ValueError("bottom_margin must lie in [0, height)")
        return self


class SimulationConfig(ConfigBase):
    physics: PhysicsSection = Field(default_factory=PhysicsSection)
    friction: FrictionSection = Field(default_factory=FrictionSection)
    run: RunSection = Field(default_factory=RunSection)
    viewport: ViewportSection = Field(default_factory=ViewportSection)

    case_name: Optional[str] = None
    notes: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


def format_validation_error(exc: ValidationError, *, filename: str) -> str:
    parts = []
    for error in exc.errors():
        loc = ".".join(str(item) for item in error.get("loc", []))
        msg = error.get("msg", "invalid value")
        parts.append(f"{loc}: {msg}")
    details = "; ".join(parts) if parts else str(exc)
    return f"{filename}: invalid configuration: {details}"
