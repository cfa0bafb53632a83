"""Typed scenario plan: execution profiles, start offsets and the default run."""

from __future__ import annotations

import math
import re
from collections.abc import Sequence
from typing import Annotated, Any, Literal

from pydantic import BaseModel, BeforeValidator, Field, model_validator

from ledger_stress.domain import CLIENTS

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(value: Any) -> Any:
    """Accept seconds as a number or k6 style strings such as ``"1m30s"``."""
    if not isinstance(value, str):
        return value
    text = value.strip()
    parts = _DURATION_PART.findall(text)
    if not parts or "".join(n + u for n, u in parts) != text:
        raise ValueError(f"invalid duration: {value!r}")
    return sum(float(n) * _UNIT_SECONDS[u] for n, u in parts)


Seconds = Annotated[float, BeforeValidator(parse_duration), Field(ge=0)]


# --- Profiles ---


class FixedProfile(BaseModel):
    """N workers, each running a fixed number of iterations."""

    executor: Literal["per-worker-iterations"] = "per-worker-iterations"
    workers: int = Field(ge=1)
    iterations: int = Field(default=1, ge=1)
    max_duration: Seconds = 600.0


class Stage(BaseModel):
    duration: Seconds
    target: int = Field(ge=0)


class RampingProfile(BaseModel):
    """Live worker count moved linearly toward each stage target in turn."""

    executor: Literal["ramping-workers"] = "ramping-workers"
    start_workers: int = Field(default=1, ge=0)
    stages: list[Stage] = Field(min_length=1)

    @property
    def total_duration(self) -> float:
        return sum(stage.duration for stage in self.stages)


Profile = Annotated[FixedProfile | RampingProfile, Field(discriminator="executor")]


class ScenarioConfig(BaseModel):
    name: str = Field(min_length=1)
    profile: Profile
    start_offset: Seconds = 0.0
    # Scenario body to run; defaults to the scenario name.
    body: str = ""

    @model_validator(mode="after")
    def _default_body(self) -> ScenarioConfig:
        if not self.body:
            self.body = self.name
        return self


def ramp_target(start: int, stages: Sequence[Stage], elapsed: float) -> int:
    """Worker count a ramping profile asks for *elapsed* seconds in.

    Values are interpolated between consecutive targets and rounded toward
    the previous target, so the count moves monotonically and never
    overshoots. After the last stage the final target holds.
    """
    previous = start
    remaining = max(elapsed, 0.0)
    for stage in stages:
        if remaining < stage.duration:
            value = previous + (stage.target - previous) * (remaining / stage.duration)
            if stage.target >= previous:
                return math.floor(value)
            return math.ceil(value)
        remaining -= stage.duration
        previous = stage.target
    return previous


# --- Default run ---

DEFAULT_PLAN: tuple[ScenarioConfig, ...] = (
    ScenarioConfig(
        name="validations",
        profile=FixedProfile(workers=len(CLIENTS), iterations=1),
        start_offset="0s",
    ),
    ScenarioConfig(
        name="client_not_found",
        profile=FixedProfile(workers=1, iterations=1),
        start_offset="0s",
    ),
    ScenarioConfig(
        name="debits",
        profile=RampingProfile(
            start_workers=1,
            stages=[Stage(duration="2m", target=220), Stage(duration="2m", target=220)],
        ),
        start_offset="10s",
    ),
    ScenarioConfig(
        name="credits",
        profile=RampingProfile(
            start_workers=1,
            stages=[Stage(duration="2m", target=110), Stage(duration="2m", target=110)],
        ),
        start_offset="10s",
    ),
    ScenarioConfig(
        name="statements",
        profile=FixedProfile(workers=10, iterations=1),
        start_offset="10s",
    ),
)
