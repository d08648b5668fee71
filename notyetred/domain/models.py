import math
from typing import List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from notyetred.domain import config
from notyetred.domain.state import SegmentColor, State, StateAttributes, attributes_of

def round_seconds(duration: float) -> int:
    # Halves round up, matching Math.round on the client side
    return int(math.floor(duration / config.SECOND + 0.5)) * config.SECOND

class Phase(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: State
    duration: int = Field(ge=0)  # milliseconds

    def attributes(self) -> StateAttributes:
        return attributes_of(self.state)

class LightSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    offset: int = 0  # milliseconds
    phases: Tuple[Phase, ...] = Field(min_length=1)

    @field_validator("offset")
    @classmethod
    def round_offset(cls, value: int) -> int:
        return round_seconds(value)

    @model_validator(mode="after")
    def check_phases(self):
        states = [p.state for p in self.phases]
        if len(set(states)) != len(states):
            raise ValueError("each state may appear only once in a cycle")
        if State.FLASHING_YELLOW in states:
            raise ValueError("FLASHING_YELLOW is reserved for out-of-service lights")
        return self

    def duration_of(self, state: State) -> int:
        for phase in self.phases:
            if phase.state == state:
                return phase.duration
        return 0

class FailureSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    duration: int = Field(default=config.DEFAULT_FAILURE_DURATION, gt=0)
    probability: float = Field(default=config.DEFAULT_FAILURE_PROBABILITY, ge=0.0, le=1.0)

class IntersectionSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    cycle_length: int = Field(default=config.DEFAULT_CYCLE_LENGTH, gt=0)
    failure: FailureSettings = Field(default_factory=FailureSettings)

DEFAULT_LIGHT_SETTINGS = LightSettings(
    offset=0,
    phases=(
        Phase(state=State.RED, duration=config.DEFAULT_RED_TIME),
        Phase(state=State.RED_YELLOW, duration=config.DEFAULT_RED_YELLOW_TIME),
        Phase(state=State.GREEN, duration=config.DEFAULT_GREEN_TIME),
        Phase(state=State.YELLOW, duration=config.DEFAULT_YELLOW_TIME),
    )
)

DEFAULT_INTERSECTION_SETTINGS = IntersectionSettings()

# API/Response Models

class PhaseDurationUpdate(BaseModel):
    duration: int = Field(ge=0)

class OffsetUpdate(BaseModel):
    offset: int

class TimeCorrection(BaseModel):
    correction: int  # milliseconds added to local wall-clock time

class LightSnapshot(BaseModel):
    index: int
    state: State
    segments: List[SegmentColor]
    offset: int
    remaining: Optional[int] = None  # None while out of service

class IntersectionSnapshot(BaseModel):
    timestamp: int
    faulted: bool
    cycle_length: int
    lights: List[LightSnapshot]
