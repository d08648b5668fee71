from enum import Enum
from types import MappingProxyType
from typing import Mapping, NamedTuple, Tuple

from notyetred.domain import config

class SegmentColor(str, Enum):
    RED = "red"
    YELLOW = "yellow"
    GREEN = "green"

class State(str, Enum):
    RED = "RED"
    RED_YELLOW = "RED_YELLOW"
    GREEN = "GREEN"
    YELLOW = "YELLOW"
    FLASHING_YELLOW = "FLASHING_YELLOW"  # Out of service, never part of a cycle

class StateAttributes(NamedTuple):
    order: int
    priority: int
    segments: Tuple[SegmentColor, ...]

STATE_ATTRIBUTES: Mapping[State, StateAttributes] = MappingProxyType({
    State.RED: StateAttributes(order=0, priority=3, segments=(SegmentColor.RED,)),
    State.RED_YELLOW: StateAttributes(order=1, priority=1, segments=(SegmentColor.RED, SegmentColor.YELLOW)),
    State.GREEN: StateAttributes(order=2, priority=4, segments=(SegmentColor.GREEN,)),
    State.YELLOW: StateAttributes(order=3, priority=2, segments=(SegmentColor.YELLOW,)),
    State.FLASHING_YELLOW: StateAttributes(order=4, priority=0, segments=(SegmentColor.YELLOW,)),
})

_missing = set(State) - set(STATE_ATTRIBUTES)
if _missing:
    raise RuntimeError(f"State table incomplete: {sorted(s.value for s in _missing)}")

def attributes_of(state: State) -> StateAttributes:
    return STATE_ATTRIBUTES[state]

def is_fixable(state: State) -> bool:
    return attributes_of(state).priority >= config.FIXABLE_PRIORITY
