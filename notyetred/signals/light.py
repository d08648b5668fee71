from typing import Tuple

from notyetred.domain.exceptions import EmptyCycleError
from notyetred.domain.models import LightSettings, Phase
from notyetred.domain.state import State
from notyetred.signals.rescaler import cycle_length_of

def _checked_cycle_length(settings: LightSettings) -> int:
    cycle_length = cycle_length_of(settings.phases)
    if cycle_length <= 0:
        raise EmptyCycleError(f"light has no phase time to cycle through: {settings.phases!r}")
    return cycle_length

def fault_phase(settings: LightSettings) -> Phase:
    return Phase(state=State.FLASHING_YELLOW, duration=_checked_cycle_length(settings))

def phase_window(settings: LightSettings, timestamp: int) -> Tuple[Phase, int, int]:
    """
    Returns the phase active at ``timestamp`` together with the absolute
    start and end of its window. Zero-length phases are never active.
    """
    cycle_length = _checked_cycle_length(settings)
    elapsed = (timestamp + settings.offset) % cycle_length
    cycle_start = timestamp - elapsed

    position = 0
    for phase in sorted(settings.phases, key=lambda p: p.attributes().order):
        if phase.duration == 0:
            continue
        end = position + phase.duration
        if elapsed < end:
            return phase, cycle_start + position, cycle_start + end
        position = end
    raise EmptyCycleError(f"no phase covers {elapsed} ms into the cycle")

def current_phase(settings: LightSettings, timestamp: int, faulted: bool = False) -> Phase:
    if faulted:
        return fault_phase(settings)
    return phase_window(settings, timestamp)[0]

def next_state_timestamp(settings: LightSettings, timestamp: int) -> int:
    return phase_window(settings, timestamp)[2]

def remaining(settings: LightSettings, timestamp: int) -> int:
    return phase_window(settings, timestamp)[2] - timestamp

class TrafficLight:
    """A light bound to its settings and the intersection's fault flag."""

    def __init__(self, settings: LightSettings, faulted: bool = False):
        self.settings = settings
        self.faulted = faulted

    def current_phase(self, timestamp: int) -> Phase:
        return current_phase(self.settings, timestamp, self.faulted)

    def remaining(self, timestamp: int):
        if self.faulted:
            return None
        return remaining(self.settings, timestamp)

    def next_state_timestamp(self, timestamp: int) -> int:
        # The fault generator reports its own boundaries
        return next_state_timestamp(self.settings, timestamp)

class CycleBoundary:
    """Wakes at every multiple of the intersection cycle length."""

    def __init__(self, cycle_length: int):
        if cycle_length <= 0:
            raise EmptyCycleError(f"cycle length must be positive: {cycle_length}")
        self.cycle_length = cycle_length

    def next_state_timestamp(self, timestamp: int) -> int:
        return (timestamp // self.cycle_length + 1) * self.cycle_length
