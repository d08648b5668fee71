from typing import Dict, List, Optional, Sequence

from notyetred.application.commands import Command, SetTimeCorrectionCommand
from notyetred.domain.exceptions import LightNotFoundError
from notyetred.domain.logging import setup_logger
from notyetred.domain.models import (
    DEFAULT_INTERSECTION_SETTINGS, DEFAULT_LIGHT_SETTINGS, IntersectionSettings,
    IntersectionSnapshot, LightSettings
)
from notyetred.kernel.clock import Clock, fetch_time_correction
from notyetred.kernel.snapshot_builder import SnapshotBuilder
from notyetred.kernel.wake_scheduler import Participant, WakeScheduler
from notyetred.signals.failure import Failure
from notyetred.signals.light import CycleBoundary, TrafficLight
from notyetred.signals.rescaler import rescale_light

logger = setup_logger(__name__)

class IntersectionKernel:
    """
    Owns the intersection settings and its lights.

    Every edit goes through ``dispatch`` so the wake scheduler is re-armed
    against the new settings right away instead of at the next tick.
    """

    def __init__(self, clock: Optional[Clock] = None, scheduler: Optional[WakeScheduler] = None):
        self.clock = clock or Clock()
        self.scheduler = scheduler or WakeScheduler(self.clock)
        self.settings: IntersectionSettings = DEFAULT_INTERSECTION_SETTINGS
        self.lights: List[LightSettings] = []
        self.current_timestamp = self.clock.now()
        self.snapshot_builder = SnapshotBuilder()
        self.initialized = False
        self.running = False

    def initialize(self, settings: Optional[IntersectionSettings] = None,
                   lights: Optional[Sequence[LightSettings]] = None):
        self.settings = settings or DEFAULT_INTERSECTION_SETTINGS
        if lights is None:
            lights = [DEFAULT_LIGHT_SETTINGS]
        self.lights = [rescale_light(light, self.settings.cycle_length) for light in lights]
        self.current_timestamp = self.clock.now()
        self.initialized = True
        logger.info(f"Intersection initialized with {len(self.lights)} lights, cycle {self.settings.cycle_length} ms")

    def start(self):
        """Starts publishing ticks. Must be called from inside the running event loop."""
        if not self.initialized:
            self.initialize()
        self.scheduler.subscribe(self._on_tick)
        self.running = True
        self.refresh()

    def stop(self):
        self.running = False
        self.scheduler.unsubscribe(self._on_tick)
        self.scheduler.close()

    def light(self, index: int) -> LightSettings:
        if not 0 <= index < len(self.lights):
            raise LightNotFoundError(f"Light {index} not found ({len(self.lights)} lights)")
        return self.lights[index]

    def failure(self) -> Failure:
        return Failure.from_settings(self.settings.failure)

    def traffic_lights(self, timestamp: Optional[int] = None) -> List[TrafficLight]:
        if timestamp is None:
            timestamp = self.current_timestamp
        faulted = self.failure().current_state(timestamp)
        return [TrafficLight(light, faulted) for light in self.lights]

    def participants(self) -> Dict[str, Participant]:
        participants: Dict[str, Participant] = {
            f"light-{index}": light for index, light in enumerate(self.traffic_lights())
        }
        participants["failure"] = self.failure()
        participants["cycle"] = CycleBoundary(self.settings.cycle_length)
        return participants

    def dispatch(self, command: Command):
        if not self.initialized:
            self.initialize()
        result = command.execute(self)
        self.current_timestamp = max(self.current_timestamp, self.clock.now())
        self.refresh()
        return result

    def refresh(self):
        self.scheduler.replace_participants(self.participants())
        if self.running:
            self.scheduler.arm()

    async def sync_time(self) -> int:
        correction = await fetch_time_correction()
        self.dispatch(SetTimeCorrectionCommand(correction))
        return correction

    def snapshot(self, timestamp: Optional[int] = None) -> IntersectionSnapshot:
        if timestamp is None:
            timestamp = self.clock.now()
        return self.snapshot_builder.build(self.settings, self.lights, timestamp)

    def _on_tick(self, now: int):
        self.current_timestamp = now
        # Fault flag may have flipped, lights need rebinding
        self.scheduler.replace_participants(self.participants())
