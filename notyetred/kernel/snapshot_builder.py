from typing import Sequence

from notyetred.domain.models import IntersectionSettings, IntersectionSnapshot, LightSettings, LightSnapshot
from notyetred.signals.failure import Failure
from notyetred.signals.light import TrafficLight

class SnapshotBuilder:
    def build(self, settings: IntersectionSettings, lights: Sequence[LightSettings], timestamp: int) -> IntersectionSnapshot:
        faulted = Failure.from_settings(settings.failure).current_state(timestamp)
        snapshots = []
        for index, light_settings in enumerate(lights):
            light = TrafficLight(light_settings, faulted)
            phase = light.current_phase(timestamp)
            snapshots.append(LightSnapshot(
                index=index,
                state=phase.state,
                segments=list(phase.attributes().segments),
                offset=light_settings.offset,
                remaining=light.remaining(timestamp)
            ))
        return IntersectionSnapshot(
            timestamp=timestamp,
            faulted=faulted,
            cycle_length=settings.cycle_length,
            lights=snapshots
        )
