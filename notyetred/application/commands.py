from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional

from notyetred.domain.models import DEFAULT_LIGHT_SETTINGS, IntersectionSettings, LightSettings
from notyetred.domain.state import State
from notyetred.signals.rescaler import rescale_light, with_offset, with_state_duration

class Command(ABC):
    @abstractmethod
    def execute(self, kernel: Any):
        pass

class UpdateIntersectionCommand(Command):
    def __init__(self, settings: IntersectionSettings):
        self.settings = settings

    def execute(self, kernel: Any):
        # Rescale everything before touching the kernel so a failure leaves it unchanged
        lights = [rescale_light(light, self.settings.cycle_length) for light in kernel.lights]
        kernel.settings = self.settings
        kernel.lights = lights
        return self.settings

class SetPhaseDurationCommand(Command):
    def __init__(self, index: int, state: State, duration: int):
        self.index = index
        self.state = state
        self.duration = duration

    def execute(self, kernel: Any):
        light = with_state_duration(kernel.light(self.index), self.state, self.duration)
        kernel.lights[self.index] = light
        return light

class SetOffsetCommand(Command):
    def __init__(self, index: int, offset: int):
        self.index = index
        self.offset = offset

    def execute(self, kernel: Any):
        light = with_offset(kernel.light(self.index), self.offset)
        kernel.lights[self.index] = light
        return light

class ReplaceLightCommand(Command):
    def __init__(self, index: int, settings: LightSettings):
        self.index = index
        self.settings = settings

    def execute(self, kernel: Any):
        kernel.light(self.index)
        light = rescale_light(self.settings, kernel.settings.cycle_length)
        kernel.lights[self.index] = light
        return light

class AddLightCommand(Command):
    def __init__(self, settings: Optional[LightSettings] = None):
        self.settings = settings or DEFAULT_LIGHT_SETTINGS

    def execute(self, kernel: Any):
        kernel.lights.append(rescale_light(self.settings, kernel.settings.cycle_length))
        return len(kernel.lights) - 1

class DeleteLightsCommand(Command):
    def __init__(self, indices: Iterable[int]):
        self.indices = set(indices)

    def execute(self, kernel: Any):
        for index in self.indices:
            kernel.light(index)
        kernel.lights = [light for i, light in enumerate(kernel.lights) if i not in self.indices]
        return len(kernel.lights)

class SetTimeCorrectionCommand(Command):
    def __init__(self, correction: int):
        self.correction = correction

    def execute(self, kernel: Any):
        kernel.clock.correction = self.correction
        return self.correction
