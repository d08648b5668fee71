import random

from notyetred.domain.exceptions import ConfigurationError
from notyetred.domain.models import FailureSettings

class Failure:
    """
    Deterministic out-of-service generator.

    Time is cut into windows of ``duration`` ms. Each window draws one value
    from a generator seeded with the window index, so every process that
    shares the same settings agrees on which windows are faulted.
    """

    def __init__(self, duration: int, probability: float):
        if duration <= 0:
            raise ConfigurationError(f"failure window must be positive: {duration}")
        if not 0.0 <= probability <= 1.0:
            raise ConfigurationError(f"failure probability must be within [0, 1]: {probability}")
        self.duration = duration
        self.probability = probability

    @classmethod
    def from_settings(cls, settings: FailureSettings) -> "Failure":
        return cls(settings.duration, settings.probability)

    def window(self, timestamp: int) -> int:
        return int(timestamp // self.duration)

    def window_value(self, window: int) -> float:
        # String seeds keep negative windows apart from their positive mirror
        return random.Random(str(window)).random()

    def current_state(self, timestamp: int) -> bool:
        return self.window_value(self.window(timestamp)) < self.probability

    def next_state_timestamp(self, timestamp: int) -> int:
        return (self.window(timestamp) + 1) * self.duration
