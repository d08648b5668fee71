"""
Single-timer wake-up scheduler.

Every participant answers one question: given the current time, when does
your visible state change next? The scheduler keeps one asyncio timer armed
for the earliest answer, publishes the corrected time to its observers when
it fires, and asks again.
"""
import asyncio
import heapq
from typing import Callable, Dict, List, Mapping, Optional, Protocol, Tuple

from notyetred.domain.logging import setup_logger
from notyetred.kernel.clock import Clock

logger = setup_logger(__name__)

class Participant(Protocol):
    def next_state_timestamp(self, timestamp: int) -> int: ...

Observer = Callable[[int], None]

def earliest_wake(participants: Mapping[str, Participant], now: int) -> Optional[Tuple[int, str]]:
    """
    Returns ``(timestamp, participant_id)`` of the earliest upcoming change,
    or None when nobody reports one. A participant that raises is skipped.
    """
    heap: List[Tuple[int, str]] = []
    for participant_id, participant in participants.items():
        try:
            next_wake = participant.next_state_timestamp(now)
        except Exception:
            logger.exception(f"Participant {participant_id} failed to report its next change")
            continue
        if next_wake is None:
            continue
        heapq.heappush(heap, (next_wake, participant_id))
    return heap[0] if heap else None

class WakeScheduler:
    def __init__(self, clock: Clock, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.clock = clock
        self._loop = loop
        self._participants: Dict[str, Participant] = {}
        self._observers: List[Observer] = []
        self._waiters: List[asyncio.Future] = []
        self._timer: Optional[asyncio.TimerHandle] = None
        self.armed_at: Optional[int] = None
        self.last_published: Optional[int] = None

    @property
    def pending(self) -> bool:
        return self._timer is not None

    @property
    def participants(self) -> Dict[str, Participant]:
        return dict(self._participants)

    def register(self, participant_id: str, participant: Participant):
        self._participants[participant_id] = participant

    def unregister(self, participant_id: str):
        self._participants.pop(participant_id, None)

    def replace_participants(self, participants: Mapping[str, Participant]):
        self._participants = dict(participants)

    def subscribe(self, observer: Observer):
        if observer not in self._observers:
            self._observers.append(observer)

    def unsubscribe(self, observer: Observer):
        if observer in self._observers:
            self._observers.remove(observer)

    def next_wake(self, now: int) -> Optional[Tuple[int, str]]:
        return earliest_wake(self._participants, now)

    def arm(self, now: Optional[int] = None) -> Optional[int]:
        """Cancels any pending timer and arms one for the earliest reported change."""
        self.cancel()
        if now is None:
            now = self.clock.now()

        wake = self.next_wake(now)
        if wake is None:
            logger.debug("No participant reported a next change, timer left unarmed")
            return None

        wake_at, participant_id = wake
        delay = max(0.0, (wake_at - self.clock.now()) / 1000)
        loop = self._loop or asyncio.get_running_loop()
        self._timer = loop.call_later(delay, self._fire)
        self.armed_at = wake_at
        logger.debug(f"Armed for {wake_at} ({participant_id}) in {delay:.3f}s")
        return wake_at

    def cancel(self):
        if self._timer is not None:
            self._timer.cancel()
        self._timer = None
        self.armed_at = None

    def close(self):
        self.cancel()
        for waiter in self._waiters:
            if not waiter.done():
                waiter.cancel()
        self._waiters = []

    def publish(self, now: int) -> int:
        if self.last_published is not None:
            now = max(now, self.last_published)
        self.last_published = now

        for observer in list(self._observers):
            try:
                observer(now)
            except Exception:
                logger.exception(f"Observer {observer!r} failed on tick {now}")

        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(now)
        return now

    async def wait_next(self) -> int:
        """Resolves with the timestamp of the next published tick."""
        loop = self._loop or asyncio.get_running_loop()
        waiter = loop.create_future()
        self._waiters.append(waiter)
        return await waiter

    def _fire(self):
        armed_at = self.armed_at
        self._timer = None
        self.armed_at = None

        now = self.clock.now()
        if armed_at is not None:
            # Never publish a time before the boundary we woke up for
            now = max(now, armed_at)
        now = self.publish(now)
        self.arm(now)
