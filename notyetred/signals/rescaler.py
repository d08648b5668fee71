"""Duration editing for light cycles.

All functions are pure: they take immutable phase records and return new
ones. The total of the returned durations always matches the requested cycle
length (``rescale``) or the previous total (``with_state_duration``), and no
duration ever drops below zero.
"""
from typing import Callable, List, Sequence, Tuple

from notyetred.domain.exceptions import ConfigurationError, UnsatisfiableCycleError
from notyetred.domain.logging import setup_logger
from notyetred.domain.models import LightSettings, Phase, round_seconds
from notyetred.domain.state import State, is_fixable

logger = setup_logger(__name__)

def cycle_length_of(phases: Sequence[Phase]) -> int:
    return sum(p.duration for p in phases)

def _by_order(phase: Phase) -> int:
    return phase.attributes().order

def _by_priority(phase: Phase) -> Tuple[int, int]:
    attrs = phase.attributes()
    return attrs.priority, attrs.order

def _apply_strategy(work: List[list], precondition: Callable[[State], bool],
                    delta_for: Callable[[int], int], remainder: int) -> int:
    """Runs one pass over ``work`` ([state, duration] pairs) and returns the new remainder."""
    for entry in work:
        if not precondition(entry[0]):
            continue
        applied = max(delta_for(remainder), -entry[1])
        entry[1] += applied
        remainder -= applied
    return remainder

def rescale(phases: Sequence[Phase], target_cycle_length: int) -> Tuple[Phase, ...]:
    """
    Stretches or shrinks ``phases`` so their durations sum to ``target_cycle_length``.

    Every fixable phase takes an even, second-rounded share of the difference
    first (largest phase first), then whatever is left over. Only when that is
    not enough are the remaining phases touched. The remainder is checked
    between passes only.
    """
    if target_cycle_length < 0:
        raise ConfigurationError(f"cycle length must not be negative: {target_cycle_length}")

    phases = tuple(phases)
    diff = target_cycle_length - cycle_length_of(phases)
    if diff == 0:
        return phases

    work = [[p.state, p.duration] for p in sorted(phases, key=lambda p: p.duration, reverse=True)]
    fixable_count = sum(1 for state, _ in work if is_fixable(state))

    strategies = []
    if fixable_count:
        share = round_seconds(diff / fixable_count)
        strategies.append((is_fixable, lambda remainder: share))
        strategies.append((is_fixable, lambda remainder: remainder))
    strategies.append((lambda state: True, lambda remainder: remainder))

    remainder = diff
    for precondition, delta_for in strategies:
        remainder = _apply_strategy(work, precondition, delta_for, remainder)
        if remainder == 0:
            break

    if remainder != 0:
        raise UnsatisfiableCycleError(
            f"cannot fit {len(phases)} phases into a cycle of {target_cycle_length} ms "
            f"({remainder} ms left over)"
        )

    logger.debug(f"Rescaled cycle by {diff} ms to {target_cycle_length} ms")
    return tuple(sorted((Phase(state=state, duration=duration) for state, duration in work), key=_by_order))

def rescale_light(settings: LightSettings, cycle_length: int) -> LightSettings:
    phases = rescale(settings.phases, cycle_length)
    if phases == settings.phases:
        return settings
    return LightSettings(offset=settings.offset, phases=phases)

def with_state_duration(settings: LightSettings, state: State, new_duration: int) -> LightSettings:
    """
    Sets one phase to ``new_duration`` and lets the other fixable phases absorb
    the difference, lowest priority first. Whatever they cannot absorb is
    folded back into the edited phase, so the cycle length never changes.
    """
    if new_duration < 0:
        raise ConfigurationError(f"phase duration must not be negative: {new_duration}")

    diff = settings.duration_of(state) - new_duration

    others = [p for p in settings.phases if p.state != state]
    fixable = sorted((p for p in others if is_fixable(p.state)), key=_by_priority)
    unfixable = [p for p in others if not is_fixable(p.state)]

    adjusted = []
    for phase in fixable:
        applied = max(diff, -phase.duration)
        adjusted.append(Phase(state=phase.state, duration=phase.duration + applied))
        diff -= applied

    adjusted.append(Phase(state=state, duration=new_duration + diff))

    return LightSettings(offset=settings.offset, phases=tuple(sorted(adjusted + unfixable, key=_by_order)))

def with_offset(settings: LightSettings, offset: int) -> LightSettings:
    return LightSettings(offset=round_seconds(offset), phases=settings.phases)
