"""Per-cycle glucose summary."""

import math
from dataclasses import dataclass
from typing import Optional

from ..config.defaults import CycleProfile
from ..utils.time import minutes_to_ms
from .models import MealCycle


@dataclass(frozen=True)
class CycleSummary:
    """Headline numbers for one meal cycle."""
    cycle_id: str
    status: str
    average_glucose: Optional[int]
    peak_glucose: Optional[float]
    filled_slots: tuple[int, ...]
    missed_slots: tuple[int, ...]


def _values(cycle: MealCycle) -> list[float]:
    readings = [cycle.baseline, *cycle.slots.values()]
    return [r.value for r in readings if r is not None and r.value > 0]


def average_glucose(cycle: MealCycle) -> Optional[int]:
    """Mean of baseline and slot readings, rounded half up."""
    values = _values(cycle)
    if not values:
        return None
    return int(math.floor(sum(values) / len(values) + 0.5))


def peak_glucose(cycle: MealCycle) -> Optional[float]:
    values = _values(cycle)
    return max(values) if values else None


def missed_slots(cycle: MealCycle, profile: CycleProfile, now: int) -> tuple[int, ...]:
    """Empty slots whose window has closed, or every empty slot of a finished cycle."""
    if not cycle.is_started:
        return ()
    elapsed = now - cycle.start_time
    return tuple(
        offset for offset in profile.offsets
        if offset not in cycle.slots
        and (not cycle.is_active or elapsed >= minutes_to_ms(offset + profile.grace_minutes))
    )


def summarize_cycle(cycle: MealCycle, profile: CycleProfile, now: int) -> CycleSummary:
    return CycleSummary(
        cycle_id=cycle.id,
        status=cycle.status.value,
        average_glucose=average_glucose(cycle),
        peak_glucose=peak_glucose(cycle),
        filled_slots=tuple(sorted(cycle.slots)),
        missed_slots=missed_slots(cycle, profile, now),
    )
