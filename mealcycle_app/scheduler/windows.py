"""
Reading-window classification.

Pure functions of (cycle, profile, now); nothing here reads the clock or
writes state.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..config.defaults import CycleProfile
from ..state.models import MealCycle
from ..utils.time import minutes_to_ms


class SlotState(str, Enum):
    """Urgency of one sampling slot."""
    UPCOMING = "upcoming"
    DUE = "due"
    MISSED = "missed"
    COMPLETED = "completed"


@dataclass(frozen=True)
class NextDue:
    """The next slot still worth waiting for."""
    offset: int
    remaining_ms: int                                 # 0 once the slot is due
    due_at: int                                       # Epoch ms


def classify_slot(offset: int, cycle: MealCycle, profile: CycleProfile, now: int) -> SlotState:
    """Classify one offset; a cycle without a first bite has only upcoming slots."""
    if offset in cycle.slots:
        return SlotState.COMPLETED
    if not cycle.is_started:
        return SlotState.UPCOMING

    elapsed = now - cycle.start_time
    if elapsed >= minutes_to_ms(offset + profile.grace_minutes):
        return SlotState.MISSED
    if elapsed >= minutes_to_ms(offset):
        return SlotState.DUE
    return SlotState.UPCOMING


def classify_slots(cycle: MealCycle, profile: CycleProfile, now: int) -> dict[int, SlotState]:
    return {offset: classify_slot(offset, cycle, profile, now) for offset in profile.offsets}


def due_offsets(cycle: MealCycle, profile: CycleProfile, now: int) -> list[int]:
    return [o for o, state in classify_slots(cycle, profile, now).items() if state is SlotState.DUE]


def next_due(cycle: MealCycle, profile: CycleProfile, now: int) -> Optional[NextDue]:
    """
    Smallest offset that is neither completed nor missed.

    Returns None before the first bite, once the cycle has ended, or when
    every slot is completed or missed.
    """
    if not cycle.is_started or not cycle.is_active:
        return None

    for offset, state in classify_slots(cycle, profile, now).items():
        if state in (SlotState.UPCOMING, SlotState.DUE):
            due_at = cycle.start_time + minutes_to_ms(offset)
            return NextDue(offset=offset, remaining_ms=max(due_at - now, 0), due_at=due_at)
    return None


def cycle_progress(cycle: MealCycle, profile: CycleProfile, now: int) -> float:
    """Fraction of the protocol elapsed (0.0-1.0), measured to the last offset."""
    if not cycle.is_started:
        return 0.0
    elapsed = now - cycle.start_time
    return min(max(elapsed / minutes_to_ms(profile.last_offset), 0.0), 1.0)
