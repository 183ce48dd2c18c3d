"""Tests for per-cycle summaries."""

from mealcycle_app.state.models import CycleStatus, MealCycle, Reading, ReadingKind
from mealcycle_app.state.summary import (
    average_glucose,
    missed_slots,
    peak_glucose,
    summarize_cycle,
)
from mealcycle_app.utils.time import MS_PER_MINUTE

T0 = 1_000_000


def reading(value, slot=None):
    kind = ReadingKind.POSTPRANDIAL if slot is not None else ReadingKind.PREPRANDIAL
    return Reading(id=f"r{slot}", value=value, timestamp=T0, kind=kind, slot=slot)


def cycle_with(values, baseline=90, status=CycleStatus.ACTIVE, start_time=T0):
    return MealCycle(
        id="cycle-1",
        owner_id="user-1",
        unique_id="uuid-1",
        created_at=T0,
        updated_at=T0,
        status=status,
        start_time=start_time,
        baseline=reading(baseline) if baseline is not None else None,
        slots={slot: reading(v, slot) for slot, v in values.items()},
    )


class TestAggregates:
    """Test average and peak."""

    def test_average_rounds_half_up(self):
        cycle = cycle_with({5: 101}, baseline=90)
        assert average_glucose(cycle) == 96

    def test_average_and_peak(self):
        cycle = cycle_with({5: 150, 10: 170, 15: 120}, baseline=90)

        assert average_glucose(cycle) == 133
        assert peak_glucose(cycle) == 170

    def test_empty_cycle(self):
        cycle = cycle_with({}, baseline=None)

        assert average_glucose(cycle) is None
        assert peak_glucose(cycle) is None


class TestMissedSlots:
    """Test missed slot detection."""

    def test_active_cycle_counts_closed_windows_only(self, profile):
        cycle = cycle_with({10: 140})
        now = T0 + 13 * MS_PER_MINUTE

        assert missed_slots(cycle, profile, now) == (5,)

    def test_finished_cycle_counts_every_empty_slot(self, profile):
        cycle = cycle_with({5: 140}, status=CycleStatus.ABANDONED)

        assert missed_slots(cycle, profile, T0 + MS_PER_MINUTE) == (10, 15)

    def test_unstarted_cycle_misses_nothing(self, profile):
        cycle = cycle_with({}, start_time=0, status=CycleStatus.CANCELED)

        assert missed_slots(cycle, profile, T0 + 60 * MS_PER_MINUTE) == ()


def test_summarize_cycle(profile):
    cycle = cycle_with({5: 150, 15: 120}, status=CycleStatus.COMPLETED)

    summary = summarize_cycle(cycle, profile, T0 + 16 * MS_PER_MINUTE)

    assert summary.cycle_id == "cycle-1"
    assert summary.status == "completed"
    assert summary.average_glucose == 120
    assert summary.peak_glucose == 150
    assert summary.filled_slots == (5, 15)
    assert summary.missed_slots == (10,)
