#!/usr/bin/env python3
"""
Basic Usage Example - Meal Cycle Session

This script walks one simulated meal cycle through the session API using a
manual clock and in-memory stores. It shows how to:
- Build a session from the testing profile
- Start a cycle with a baseline reading and record the first bite
- Let the scheduler raise reading alerts as slots come due
- Submit readings and read back the cycle summary

Run: python examples/basic_usage.py
"""

from mealcycle_app.config.loader import ConfigLoader
from mealcycle_app.logging.config import configure_logging
from mealcycle_app.notify.console_alert import ConsoleAlertSink
from mealcycle_app.persistence.operation_store import MemoryOperationStore
from mealcycle_app.remote.memory_store import InMemoryRemoteStore
from mealcycle_app.session import MealCycleSession
from mealcycle_app.utils.time import ManualClock, format_elapsed

READINGS = {5: 142, 10: 168, 15: 151, 20: 133, 25: 118, 30: 104}


def main() -> None:
    configure_logging(level="WARNING")

    settings = ConfigLoader.create(environ={}).load_settings({"profile": "testing"})
    clock = ManualClock(1_700_000_000_000)
    remote = InMemoryRemoteStore()

    session = MealCycleSession(
        owner_id="demo-user",
        remote_store=remote,
        operation_store=MemoryOperationStore(),
        alert_sink=ConsoleAlertSink(tone=False),
        settings=settings,
        clock=clock,
        dispatch=lambda fn: fn(),
    )

    print(f"📋 Profile '{settings.profile.name}': offsets {list(settings.profile.offsets)}")

    cycle = session.start_cycle(92)
    print(f"🍽️  Started cycle {cycle.id} with baseline {cycle.baseline.value} mg/dL")

    t0 = session.mark_first_bite().start_time
    print("⏱️  First bite recorded")

    for offset in settings.profile.offsets:
        clock.set(t0 + offset * 60_000)
        session.scheduler.tick()
        cycle = session.submit_reading(offset, READINGS[offset])
        print(f"  {format_elapsed(clock.now_ms() - t0)}  slot {offset:>3} -> "
              f"{READINGS[offset]} mg/dL  ({cycle.status.value})")

    summary = session.summary(cycle.id)
    print(f"\n📊 Average {summary.average_glucose} mg/dL, peak {summary.peak_glucose} mg/dL")
    print(f"☁️  Sync status: {session.sync_status().state.value}, "
          f"remote documents: {remote.document_count('mealCycles')}")

    session.stop()


if __name__ == "__main__":
    main()
