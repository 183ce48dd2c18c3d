#!/usr/bin/env python3
"""
Offline Sync Demo - Mutation Queue

Demonstrates offline-first behavior: mutations made while offline stay in
the durable local queue, a remote outage leaves the sync status pending, and
coming back online commits everything as one atomic batch.

Run: python examples/offline_sync_demo.py
"""

import os
import tempfile

from mealcycle_app.config.loader import ConfigLoader
from mealcycle_app.logging.config import configure_logging
from mealcycle_app.notify.console_alert import ConsoleAlertSink
from mealcycle_app.persistence.operation_store import SqliteOperationStore
from mealcycle_app.remote.memory_store import InMemoryRemoteStore
from mealcycle_app.session import MealCycleSession
from mealcycle_app.utils.time import ManualClock


def print_status(label: str, session: MealCycleSession) -> None:
    status = session.sync_status()
    print(f"  {label:<28} state={status.state.value:<8} "
          f"pending={status.pending_count} online={status.online}")


def main() -> None:
    configure_logging(level="WARNING")

    settings = ConfigLoader.create(environ={}).load_settings({"profile": "testing"})
    clock = ManualClock(1_700_000_000_000)
    remote = InMemoryRemoteStore()

    with tempfile.TemporaryDirectory() as temp_dir:
        db_path = os.path.join(temp_dir, "pending_operations.db")

        print("📴 Working offline")
        session = MealCycleSession(
            owner_id="demo-user",
            remote_store=remote,
            operation_store=SqliteOperationStore(db_path),
            alert_sink=ConsoleAlertSink(tone=False),
            settings=settings,
            clock=clock,
            online=False,
            dispatch=lambda fn: fn(),
        )
        cycle = session.start_cycle(101)
        session.mark_first_bite()
        clock.advance(minutes=5)
        session.submit_reading(5, 150)
        print_status("after three mutations", session)
        session.stop()

        print("\n🔁 Restarting with the same local queue")
        restarted = MealCycleSession(
            owner_id="demo-user",
            remote_store=remote,
            operation_store=SqliteOperationStore(db_path),
            alert_sink=ConsoleAlertSink(tone=False),
            settings=settings,
            clock=clock,
            online=False,
            dispatch=lambda fn: fn(),
        )
        restarted.hydrate()
        print(f"  restored cycle {restarted.current_cycle().id} "
              f"with slots {sorted(restarted.current_cycle().slots)}")

        print("\n🌩️  Reconnecting while the remote store is down")
        remote.set_available(False)
        restarted.set_online(True)
        print_status("after failed flush", restarted)

        print("\n☁️  Remote store back")
        remote.set_available(True)
        restarted.queue.sync_tick()
        print_status("after retry", restarted)

        doc = remote.get_document("mealCycles", cycle.id)
        print(f"  remote document status={doc['status']} slots={sorted(doc['slots'])}")
        restarted.stop()


if __name__ == "__main__":
    main()
