#!/usr/bin/env python3
"""Smoke checks for the meal cycle application.

Resolves the shipped configuration, drives one accelerated meal cycle through
an in-memory remote store (going offline halfway), then runs the bundled
example scripts. Exits 0 only if every check passes.

Usage:
    python scripts/smoke_test.py
"""
import importlib.util
import sys
import tempfile
import traceback
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT_DIR))

from mealcycle_app.config.loader import ConfigLoader
from mealcycle_app.logging.config import configure_logging
from mealcycle_app.notify.console_alert import ConsoleAlertSink
from mealcycle_app.persistence.operation_store import SqliteOperationStore
from mealcycle_app.remote.memory_store import InMemoryRemoteStore
from mealcycle_app.session import MealCycleSession
from mealcycle_app.state.models import CycleStatus
from mealcycle_app.utils.time import MS_PER_MINUTE, ManualClock

EXAMPLE_SCRIPTS = ("basic_usage.py", "offline_sync_demo.py")


def check_settings() -> None:
    settings = ConfigLoader.create().load_settings()
    print(f"  profile '{settings.profile.name}', offsets {list(settings.profile.offsets)}")


def check_offline_cycle() -> None:
    """One testing-profile cycle whose middle reading is taken offline."""
    settings = ConfigLoader.create(environ={"MEALCYCLE_PROFILE": "testing"}).load_settings()
    remote = InMemoryRemoteStore()
    clock = ManualClock(0)

    with tempfile.TemporaryDirectory() as tmp:
        store = SqliteOperationStore(str(Path(tmp) / "queue.db"))
        session = MealCycleSession("smoke-user", remote, store, ConsoleAlertSink(),
                                   settings, clock, dispatch=lambda fn: fn())
        with session:
            session.start_cycle(92)
            t0 = session.mark_first_bite().start_time
            offsets = settings.profile.offsets
            for i, offset in enumerate(offsets):
                session.set_online(i != len(offsets) // 2)
                clock.set(t0 + offset * MS_PER_MINUTE)
                cycle = session.submit_reading(offset, 120 + i)
            session.set_online(True)

        if cycle.status is not CycleStatus.COMPLETED:
            raise AssertionError(f"cycle ended {cycle.status.value}")
        if remote.get_document("mealCycles", cycle.id)["status"] != "completed":
            raise AssertionError("completed cycle did not reach the remote store")
    print(f"  cycle {cycle.id} completed and synced")


def run_example(filename: str) -> None:
    path = ROOT_DIR / "examples" / filename
    module_spec = importlib.util.spec_from_file_location(path.stem, path)
    module = importlib.util.module_from_spec(module_spec)
    module_spec.loader.exec_module(module)
    if callable(getattr(module, "main", None)):
        module.main()


def main() -> None:
    configure_logging(level="WARNING")
    checks = [("settings", check_settings), ("offline cycle", check_offline_cycle)]
    checks += [(name, lambda name=name: run_example(name)) for name in EXAMPLE_SCRIPTS]

    failed = []
    for name, check in checks:
        print(f"-> {name}")
        try:
            check()
        except Exception:
            traceback.print_exc()
            failed.append(name)

    if failed:
        print(f"Smoke checks failed: {', '.join(failed)}")
        sys.exit(1)
    print(f"All {len(checks)} smoke checks passed")


if __name__ == "__main__":
    main()
