"""Pytest configuration and shared fixtures."""

import itertools
from typing import Callable

import pytest

from mealcycle_app.config.defaults import CycleProfile, ReadingLimits
from mealcycle_app.notify.base import AlertSink, AlertUrgency
from mealcycle_app.persistence.operation_store import MemoryOperationStore
from mealcycle_app.remote.memory_store import InMemoryRemoteStore
from mealcycle_app.state.machine import CycleStateMachine
from mealcycle_app.sync.queue import MutationQueue
from mealcycle_app.utils.time import ManualClock

# 2023-01-01T12:00:00Z
START_MS = 1672574400000
OWNER_ID = "user-1"


class RecordingAlertSink(AlertSink):
    """Alert sink that keeps every alert for assertions."""

    def __init__(self, name: str = "recording"):
        super().__init__(name)
        self.alerts: list[tuple[str, str, AlertUrgency]] = []

    def emit_alert(self, title: str, body: str, urgency: AlertUrgency) -> None:
        self.alerts.append((title, body, urgency))
        self._alert_count += 1


def run_now(fn: Callable):
    """Synchronous dispatcher: flushes run inline."""
    return fn()


def run_never(fn: Callable):
    """Dispatcher that drops background flushes; tests flush explicitly."""
    return None


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(START_MS)


@pytest.fixture
def profile() -> CycleProfile:
    """Short profile used throughout the scenario tests."""
    return CycleProfile(
        name="short",
        offsets=(5, 10, 15),
        grace_minutes=2,
        early_allowance_minutes=2,
        ceiling_minutes=40,
    )


@pytest.fixture
def limits() -> ReadingLimits:
    return ReadingLimits()


@pytest.fixture
def op_store() -> MemoryOperationStore:
    return MemoryOperationStore()


@pytest.fixture
def remote() -> InMemoryRemoteStore:
    return InMemoryRemoteStore()


@pytest.fixture
def alert_sink() -> RecordingAlertSink:
    return RecordingAlertSink()


@pytest.fixture
def queue(remote, op_store, clock) -> MutationQueue:
    """Queue whose enqueue-triggered flushes never run; tests flush explicitly."""
    q = MutationQueue(remote=remote, store=op_store, clock=clock, dispatch=run_never)
    yield q
    q.stop()


@pytest.fixture
def id_factory() -> Callable[[], str]:
    counter = itertools.count(1)
    return lambda: f"cycle-{next(counter)}"


@pytest.fixture
def machine(queue, profile, clock, limits, id_factory) -> CycleStateMachine:
    return CycleStateMachine(
        owner_id=OWNER_ID,
        profile=profile,
        queue=queue,
        clock=clock,
        limits=limits,
        id_factory=id_factory,
    )
