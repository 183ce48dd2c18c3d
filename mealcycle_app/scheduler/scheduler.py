"""
Tick-driven reading-window scheduler.

Each tick reads the current cycle snapshot and emits one alert for every slot
that has entered its due window and has not been alerted yet. The scheduler
never writes cycle state.
"""

import threading
from typing import Optional

from ..logging.config import get_scheduler_logger
from ..notify.base import AlertSink, AlertUrgency
from ..state.machine import CycleStateMachine
from ..state.models import MealCycle
from ..utils.time import Clock
from .windows import SlotState, classify_slots

logger = get_scheduler_logger(__name__)

DEFAULT_ALERT_TITLE = "Time to check your glucose!"


class ReadingWindowScheduler:
    """Edge-triggered notifier over the cycle state machine."""

    def __init__(
        self,
        machine: CycleStateMachine,
        alert_sink: AlertSink,
        clock: Clock,
        tick_seconds: float = 1.0,
        alert_title: str = DEFAULT_ALERT_TITLE
    ):
        self.machine = machine
        self.alert_sink = alert_sink
        self.clock = clock
        self.tick_seconds = tick_seconds
        self.alert_title = alert_title
        self.logger = logger

        self._notified: set[int] = set()
        self._tracked_cycle_id: Optional[str] = None
        self._tick_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def tick(self) -> list[int]:
        """
        Evaluate the current cycle once.

        Returns:
            Offsets alerted during this tick
        """
        with self._tick_lock:
            cycle = self.machine.current()
            now = self.clock.now_ms()

            if cycle is None:
                self._reset_tracking(None)
                return []

            if cycle.id != self._tracked_cycle_id:
                self._reset_tracking(cycle.id)

            if not cycle.is_active:
                if self._notified:
                    self.logger.debug("Cycle ended, clearing notified slots",
                                      cycle_id=cycle.id, status=cycle.status.value)
                    self._notified.clear()
                return []

            fired = []
            for offset, state in classify_slots(cycle, self.machine.profile, now).items():
                if state is SlotState.DUE and offset not in self._notified:
                    self._notified.add(offset)
                    self._emit(cycle, offset)
                    fired.append(offset)
            return fired

    def _emit(self, cycle: MealCycle, offset: int) -> None:
        body = (
            f"It's been {offset} minutes since your first bite. "
            "Please record your blood glucose reading now."
        )
        try:
            self.alert_sink.emit_alert(self.alert_title, body, AlertUrgency.HIGH)
        except Exception as e:
            # Fire-and-forget: the slot still counts as notified
            self.logger.error("Alert sink failed", cycle_id=cycle.id, slot=offset,
                              sink=self.alert_sink.name, error=str(e))
            return

        self.logger.info("Reading alert emitted", cycle_id=cycle.id, slot=offset)

    def _reset_tracking(self, cycle_id: Optional[str]) -> None:
        self._tracked_cycle_id = cycle_id
        self._notified.clear()

    def reset(self) -> None:
        """Forget notified slots and the tracked cycle."""
        with self._tick_lock:
            self._reset_tracking(None)

    @property
    def notified_offsets(self) -> frozenset[int]:
        with self._tick_lock:
            return frozenset(self._notified)

    # Tick task

    def start(self) -> None:
        """Start the tick thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            name="reading-window-scheduler",
            daemon=True
        )
        self._thread.start()
        self.logger.info("Scheduler started", tick_seconds=self.tick_seconds)

    def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception as e:
                self.logger.error("Scheduler tick failed", error=str(e))
            self._stop_event.wait(self.tick_seconds)

    def stop(self) -> None:
        """Stop the tick thread and drop per-cycle state."""
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=self.tick_seconds + 1)
            self._thread = None
        self.reset()
        self.logger.info("Scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
