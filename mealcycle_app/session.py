"""
Meal cycle session coordinator.

One session per signed-in owner: it owns the mutation queue, the cycle state
machine and the reading-window scheduler, wires them to a shared clock, and
tears every timer down when the owner signs out.
"""

import copy
from typing import Any, Callable, Optional

from .config.defaults import CycleProfile
from .config.loader import AppSettings, ConfigLoader
from .errors import RemoteStoreError
from .logging.config import bind_session_context, clear_session_context, get_logger
from .notify.base import AlertSink
from .notify.console_alert import ConsoleAlertSink
from .persistence.operation_store import OperationStore, SqliteOperationStore
from .remote.base import DocumentMap, RemoteStore, apply_operation
from .scheduler.scheduler import ReadingWindowScheduler
from .scheduler.windows import NextDue, SlotState, classify_slots, next_due
from .state.machine import CycleStateMachine
from .state.models import MealCycle, Reading
from .state.summary import CycleSummary, summarize_cycle
from .sync.models import SyncStatus
from .sync.queue import Dispatcher, MutationQueue
from .utils.time import Clock, SystemClock

logger = get_logger(__name__)


class MealCycleSession:
    """
    Explicitly constructed owner session.

    Usage:
        with MealCycleSession("user-1", remote_store) as session:
            session.start_cycle(95)
            session.mark_first_bite()
    """

    def __init__(
        self,
        owner_id: str,
        remote_store: RemoteStore,
        operation_store: Optional[OperationStore] = None,
        alert_sink: Optional[AlertSink] = None,
        settings: Optional[AppSettings] = None,
        clock: Optional[Clock] = None,
        online: bool = True,
        dispatch: Optional[Dispatcher] = None,
        id_factory: Optional[Callable[[], str]] = None
    ) -> None:
        """Initialize the session and its components."""
        self.owner_id = owner_id
        self.settings = settings or ConfigLoader.create().load_settings()
        self.clock = clock or SystemClock()
        self.remote_store = remote_store
        self.logger = logger.bind(owner_id=owner_id)

        self.queue = MutationQueue(
            remote=remote_store,
            store=operation_store or SqliteOperationStore(self.settings.sync.db_path),
            clock=self.clock,
            online=online,
            interval_seconds=self.settings.sync.interval_seconds,
            dispatch=dispatch,
        )
        self.machine = CycleStateMachine(
            owner_id=owner_id,
            profile=self.settings.profile,
            queue=self.queue,
            clock=self.clock,
            limits=self.settings.readings,
            sync_params=self.settings.sync,
            id_factory=id_factory,
        )
        self.scheduler = ReadingWindowScheduler(
            machine=self.machine,
            alert_sink=alert_sink or ConsoleAlertSink(),
            clock=self.clock,
            tick_seconds=self.settings.scheduler.tick_seconds,
            alert_title=self.settings.scheduler.alert_title,
        )
        self._started = False

        self.logger.info("Meal cycle session initialized", profile=self.settings.profile.name)

    # Lifecycle

    def start(self, hydrate: bool = True) -> None:
        """Load history, then start the sync timer and the scheduler tick."""
        if self._started:
            return
        bind_session_context(self.owner_id, self.machine.profile.name)
        if hydrate:
            self.hydrate()
        self.queue.start_sync_timer()
        self.scheduler.start()
        self._started = True

    def stop(self) -> None:
        """Tear down timers (e.g. on logout). Pending operations stay persisted."""
        self.scheduler.stop()
        self.queue.stop()
        self._started = False
        self.logger.info("Meal cycle session stopped", pending_count=len(self.queue))
        clear_session_context()

    def __enter__(self) -> "MealCycleSession":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def hydrate(self) -> bool:
        """
        Rebuild local cycles and ad hoc readings from the remote store.

        Operations still waiting in the queue are replayed over the fetched
        documents so unsynced work is not lost from view. Returns False if the
        remote store could not be read; the session then continues from the
        queued operations alone.
        """
        cycle_docs, cycles_fetched = self._load_collection(self.machine.cycles_collection)
        adhoc_docs, adhoc_fetched = self._load_collection(self.machine.adhoc_collection)

        self.machine.restore([MealCycle.from_document(doc) for doc in cycle_docs])
        self.machine.restore_adhoc([Reading.from_document(doc) for doc in adhoc_docs])
        return cycles_fetched and adhoc_fetched

    def _load_collection(self, collection: str) -> tuple[list[dict[str, Any]], bool]:
        """Owner's documents in one collection with queued operations replayed."""
        documents: DocumentMap = {collection: {}}
        fetched = True

        try:
            for doc in self.remote_store.query_documents(collection, "ownerId", self.owner_id):
                documents[collection][doc["id"]] = doc
        except RemoteStoreError as e:
            fetched = False
            self.logger.warning("Could not load documents from remote store",
                                collection=collection, error=str(e))

        for op in self.queue.pending_operations():
            if op.collection != collection:
                continue
            try:
                apply_operation(documents, op)
            except RemoteStoreError as e:
                self.logger.warning("Skipping unreplayable pending operation",
                                    document_id=op.document_id, error=str(e))

        return [copy.deepcopy(doc) for doc in documents[collection].values()], fetched

    # Connectivity

    def set_online(self, online: bool) -> None:
        self.queue.set_online(online)

    def sync_status(self) -> SyncStatus:
        return self.queue.sync_status()

    # Cycle operations

    def start_cycle(self, baseline_value: float) -> MealCycle:
        return self.machine.start(baseline_value)

    def mark_first_bite(self) -> MealCycle:
        return self.machine.mark_start_event()

    def submit_reading(self, offset: int, value: float) -> MealCycle:
        return self.machine.submit_reading(offset, value)

    def abandon_cycle(self) -> MealCycle:
        return self.machine.abandon()

    def cancel_cycle(self) -> MealCycle:
        return self.machine.cancel()

    def delete_cycle(self, cycle_id: str) -> MealCycle:
        return self.machine.delete_cycle(cycle_id)

    def record_adhoc_reading(self, value: float) -> Reading:
        return self.machine.record_adhoc_reading(value)

    def change_profile(self, profile: CycleProfile) -> None:
        self.machine.set_profile(profile)

    # Views

    def current_cycle(self) -> Optional[MealCycle]:
        return self.machine.current()

    def history(self) -> list[MealCycle]:
        return self.machine.history()

    def adhoc_readings(self) -> list[Reading]:
        return self.machine.adhoc_readings()

    def slot_states(self) -> dict[int, SlotState]:
        cycle = self.machine.current()
        if cycle is None:
            return {}
        return classify_slots(cycle, self.machine.profile, self.clock.now_ms())

    def next_due(self) -> Optional[NextDue]:
        cycle = self.machine.current()
        if cycle is None:
            return None
        return next_due(cycle, self.machine.profile, self.clock.now_ms())

    def summary(self, cycle_id: str) -> Optional[CycleSummary]:
        cycle = self.machine.get(cycle_id)
        if cycle is None:
            return None
        return summarize_cycle(cycle, self.machine.profile, self.clock.now_ms())

    def get_stats(self) -> dict[str, Any]:
        """Operational snapshot for diagnostics."""
        status = self.queue.sync_status()
        current = self.machine.current()
        return {
            "owner_id": self.owner_id,
            "profile": self.machine.profile.name,
            "phase": self.machine.phase().value,
            "current_cycle_id": current.id if current else None,
            "sync_state": status.state.value,
            "pending_operations": status.pending_count,
            "online": status.online,
            "scheduler_running": self.scheduler.is_running,
            "alerts": self.scheduler.alert_sink.get_stats(),
        }
