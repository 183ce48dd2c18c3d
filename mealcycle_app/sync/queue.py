"""
Offline-first mutation queue.

Every mutation staged by the cycle state machine lands here first and is
persisted locally before enqueue() returns. Flushes send the whole queue to
the remote store as one atomic batch; a failed batch leaves the queue exactly
as it was, so remote durability is eventual and nothing is lost or applied
twice by this side.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Optional

from ..errors import PersistenceError, StorageCorruptionError
from ..logging.config import get_sync_logger, log_flush_result
from ..persistence.operation_store import OperationStore
from ..remote.base import RemoteStore
from ..utils.time import Clock
from .models import (
    FlushResult,
    FlushStatus,
    OperationKind,
    PendingOperation,
    SyncState,
    SyncStatus,
)

logger = get_sync_logger(__name__)

Dispatcher = Callable[[Callable[[], Any]], Any]


class MutationQueue:
    """Durable, ordered, single-flight queue of document mutations."""

    def __init__(
        self,
        remote: RemoteStore,
        store: OperationStore,
        clock: Clock,
        online: bool = True,
        interval_seconds: float = 5.0,
        dispatch: Optional[Dispatcher] = None
    ):
        self.remote = remote
        self.store = store
        self.clock = clock
        self.interval_seconds = interval_seconds
        self.logger = logger

        self._lock = threading.Lock()
        self._online = online
        self._flushing = False
        self._closed = False
        self._ops: list[PendingOperation] = self._load_persisted()

        self._dispatch = dispatch or self._dispatch_background
        self._executor: Optional[ThreadPoolExecutor] = None
        self._stop_event = threading.Event()
        self._timer_thread: Optional[threading.Thread] = None

    def _load_persisted(self) -> list[PendingOperation]:
        """Read the persisted queue; an unreadable one is discarded."""
        try:
            ops = self.store.load()
        except StorageCorruptionError as e:
            self.logger.critical(
                "Discarding unreadable pending operations",
                error=str(e),
                raw_data=e.raw_data
            )
            try:
                self.store.clear()
            except PersistenceError as clear_error:
                self.logger.error(
                    "Failed to clear unreadable pending operations",
                    error=str(clear_error)
                )
            return []
        except PersistenceError as e:
            # Store unavailable, not unreadable; the persisted queue is kept
            self.logger.error(
                "Could not load pending operations",
                error=str(e),
                operation=e.operation
            )
            return []

        if ops:
            self.logger.info("Restored pending operations", count=len(ops))
        return ops

    def enqueue(self, op: PendingOperation) -> PendingOperation:
        """
        Append an operation and persist the queue.

        Returns once the operation is durable locally. If online, a flush is
        dispatched without waiting for it.

        Raises:
            PersistenceError: local storage rejected the write; the operation
                is not queued.
        """
        with self._lock:
            updated = self._ops + [op]
            self.store.save(updated)
            self._ops = updated
            online = self._online
            pending = len(updated)

        self.logger.info(
            "Operation enqueued",
            kind=op.kind.value,
            collection=op.collection,
            document_id=op.document_id,
            pending_count=pending,
            online=online
        )

        if online:
            self._trigger_flush()
        return op

    def stage(
        self,
        kind: OperationKind,
        collection: str,
        document_id: str,
        payload: Optional[dict[str, Any]] = None
    ) -> PendingOperation:
        """Build an operation stamped with the current time and enqueue it."""
        return self.enqueue(PendingOperation(
            kind=kind,
            collection=collection,
            document_id=document_id,
            payload=payload,
            enqueued_at=self.clock.now_ms(),
        ))

    def flush(self) -> FlushResult:
        """
        Commit every queued operation as one atomic batch.

        No-op when offline, when another flush is in flight, or when the
        queue is empty. Never raises: a failed commit leaves the queue
        untouched and is only logged.
        """
        with self._lock:
            if not self._online:
                return FlushResult(FlushStatus.OFFLINE, remaining_count=len(self._ops))
            if self._flushing:
                return FlushResult(FlushStatus.IN_FLIGHT, remaining_count=len(self._ops))
            if not self._ops:
                return FlushResult(FlushStatus.EMPTY)
            batch = list(self._ops)
            self._flushing = True

        try:
            self.remote.commit_batch(batch)
        except Exception as e:
            with self._lock:
                self._flushing = False
                remaining = len(self._ops)
            result = FlushResult(FlushStatus.FAILED, remaining_count=remaining, error=e)
            log_flush_result(self.logger, result.status.value, 0, remaining, error=e)
            return result

        with self._lock:
            # Only flush() removes entries, so the batch is still the queue's prefix
            del self._ops[:len(batch)]
            remaining_ops = list(self._ops)
            self._flushing = False

            try:
                self.store.save(remaining_ops)
            except PersistenceError as e:
                # Remote already has the batch; the next save rewrites the list
                self.logger.error(
                    "Failed to persist trimmed queue after flush",
                    error=str(e),
                    remaining_count=len(remaining_ops)
                )

        result = FlushResult(
            FlushStatus.FLUSHED,
            flushed_count=len(batch),
            remaining_count=len(remaining_ops),
        )
        log_flush_result(self.logger, result.status.value, len(batch), len(remaining_ops))
        return result

    def set_online(self, online: bool) -> Optional[FlushResult]:
        """
        Handle a connectivity change.

        Coming online flushes immediately; going offline only changes the
        advertised status.
        """
        with self._lock:
            was_online = self._online
            self._online = online

        if online == was_online:
            return None

        self.logger.info("Connectivity changed", online=online)
        if online:
            return self.flush()
        return None

    def sync_tick(self) -> Optional[FlushResult]:
        """Periodic retry: flush while online and non-empty."""
        with self._lock:
            should_flush = self._online and bool(self._ops)
        if should_flush:
            return self.flush()
        return None

    def start_sync_timer(self) -> None:
        """Start the periodic flush timer thread and reopen background flushing."""
        with self._lock:
            self._closed = False
        if self._timer_thread and self._timer_thread.is_alive():
            return

        self._stop_event.clear()
        self._timer_thread = threading.Thread(
            target=self._timer_loop,
            name="mutation-queue-sync",
            daemon=True
        )
        self._timer_thread.start()
        self.logger.info("Sync timer started", interval_seconds=self.interval_seconds)

    def _timer_loop(self) -> None:
        while not self._stop_event.wait(self.interval_seconds):
            try:
                self.sync_tick()
            except Exception as e:
                self.logger.error("Sync timer tick failed", error=str(e))

    def stop(self) -> None:
        """Tear down the timer and background flush worker."""
        self._stop_event.set()
        if self._timer_thread:
            self._timer_thread.join(timeout=self.interval_seconds + 1)
            self._timer_thread = None

        with self._lock:
            self._closed = True
            executor, self._executor = self._executor, None
        if executor:
            executor.shutdown(wait=True)

        self.logger.info("Mutation queue stopped", pending_count=len(self))

    def _trigger_flush(self) -> None:
        try:
            self._dispatch(self.flush)
        except RuntimeError as e:
            # Executor already shut down; the operation stays queued
            self.logger.debug("Flush dispatch skipped", error=str(e))

    def _dispatch_background(self, fn: Callable[[], Any]) -> None:
        with self._lock:
            if self._closed:
                return
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=1,
                    thread_name_prefix="mutation-flush"
                )
            executor = self._executor
        executor.submit(fn)

    @property
    def online(self) -> bool:
        return self._online

    def sync_status(self) -> SyncStatus:
        with self._lock:
            if self._flushing:
                state = SyncState.SYNCING
            elif self._ops:
                state = SyncState.PENDING
            else:
                state = SyncState.SYNCED
            return SyncStatus(state=state, pending_count=len(self._ops), online=self._online)

    def pending_operations(self) -> tuple[PendingOperation, ...]:
        with self._lock:
            return tuple(self._ops)

    def __len__(self) -> int:
        with self._lock:
            return len(self._ops)
