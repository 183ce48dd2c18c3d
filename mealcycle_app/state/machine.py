"""
Core meal cycle state machine.

This module implements the cycle lifecycle and slot-submission rules. Every
change is staged on the mutation queue before the new snapshot becomes
visible locally, so a mutation that could not be made durable never shows up
as applied.
"""

import threading
import uuid
from typing import Callable, Iterable, Optional

from ..config.defaults import CycleProfile, ReadingLimits, SyncParams
from ..errors import (
    ConflictError,
    DuplicateSlotError,
    InvalidStateError,
    ReadingOutOfRangeError,
    TooEarlyError,
    UnknownSlotError,
    WindowExpiredError,
)
from ..logging.config import get_state_logger, log_state_transition
from ..sync.models import OperationKind
from ..sync.queue import MutationQueue
from ..utils.time import Clock, minutes_to_ms
from .models import (
    CyclePhase,
    CycleStatus,
    MealCycle,
    Reading,
    ReadingKind,
    TerminationReason,
)

state_logger = get_state_logger(__name__)


def check_reading_value(value: float, limits: ReadingLimits) -> None:
    """Reject values outside the plausible range."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ReadingOutOfRangeError(f"Reading value must be a number, got {value!r}")
    if not limits.min_value <= value <= limits.max_value:
        raise ReadingOutOfRangeError(
            f"Reading {value} outside plausible range "
            f"{limits.min_value}-{limits.max_value}",
            value=value,
            min_value=limits.min_value,
            max_value=limits.max_value,
        )


def slot_window_ms(offset: int, profile: CycleProfile) -> tuple[int, int]:
    """Acceptance window for a slot as [start, end) in ms since first bite."""
    return (
        minutes_to_ms(offset - profile.early_allowance_minutes),
        minutes_to_ms(offset + profile.grace_minutes),
    )


def check_slot_window(offset: int, elapsed: int, profile: CycleProfile) -> None:
    """Raise TooEarlyError or WindowExpiredError if elapsed is outside the slot window."""
    start, end = slot_window_ms(offset, profile)
    if elapsed >= end:
        raise WindowExpiredError(
            f"The {offset}-minute reading window closed "
            f"{profile.grace_minutes} minutes after it opened",
            slot=offset,
            elapsed_ms=elapsed,
            window_start_ms=start,
            window_end_ms=end,
        )
    if elapsed < start:
        raise TooEarlyError(
            f"The {offset}-minute reading is not open yet",
            slot=offset,
            elapsed_ms=elapsed,
            window_start_ms=start,
            window_end_ms=end,
        )


def ceiling_reached(cycle: MealCycle, profile: CycleProfile, now: int) -> bool:
    """True once a started, still active cycle has run past the whole-cycle ceiling."""
    if not cycle.is_active or not cycle.is_started:
        return False
    return now - cycle.start_time >= minutes_to_ms(profile.ceiling_minutes)


def _new_id() -> str:
    return uuid.uuid4().hex


class CycleStateMachine:
    """Owns one owner's meal cycles and every mutation made to them."""

    def __init__(
        self,
        owner_id: str,
        profile: CycleProfile,
        queue: MutationQueue,
        clock: Clock,
        limits: Optional[ReadingLimits] = None,
        sync_params: Optional[SyncParams] = None,
        id_factory: Optional[Callable[[], str]] = None
    ):
        self.owner_id = owner_id
        self.queue = queue
        self.clock = clock
        self.limits = limits or ReadingLimits()
        sync_params = sync_params or SyncParams()
        self.cycles_collection = sync_params.cycles_collection
        self.adhoc_collection = sync_params.adhoc_collection
        self.logger = state_logger.bind(owner_id=owner_id)

        self._profile = profile
        self._id_factory = id_factory or _new_id
        self._cycles: dict[str, MealCycle] = {}
        self._adhoc: list[Reading] = []
        # The scheduler tick thread reads concurrently
        self._lock = threading.RLock()

    @property
    def profile(self) -> CycleProfile:
        return self._profile

    def set_profile(self, profile: CycleProfile) -> None:
        """Swap the sampling profile; never allowed mid-cycle."""
        with self._lock:
            self._refresh(self.clock.now_ms())
            active = self._active()
            if active is not None:
                raise ConflictError(
                    "Cannot change the cycle profile while a cycle is active",
                    existing_cycle_id=active.id,
                    current_state=active.phase.value,
                    attempted_operation="set_profile",
                )
            self._profile = profile
            self.logger.info("Cycle profile changed", profile=profile.name)

    # Lifecycle operations

    def start(self, baseline_value: float) -> MealCycle:
        """Create a new active cycle with its baseline (preprandial) reading."""
        check_reading_value(baseline_value, self.limits)

        with self._lock:
            now = self.clock.now_ms()
            self._refresh(now)

            active = self._active()
            if active is not None:
                raise ConflictError(
                    "An active meal cycle already exists",
                    existing_cycle_id=active.id,
                    current_state=active.phase.value,
                    attempted_operation="start",
                )

            cycle_id = self._id_factory()
            cycle = MealCycle(
                id=cycle_id,
                owner_id=self.owner_id,
                unique_id=str(uuid.uuid4()),
                created_at=now,
                updated_at=now,
                baseline=Reading(
                    id=f"{cycle_id}_pre",
                    value=baseline_value,
                    timestamp=now,
                    kind=ReadingKind.PREPRANDIAL,
                ),
            )

            self._commit(
                cycle,
                OperationKind.CREATE,
                cycle.to_document(),
                from_phase=CyclePhase.NO_CYCLE,
                trigger="start",
                context={"baseline_value": baseline_value, "profile": self._profile.name},
            )
            return cycle

    def mark_start_event(self) -> MealCycle:
        """Record the first bite; starts the sampling clock."""
        with self._lock:
            now = self.clock.now_ms()
            cycle = self._require_active("mark_start_event")
            if cycle.is_started:
                raise InvalidStateError(
                    "First bite already recorded for this cycle",
                    current_state=cycle.phase.value,
                    attempted_operation="mark_start_event",
                )

            updated = cycle.with_start_time(now)
            self._commit(
                updated,
                OperationKind.UPDATE,
                {"startTime": now, "updatedAt": now},
                from_phase=cycle.phase,
                trigger="first_bite",
            )
            return updated

    def submit_reading(self, offset: int, value: float) -> MealCycle:
        """
        Fill a postprandial slot.

        Rejection order: lifecycle state, value range, the whole-cycle ceiling,
        unknown offset, duplicate slot, then the slot window. Filling the
        profile's last offset completes the cycle in the same mutation; past
        the ceiling that completion still wins while its own window is open.
        """
        with self._lock:
            now = self.clock.now_ms()
            # Ceiling is checked below so expiry rejects with WindowExpiredError
            cycle = self._require_active("submit_reading", refresh=False)

            if not cycle.is_started:
                raise InvalidStateError(
                    "Record the first bite before submitting readings",
                    current_state=cycle.phase.value,
                    attempted_operation="submit_reading",
                )

            check_reading_value(value, self.limits)

            profile = self._profile
            elapsed = now - cycle.start_time
            completes_in_window = (
                offset == profile.last_offset
                and elapsed < minutes_to_ms(offset + profile.grace_minutes)
            )
            if ceiling_reached(cycle, profile, now) and not completes_in_window:
                self._timeout(cycle, now)
                start, end = slot_window_ms(offset, profile)
                raise WindowExpiredError(
                    "Meal cycle ran past its time limit and was abandoned",
                    slot=offset,
                    elapsed_ms=elapsed,
                    window_start_ms=start,
                    window_end_ms=end,
                )

            if not profile.has_offset(offset):
                raise UnknownSlotError(
                    f"{offset} is not a sampling offset of profile '{profile.name}'",
                    slot=offset,
                    offsets=profile.offsets,
                )

            if offset in cycle.slots:
                raise DuplicateSlotError(
                    f"The {offset}-minute reading was already recorded",
                    slot=offset,
                )

            check_slot_window(offset, elapsed, profile)

            reading = Reading(
                id=f"{cycle.id}_{offset}",
                value=value,
                timestamp=now,
                kind=ReadingKind.POSTPRANDIAL,
                slot=offset,
            )
            completed = offset == profile.last_offset
            updated = cycle.with_reading(reading, now, completed=completed)

            payload = {
                f"slots.{offset}": reading.to_document(),
                "status": updated.status.value,
                "updatedAt": now,
            }
            self._commit(
                updated,
                OperationKind.UPDATE,
                payload,
                from_phase=cycle.phase,
                trigger=TerminationReason.FINAL_READING.value if completed else "reading",
                context={"slot": offset, "value": value, "elapsed_ms": elapsed},
            )
            return updated

    def abandon(self) -> MealCycle:
        """Abandon the active cycle; no-op if the latest cycle is already terminal."""
        return self._terminate(CycleStatus.ABANDONED, TerminationReason.USER_ABANDON)

    def cancel(self) -> MealCycle:
        """Cancel the active cycle; no-op if the latest cycle is already terminal."""
        return self._terminate(CycleStatus.CANCELED, TerminationReason.USER_CANCEL)

    def delete_cycle(self, cycle_id: str) -> MealCycle:
        """Remove a terminal cycle from history."""
        with self._lock:
            self._refresh(self.clock.now_ms())

            cycle = self._cycles.get(cycle_id)
            if cycle is None:
                raise InvalidStateError(
                    f"Unknown meal cycle {cycle_id}",
                    current_state=CyclePhase.NO_CYCLE.value,
                    attempted_operation="delete_cycle",
                )
            if cycle.is_active:
                raise InvalidStateError(
                    "Only finished meal cycles can be deleted",
                    current_state=cycle.phase.value,
                    attempted_operation="delete_cycle",
                )

            self.queue.stage(OperationKind.DELETE, self.cycles_collection, cycle_id)
            del self._cycles[cycle_id]
            self.logger.info("Meal cycle deleted", cycle_id=cycle_id,
                             final_state=cycle.phase.value)
            return cycle

    def record_adhoc_reading(self, value: float) -> Reading:
        """Store an off-protocol reading in its own collection."""
        check_reading_value(value, self.limits)

        with self._lock:
            now = self.clock.now_ms()
            reading = Reading(
                id=self._id_factory(),
                value=value,
                timestamp=now,
                kind=ReadingKind.ADHOC,
            )
            payload = reading.to_document()
            payload.update({"ownerId": self.owner_id, "createdAt": now, "updatedAt": now})

            self.queue.stage(OperationKind.CREATE, self.adhoc_collection, reading.id, payload)
            self._adhoc.append(reading)
            self.logger.info("Ad hoc reading recorded", reading_id=reading.id, value=value)
            return reading

    def restore(self, cycles: Iterable[MealCycle]) -> None:
        """Replace local state with cycles read back from the remote store."""
        restored = sorted(
            (c for c in cycles if c.owner_id == self.owner_id),
            key=lambda c: c.created_at,
        )
        active = [c for c in restored if c.is_active]
        if len(active) > 1:
            raise ConflictError(
                f"{len(active)} active meal cycles found for owner",
                existing_cycle_id=active[-1].id,
                attempted_operation="restore",
            )

        with self._lock:
            self._cycles = {c.id: c for c in restored}
            self.logger.info("Meal cycles restored", count=len(restored),
                             active_cycle_id=active[0].id if active else None)
            self._refresh(self.clock.now_ms())

    def restore_adhoc(self, readings: Iterable[Reading]) -> None:
        """Replace local ad hoc readings with ones read back from the remote store."""
        restored = [r for r in readings if r.kind is ReadingKind.ADHOC]
        with self._lock:
            self._adhoc = restored
        self.logger.info("Ad hoc readings restored", count=len(restored))

    # Reads; each one enforces the whole-cycle ceiling first

    def current(self) -> Optional[MealCycle]:
        """Latest cycle (active or most recently finished), or None."""
        with self._lock:
            self._refresh(self.clock.now_ms())
            return self._latest()

    def active_cycle(self) -> Optional[MealCycle]:
        with self._lock:
            self._refresh(self.clock.now_ms())
            return self._active()

    def get(self, cycle_id: str) -> Optional[MealCycle]:
        with self._lock:
            self._refresh(self.clock.now_ms())
            return self._cycles.get(cycle_id)

    def history(self) -> list[MealCycle]:
        """All tracked cycles, newest first."""
        with self._lock:
            self._refresh(self.clock.now_ms())
            return list(reversed(list(self._cycles.values())))

    def adhoc_readings(self) -> list[Reading]:
        """Ad hoc readings, newest first."""
        with self._lock:
            return sorted(self._adhoc, key=lambda r: r.timestamp, reverse=True)

    def phase(self) -> CyclePhase:
        latest = self.current()
        return latest.phase if latest else CyclePhase.NO_CYCLE

    # Internals

    def _active(self) -> Optional[MealCycle]:
        for cycle in self._cycles.values():
            if cycle.is_active:
                return cycle
        return None

    def _latest(self) -> Optional[MealCycle]:
        if not self._cycles:
            return None
        return next(reversed(self._cycles.values()))

    def _require_active(self, operation: str, refresh: bool = True) -> MealCycle:
        if refresh:
            self._refresh(self.clock.now_ms())
        cycle = self._active()
        if cycle is None:
            latest = self._latest()
            raise InvalidStateError(
                "No active meal cycle" if latest is None
                else f"Meal cycle is already {latest.status.value}",
                current_state=latest.phase.value if latest else CyclePhase.NO_CYCLE.value,
                attempted_operation=operation,
            )
        return cycle

    def _refresh(self, now: int) -> None:
        active = self._active()
        if active is not None and ceiling_reached(active, self._profile, now):
            self._timeout(active, now)

    def _timeout(self, cycle: MealCycle, now: int) -> MealCycle:
        updated = cycle.with_status(CycleStatus.ABANDONED, now)
        self._commit(
            updated,
            OperationKind.UPDATE,
            {"status": CycleStatus.ABANDONED.value, "updatedAt": now},
            from_phase=cycle.phase,
            trigger=TerminationReason.CEILING_TIMEOUT.value,
            context={
                "elapsed_ms": now - cycle.start_time,
                "ceiling_minutes": self._profile.ceiling_minutes,
                "filled_slots": sorted(cycle.slots),
            },
        )
        return updated

    def _terminate(self, status: CycleStatus, reason: TerminationReason) -> MealCycle:
        with self._lock:
            now = self.clock.now_ms()
            self._refresh(now)

            cycle = self._active()
            if cycle is None:
                latest = self._latest()
                if latest is None:
                    raise InvalidStateError(
                        "No meal cycle to end",
                        current_state=CyclePhase.NO_CYCLE.value,
                        attempted_operation=reason.value,
                    )
                return latest

            updated = cycle.with_status(status, now)
            self._commit(
                updated,
                OperationKind.UPDATE,
                {"status": status.value, "updatedAt": now},
                from_phase=cycle.phase,
                trigger=reason.value,
            )
            return updated

    def _commit(
        self,
        cycle: MealCycle,
        kind: OperationKind,
        payload: dict,
        from_phase: CyclePhase,
        trigger: str,
        context: Optional[dict] = None
    ) -> None:
        """Stage the mutation durably, then publish the new snapshot."""
        self.queue.stage(kind, self.cycles_collection, cycle.id, payload)
        self._cycles[cycle.id] = cycle

        log_state_transition(
            self.logger,
            cycle_id=cycle.id,
            from_state=from_phase.value,
            to_state=cycle.phase.value,
            trigger=trigger,
            context=context,
        )
