"""
State machine data models for the meal cycle lifecycle.

This module defines immutable data structures for glucose readings and meal
cycles. State changes never mutate a snapshot; the `with_*` helpers return a
new one, and only the cycle state machine calls them.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional


class ReadingKind(str, Enum):
    """Where a reading sits in the protocol."""
    PREPRANDIAL = "preprandial"
    POSTPRANDIAL = "postprandial"
    ADHOC = "adhoc"


class CycleStatus(str, Enum):
    """Persisted cycle status."""
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self is not CycleStatus.ACTIVE


class CyclePhase(str, Enum):
    """Lifecycle phase derived from status and startTime."""
    NO_CYCLE = "no_cycle"
    AWAITING_START = "awaiting_start"
    COLLECTING = "collecting"
    COMPLETED = "completed"
    ABANDONED = "abandoned"
    CANCELED = "canceled"


class TerminationReason(str, Enum):
    """Why a cycle left the active state."""
    FINAL_READING = "final_reading"
    USER_ABANDON = "user_abandon"
    USER_CANCEL = "user_cancel"
    CEILING_TIMEOUT = "ceiling_timeout"


@dataclass(frozen=True)
class Reading:
    """Single glucose reading."""

    id: str
    value: float
    timestamp: int                                    # Epoch ms
    kind: ReadingKind
    slot: Optional[int] = None                        # Minute offset for postprandial readings

    def to_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "id": self.id,
            "value": self.value,
            "timestamp": self.timestamp,
            "kind": self.kind.value,
        }
        if self.slot is not None:
            doc["slot"] = self.slot
        return doc

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "Reading":
        slot = doc.get("slot")
        return cls(
            id=doc["id"],
            value=doc["value"],
            timestamp=int(doc["timestamp"]),
            kind=ReadingKind(doc["kind"]),
            slot=int(slot) if slot is not None else None,
        )


@dataclass(frozen=True)
class MealCycle:
    """Snapshot of one meal cycle."""

    id: str
    owner_id: str
    unique_id: str
    created_at: int
    updated_at: int
    status: CycleStatus = CycleStatus.ACTIVE
    start_time: int = 0                               # 0 until first bite
    baseline: Optional[Reading] = None
    slots: Mapping[int, Reading] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "slots", MappingProxyType(dict(self.slots)))

    @property
    def is_active(self) -> bool:
        return self.status is CycleStatus.ACTIVE

    @property
    def is_started(self) -> bool:
        return self.start_time != 0

    @property
    def phase(self) -> CyclePhase:
        if self.status is CycleStatus.COMPLETED:
            return CyclePhase.COMPLETED
        if self.status is CycleStatus.ABANDONED:
            return CyclePhase.ABANDONED
        if self.status is CycleStatus.CANCELED:
            return CyclePhase.CANCELED
        return CyclePhase.COLLECTING if self.is_started else CyclePhase.AWAITING_START

    def with_start_time(self, start_time: int) -> "MealCycle":
        """Record the first bite."""
        return replace(self, start_time=start_time, updated_at=start_time)

    def with_reading(self, reading: Reading, now: int, completed: bool = False) -> "MealCycle":
        """Fill a slot, optionally completing the cycle in the same step."""
        slots = dict(self.slots)
        slots[reading.slot] = reading
        return replace(
            self,
            slots=slots,
            status=CycleStatus.COMPLETED if completed else self.status,
            updated_at=now,
        )

    def with_status(self, status: CycleStatus, now: int) -> "MealCycle":
        return replace(self, status=status, updated_at=now)

    def to_document(self) -> dict[str, Any]:
        """Remote document shape."""
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "uniqueId": self.unique_id,
            "startTime": self.start_time,
            "baseline": self.baseline.to_document() if self.baseline else None,
            "slots": {str(offset): r.to_document() for offset, r in sorted(self.slots.items())},
            "status": self.status.value,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "MealCycle":
        baseline = doc.get("baseline")
        return cls(
            id=doc["id"],
            owner_id=doc["ownerId"],
            unique_id=doc["uniqueId"],
            start_time=int(doc.get("startTime") or 0),
            baseline=Reading.from_document(baseline) if baseline else None,
            slots={int(k): Reading.from_document(v) for k, v in (doc.get("slots") or {}).items()},
            status=CycleStatus(doc["status"]),
            created_at=int(doc["createdAt"]),
            updated_at=int(doc["updatedAt"]),
        )
