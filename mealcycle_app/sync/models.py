"""Data models for the offline mutation queue."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional


class OperationKind(str, Enum):
    """Document mutation type."""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class PendingOperation:
    """A queued create/update/delete intent against one remote document."""

    kind: OperationKind
    collection: str
    document_id: str
    enqueued_at: int                                  # Epoch ms
    payload: Optional[dict[str, Any]] = None          # None for deletes

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "collection": self.collection,
            "documentId": self.document_id,
            "payload": self.payload,
            "enqueuedAt": self.enqueued_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PendingOperation":
        return cls(
            kind=OperationKind(data["kind"]),
            collection=data["collection"],
            document_id=data["documentId"],
            payload=data.get("payload"),
            enqueued_at=int(data["enqueuedAt"]),
        )


class SyncState(str, Enum):
    """Advertised synchronization state."""
    SYNCED = "synced"
    PENDING = "pending"
    SYNCING = "syncing"


@dataclass(frozen=True)
class SyncStatus:
    """Derived sync status; never persisted."""
    state: SyncState
    pending_count: int
    online: bool


class FlushStatus(str, Enum):
    """Outcome of a single flush() call."""
    FLUSHED = "flushed"
    EMPTY = "empty"
    OFFLINE = "offline"
    IN_FLIGHT = "in_flight"
    FAILED = "failed"


@dataclass(frozen=True)
class FlushResult:
    """Result of a flush attempt."""
    status: FlushStatus
    flushed_count: int = 0
    remaining_count: int = 0
    error: Optional[Exception] = None
