"""Durable local storage for the pending-operation list."""

import json
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence

from ..errors import PersistenceError, StorageCorruptionError
from ..logging.config import get_logger
from ..sync.models import PendingOperation

PENDING_OPERATIONS_KEY = "pendingOperations"


def serialize_operations(operations: Sequence[PendingOperation]) -> str:
    return json.dumps([op.to_dict() for op in operations])


def deserialize_operations(raw: str) -> list[PendingOperation]:
    """Parse a serialized list, raising StorageCorruptionError on any defect."""
    try:
        data = json.loads(raw)
        if not isinstance(data, list):
            raise ValueError("pending operations must be a list")
        return [PendingOperation.from_dict(item) for item in data]
    except (ValueError, KeyError, TypeError) as e:
        raise StorageCorruptionError(
            f"Unreadable pending operations: {e}",
            raw_data=raw[:200] if isinstance(raw, str) else None,
            operation="load",
            target=PENDING_OPERATIONS_KEY,
        )


class OperationStore(ABC):
    """Single serialized ordered list of pending operations."""

    @abstractmethod
    def load(self) -> list[PendingOperation]:
        """
        Read the persisted list.

        Raises StorageCorruptionError if the stored data is unreadable, and
        PersistenceError if the store itself is temporarily unavailable.
        """
        pass

    @abstractmethod
    def save(self, operations: Sequence[PendingOperation]) -> None:
        """Replace the persisted list. Raises PersistenceError on failure."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Discard the persisted list."""
        pass


class MemoryOperationStore(OperationStore):
    """Keeps the serialized list in memory; survives queue re-creation, not restarts."""

    def __init__(self, raw: Optional[str] = None):
        self.raw = raw
        self.save_count = 0

    def load(self) -> list[PendingOperation]:
        if self.raw is None:
            return []
        return deserialize_operations(self.raw)

    def save(self, operations: Sequence[PendingOperation]) -> None:
        self.raw = serialize_operations(operations)
        self.save_count += 1

    def clear(self) -> None:
        self.raw = None


class SqliteOperationStore(OperationStore):
    """SQLite-based pending operation persistence."""

    def __init__(self, db_path: str = "pending_operations.db"):
        self.db_path = Path(db_path)
        self.logger = get_logger("sync.store").bind(db_path=str(self.db_path))
        self._lock = threading.Lock()

        try:
            self._init_database()
        except sqlite3.DatabaseError as e:
            # Not a database at all; start over rather than block startup
            self.logger.critical(
                "Local queue database unreadable, recreating",
                error=str(e)
            )
            self.db_path.unlink(missing_ok=True)
            self._init_database()

    def _init_database(self) -> None:
        """Initialize database schema."""
        if self.db_path.parent and not self.db_path.parent.exists():
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._get_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS local_storage (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.commit()

    @contextmanager
    def _get_connection(self):
        """Get database connection with proper error handling."""
        conn = None
        try:
            conn = sqlite3.connect(self.db_path, timeout=30.0)
            conn.row_factory = sqlite3.Row
            yield conn
        except sqlite3.Error as e:
            if conn:
                conn.rollback()
            self.logger.error("Database error", error=str(e))
            raise
        finally:
            if conn:
                conn.close()

    def load(self) -> list[PendingOperation]:
        with self._lock:
            try:
                with self._get_connection() as conn:
                    row = conn.execute(
                        "SELECT value FROM local_storage WHERE key = ?",
                        (PENDING_OPERATIONS_KEY,)
                    ).fetchone()
            except sqlite3.OperationalError as e:
                # Locked, busy or unopenable: the stored list may still be intact
                raise PersistenceError(
                    f"Failed to read pending operations: {e}",
                    operation="load",
                    target=str(self.db_path),
                )
            except sqlite3.DatabaseError as e:
                raise StorageCorruptionError(
                    f"Pending operations database unreadable: {e}",
                    operation="load",
                    target=str(self.db_path),
                )

        if row is None:
            return []
        return deserialize_operations(row["value"])

    def save(self, operations: Sequence[PendingOperation]) -> None:
        raw = serialize_operations(operations)
        with self._lock:
            try:
                with self._get_connection() as conn:
                    conn.execute("""
                        INSERT OR REPLACE INTO local_storage (key, value, updated_at)
                        VALUES (?, ?, ?)
                    """, (
                        PENDING_OPERATIONS_KEY,
                        raw,
                        datetime.now(timezone.utc).isoformat()
                    ))
                    conn.commit()
            except sqlite3.Error as e:
                raise PersistenceError(
                    f"Failed to persist pending operations: {e}",
                    operation="save",
                    target=str(self.db_path),
                )

        self.logger.debug("Pending operations persisted", count=len(operations))

    def clear(self) -> None:
        with self._lock:
            try:
                with self._get_connection() as conn:
                    conn.execute(
                        "DELETE FROM local_storage WHERE key = ?",
                        (PENDING_OPERATIONS_KEY,)
                    )
                    conn.commit()
            except sqlite3.Error as e:
                raise PersistenceError(
                    f"Failed to clear pending operations: {e}",
                    operation="clear",
                    target=str(self.db_path),
                )
