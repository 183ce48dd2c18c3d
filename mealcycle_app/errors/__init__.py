"""
Error classification system for the meal cycle core.

This module provides a structured exception hierarchy separating synchronous
rejections at the state machine boundary from remote store failures that the
mutation queue absorbs and retries, and from local system failures.
"""

from .cycle_errors import (
    CycleError,
    ValidationError,
    ReadingOutOfRangeError,
    UnknownSlotError,
    DuplicateSlotError,
    InvalidStateError,
    ConflictError,
    SlotWindowError,
    WindowExpiredError,
    TooEarlyError,
)
from .system_failures import (
    SystemFailureError,
    ConfigurationError,
    PersistenceError,
    StorageCorruptionError,
)
from .recovery import (
    RecoverableError,
    RemoteStoreError,
    TransientStoreError,
)

__all__ = [
    # Synchronous rejections
    "CycleError",
    "ValidationError",
    "ReadingOutOfRangeError",
    "UnknownSlotError",
    "DuplicateSlotError",
    "InvalidStateError",
    "ConflictError",
    "SlotWindowError",
    "WindowExpiredError",
    "TooEarlyError",
    # System Failures
    "SystemFailureError",
    "ConfigurationError",
    "PersistenceError",
    "StorageCorruptionError",
    # Recovery Categories
    "RecoverableError",
    "RemoteStoreError",
    "TransientStoreError",
]
