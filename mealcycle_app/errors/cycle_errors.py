"""
Rejections raised synchronously by the cycle state machine.

None of these are ever queued or retried: the existing state wins and the
caller gets enough context to explain the rejection to the user.
"""

from typing import Any, Dict, Optional


class CycleError(Exception):
    """Base class for operations rejected at the state machine boundary."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = False


class ValidationError(CycleError):
    """Input or request that can never be accepted as submitted."""


class ReadingOutOfRangeError(ValidationError):
    """Reading value outside the plausible range."""

    def __init__(self, message: str, value: Optional[float] = None,
                 min_value: Optional[float] = None,
                 max_value: Optional[float] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.value = value
        self.min_value = min_value
        self.max_value = max_value


class UnknownSlotError(ValidationError):
    """Submission for an offset that is not part of the active profile."""

    def __init__(self, message: str, slot: Optional[int] = None,
                 offsets: Optional[tuple] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.slot = slot
        self.offsets = offsets or ()


class DuplicateSlotError(ValidationError):
    """Submission for a slot that already holds a reading."""

    def __init__(self, message: str, slot: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.slot = slot


class InvalidStateError(ValidationError):
    """Operation not allowed in the cycle's current phase."""

    def __init__(self, message: str, current_state: Optional[str] = None,
                 attempted_operation: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.current_state = current_state
        self.attempted_operation = attempted_operation


class ConflictError(InvalidStateError):
    """Another active cycle already exists for the owner."""

    def __init__(self, message: str, existing_cycle_id: Optional[str] = None,
                 **kwargs):
        super().__init__(message, **kwargs)
        self.existing_cycle_id = existing_cycle_id


class SlotWindowError(ValidationError):
    """Submission outside a slot's acceptance window."""

    def __init__(self, message: str, slot: Optional[int] = None,
                 elapsed_ms: Optional[int] = None,
                 window_start_ms: Optional[int] = None,
                 window_end_ms: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.slot = slot
        self.elapsed_ms = elapsed_ms
        self.window_start_ms = window_start_ms
        self.window_end_ms = window_end_ms


class WindowExpiredError(SlotWindowError):
    """Slot already missed: elapsed time is past offset plus grace."""


class TooEarlyError(SlotWindowError):
    """Slot not open yet: elapsed time is before offset minus early allowance."""
