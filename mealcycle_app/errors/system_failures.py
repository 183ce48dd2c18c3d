"""
System failure error classifications.

These exceptions represent failures of the local environment (configuration,
durable storage) rather than of a single user operation.
"""

from typing import Optional, Dict, Any


class SystemFailureError(Exception):
    """Base class for local system failures."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = False


class ConfigurationError(SystemFailureError):
    """Cycle profile or settings failed validation."""

    def __init__(self, message: str, issues: Optional[list] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.issues = issues or []


class PersistenceError(SystemFailureError):
    """Local durable storage failures."""

    def __init__(self, message: str, operation: Optional[str] = None,
                 target: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.operation = operation
        self.target = target


class StorageCorruptionError(PersistenceError):
    """Persisted pending-operation list could not be read back."""

    def __init__(self, message: str, raw_data: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.raw_data = raw_data
