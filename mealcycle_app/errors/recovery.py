"""
Recovery strategy classifications for error handling.

Remote store failures are recoverable by construction: the mutation queue
keeps every operation until a batch commit succeeds.
"""

from typing import Optional


class RecoverableError(Exception):
    """Mixin for errors that can be recovered from automatically."""

    def __init__(self, message: str, retry_count: int = 0, **kwargs):
        super().__init__(message)
        self.retry_count = retry_count
        self.recoverable = True


class RemoteStoreError(RecoverableError):
    """Remote document store rejected or failed a request."""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 operation: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.operation = operation


class TransientStoreError(RemoteStoreError):
    """Network or server-side failure expected to clear on retry."""
