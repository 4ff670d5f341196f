"""Errors raised by the cooperative locking protocol.

Contention and transient store failures are retried internally and never
surface here; everything below is fatal for the call that raised it.
"""


class LockError(Exception):
    """Base exception for cooperative locking errors."""


class LockValidationError(LockError, ValueError):
    """Raised when a caller passes invalid resources or arguments."""


class LockConsistencyError(LockError):
    """Raised when the persisted lock records contradict the requested change.

    Indicates either a protocol violation by the caller or that the lock was
    lost (expired and reclaimed, or tampered with externally).
    """


class ClientIdError(LockError):
    """Raised when the local host identity cannot be resolved."""


class LockOwnershipLostError(LockError):
    """Raised when a held lease could not be renewed."""

    def __init__(self, operation_id: str, reason: str | None = None):
        self.operation_id = operation_id
        self.reason = reason
        message = f"Lock ownership lost for operation {operation_id}"
        if reason:
            message += f": {reason}"
        super().__init__(message)
