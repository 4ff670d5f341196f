"""Pydantic data models for cooplock.

This package defines the data structures of the lock protocol:
- Lock records and the versioned record set (LockRecord, LockRecordSet)
- Operation kinds (OperationType)
- Namespaced resource paths (ResourceId)

Example:
    >>> from cooplock.models import LockRecordSet
    >>> LockRecordSet().to_json()
    '{"formatVersion":3,"locks":[]}'
"""

from .lock import LockRecord, LockRecordSet, OperationType
from .resource import ResourceId

__all__ = [
    "LockRecord",
    "LockRecordSet",
    "OperationType",
    "ResourceId",
]
