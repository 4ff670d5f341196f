"""Core lock protocol: conflict detection, backoff, coordination and leases."""

from .backoff import ExponentialBackoff
from .client_id import new_client_id
from .conflicts import conflicts, is_child_path, paths_conflict
from .lease import OperationLease
from .lock_manager import (
    LockCoordinator,
    lock_file_id,
    parse_lock_records,
    read_lock_records,
    validate_resources,
)

__all__ = [
    "ExponentialBackoff",
    "LockCoordinator",
    "OperationLease",
    "conflicts",
    "is_child_path",
    "lock_file_id",
    "new_client_id",
    "parse_lock_records",
    "paths_conflict",
    "read_lock_records",
    "validate_resources",
]
