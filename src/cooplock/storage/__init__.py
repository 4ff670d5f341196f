"""Object store backends for the lock file."""

from .base import (
    ObjectAlreadyExistsError,
    ObjectInfo,
    ObjectNotFoundError,
    ObjectStore,
    ObjectStoreError,
    PreconditionFailedError,
)
from .local import LocalObjectStore
from .memory import InMemoryObjectStore

__all__ = [
    "InMemoryObjectStore",
    "LocalObjectStore",
    "ObjectAlreadyExistsError",
    "ObjectInfo",
    "ObjectNotFoundError",
    "ObjectStore",
    "ObjectStoreError",
    "PreconditionFailedError",
]
