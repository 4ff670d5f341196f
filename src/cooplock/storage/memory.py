"""In-process object store."""

import threading
from collections.abc import Mapping
from dataclasses import dataclass, field

from ..models import ResourceId
from .base import (
    ObjectAlreadyExistsError,
    ObjectInfo,
    ObjectNotFoundError,
    PreconditionFailedError,
)


@dataclass
class _StoredObject:
    version: int = 1
    metadata: dict[str, str] = field(default_factory=dict)


class InMemoryObjectStore:
    """Thread-safe dictionary-backed object store.

    Every metadata update increments the object version, so concurrent
    read-modify-write cycles from several threads behave like they would
    against a remote store.
    """

    def __init__(self) -> None:
        self._objects: dict[ResourceId, _StoredObject] = {}
        self._lock = threading.Lock()

    def get_info(self, object_id: ResourceId) -> ObjectInfo:
        with self._lock:
            stored = self._objects.get(object_id)
            if stored is None:
                return ObjectInfo.missing(object_id)
            return ObjectInfo(
                object_id=object_id,
                exists=True,
                version=stored.version,
                metadata=dict(stored.metadata),
            )

    def create_empty(self, object_id: ResourceId) -> None:
        with self._lock:
            if object_id in self._objects:
                raise ObjectAlreadyExistsError(f"{object_id} already exists")
            self._objects[object_id] = _StoredObject()

    def update_metadata(
        self, object_id: ResourceId, version: int, metadata: Mapping[str, str]
    ) -> None:
        with self._lock:
            stored = self._check_version(object_id, version)
            stored.metadata = dict(metadata)
            stored.version += 1

    def delete(self, object_id: ResourceId, version: int) -> None:
        with self._lock:
            self._check_version(object_id, version)
            del self._objects[object_id]

    def exists(self, object_id: ResourceId) -> bool:
        with self._lock:
            return object_id in self._objects

    def _check_version(self, object_id: ResourceId, version: int) -> _StoredObject:
        stored = self._objects.get(object_id)
        if stored is None:
            raise ObjectNotFoundError(f"{object_id} not found")
        if stored.version != version:
            raise PreconditionFailedError(
                f"{object_id} is at version {stored.version}, expected {version}"
            )
        return stored
