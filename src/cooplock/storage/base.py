"""Object store contract required by the lock protocol.

The lock coordinator only needs four operations on a single object: read its
metadata and version, create it if absent, and update or delete it
conditionally on the version that was read. Any store with version tokens
(generation numbers, ETags, revision counters) can supply them.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol

from ..models import ResourceId


class ObjectStoreError(Exception):
    """Base exception for object store failures. Retried by the lock loop."""


class PreconditionFailedError(ObjectStoreError):
    """Raised when the object version changed since it was read."""


class ObjectNotFoundError(ObjectStoreError):
    """Raised when the object does not exist."""


class ObjectAlreadyExistsError(ObjectStoreError):
    """Raised when creating an object that already exists."""


@dataclass(frozen=True)
class ObjectInfo:
    """Snapshot of an object's version and metadata.

    Attributes:
        object_id: Object the snapshot was read from.
        exists: Whether the object exists.
        version: Metadata version token; 0 for a missing object.
        metadata: Key/value metadata of the object.
    """

    object_id: ResourceId
    exists: bool
    version: int = 0
    metadata: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def missing(cls, object_id: ResourceId) -> "ObjectInfo":
        return cls(object_id=object_id, exists=False)


class ObjectStore(Protocol):
    """Backend abstraction for the lock file object."""

    def get_info(self, object_id: ResourceId) -> ObjectInfo:
        """Read current version and metadata. Missing objects report exists=False."""

    def create_empty(self, object_id: ResourceId) -> None:
        """Create an empty object. Raises ObjectAlreadyExistsError if present."""

    def update_metadata(
        self, object_id: ResourceId, version: int, metadata: Mapping[str, str]
    ) -> None:
        """Replace metadata if the object is still at `version`."""

    def delete(self, object_id: ResourceId, version: int) -> None:
        """Delete the object if it is still at `version`."""
