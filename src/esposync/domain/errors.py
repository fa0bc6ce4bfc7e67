"""Error taxonomy for a sync run.

``SetupError`` aborts the run before any entity is touched. Everything derived
from ``EntitySyncError`` is local to one entity: the batch driver records it as
a failure and moves on.
"""

from __future__ import annotations


class SetupError(RuntimeError):
    """Raised when a run cannot start (credentials, source directory, authentication)."""


class EntitySyncError(RuntimeError):
    """Base class for failures scoped to a single entity."""

    def __init__(self, message: str, *, label: str | None = None) -> None:
        super().__init__(message)
        self.label = label


class ValidationError(EntitySyncError):
    """Raised when a snapshot lacks a field its identity depends on."""


class RemoteError(EntitySyncError):
    """Raised for non-2xx responses other than 404."""

    def __init__(self, message: str, *, status: int, text: str = "", label: str | None = None) -> None:
        super().__init__(message, label=label)
        self.status = status
        self.text = text


class TransportError(EntitySyncError):
    """Raised when the remote could not be reached at all."""


class MalformedResponseError(EntitySyncError):
    """Raised when a lookup or listing response has an unexpected shape."""


class SnapshotReadError(EntitySyncError):
    """Raised when a snapshot file cannot be read or is not a JSON object."""


class InvalidRequestError(EntitySyncError):
    """Raised when a snapshot cannot be turned into a request (unusable id, non-JSON body)."""
