"""Reconciliation core: sanitize, resolve identity, upsert.

Nothing in this package performs I/O on its own; the remote API and the
snapshot files reach it through the ports in :mod:`esposync.domain.ports`.
"""

from __future__ import annotations

from .engine import BatchEntry, EntityFailure, ReconciliationEngine, SyncTally, UpsertOutcome
from .errors import (
    EntitySyncError,
    MalformedResponseError,
    RemoteError,
    SetupError,
    InvalidRequestError,
    SnapshotReadError,
    TransportError,
    ValidationError,
)
from .export import (
    MANIFEST_FILENAME,
    ExportManifest,
    ExportResult,
    ManifestRecord,
    export_entities,
    slugify,
)
from .identity import IdentityStrategy, IdIdentityStrategy, NameIdentityStrategy, identity_strategy_for
from .ports import RemoteApi, SnapshotSink
from .snapshot import (
    ENVIRONMENT_BOUND_FIELDS,
    EntityKind,
    EntitySnapshot,
    SanitizeDirection,
    excluded_fields,
    sanitize,
)

__all__ = [
    "ENVIRONMENT_BOUND_FIELDS",
    "MANIFEST_FILENAME",
    "BatchEntry",
    "EntityFailure",
    "EntityKind",
    "EntitySnapshot",
    "EntitySyncError",
    "ExportManifest",
    "ExportResult",
    "IdIdentityStrategy",
    "IdentityStrategy",
    "InvalidRequestError",
    "MalformedResponseError",
    "ManifestRecord",
    "NameIdentityStrategy",
    "ReconciliationEngine",
    "RemoteApi",
    "RemoteError",
    "SanitizeDirection",
    "SetupError",
    "SnapshotReadError",
    "SnapshotSink",
    "SyncTally",
    "TransportError",
    "UpsertOutcome",
    "ValidationError",
    "excluded_fields",
    "export_entities",
    "identity_strategy_for",
    "sanitize",
    "slugify",
]
