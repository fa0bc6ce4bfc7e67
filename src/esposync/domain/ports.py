"""Ports consumed by the reconciliation core."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .export import ExportManifest
    from .snapshot import EntitySnapshot


class RemoteApi(Protocol):
    """Authenticated request primitive of the remote application.

    Implementations return the parsed body for 2xx responses, ``None`` for 404
    and raise :class:`~esposync.domain.errors.RemoteError` or
    :class:`~esposync.domain.errors.TransportError` otherwise.
    """

    def request(
        self,
        method: str,
        path: str,
        body: Mapping[str, object] | None = None,
        params: Mapping[str, str | int] | None = None,
    ) -> object | None: ...


class SnapshotSink(Protocol):
    """Destination for exported snapshots and their manifest."""

    def write_snapshot(self, filename: str, snapshot: EntitySnapshot) -> None: ...

    def write_manifest(self, manifest: ExportManifest) -> None: ...


__all__ = ["RemoteApi", "SnapshotSink"]
