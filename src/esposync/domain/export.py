"""Capture remote reports and workflows as portable snapshot files."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, Final

from .errors import MalformedResponseError
from .identity import listed_entities
from .snapshot import EntityKind, SanitizeDirection, sanitize, snapshot_id, snapshot_name

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from .ports import RemoteApi, SnapshotSink

log = getLogger(__name__)

MANIFEST_FILENAME: Final[str] = "_manifest.json"

# Listing parameters per kind; the remote caps page sizes, one page is a full export.
LIST_PARAMS: Final[Mapping[EntityKind, Mapping[str, str | int]]] = {
    EntityKind.REPORT: {"maxSize": 200},
    EntityKind.WORKFLOW: {"maxSize": 500, "orderBy": "name"},
}

_UNSAFE_CHARS = re.compile(r"[^\w\-]+", re.ASCII)
_REPEATED_UNDERSCORES = re.compile(r"_+")


def slugify(name: str) -> str:
    """Turn an entity name into a stable, readable file stem."""

    slug = _UNSAFE_CHARS.sub("_", name)
    slug = _REPEATED_UNDERSCORES.sub("_", slug)
    return slug.strip("_")


def snapshot_filename(kind: EntityKind, snapshot: Mapping[str, object], *, remote_id: str) -> str:
    """Return the file name for ``snapshot``.

    Reports are named after their slugified ``name`` (their ids do not survive
    export); workflows after their ``id``.
    """

    if kind is EntityKind.REPORT:
        name = snapshot_name(snapshot)
        stem = slugify(name) if name else ""
        return f"{stem or remote_id}.json"
    return f"{remote_id}.json"


@dataclass(frozen=True, slots=True)
class ManifestRecord:
    file: str
    name: str | None
    id: str | None = None
    entity_type: object = None
    type: object = None
    is_active: object = None


@dataclass(frozen=True, slots=True)
class ExportManifest:
    kind: EntityKind
    exported_at: datetime
    source: str
    records: tuple[ManifestRecord, ...]

    @property
    def count(self) -> int:
        return len(self.records)


@dataclass(slots=True)
class ExportResult:
    kind: EntityKind
    listed: int = 0
    exported: list[str] = field(default_factory=list)
    manifest: ExportManifest | None = None

    def summary(self) -> list[str]:
        return [
            f"{self.kind.scope} export summary:",
            f"  Found:    {self.listed}",
            f"  Exported: {len(self.exported)}",
        ]


def _manifest_record(
    kind: EntityKind,
    listed: Mapping[str, object],
    *,
    remote_id: str,
    filename: str,
) -> ManifestRecord:
    name = listed.get("name")
    if kind is EntityKind.WORKFLOW:
        return ManifestRecord(
            file=filename,
            name=name if isinstance(name, str) else None,
            id=remote_id,
            entity_type=listed.get("entityType"),
            type=listed.get("type"),
            is_active=listed.get("isActive"),
        )
    return ManifestRecord(
        file=filename,
        name=name if isinstance(name, str) else None,
        entity_type=listed.get("entityType"),
    )


def _select(
    entities: Iterable[Mapping[str, object]],
    names: Iterable[str] | None,
) -> list[Mapping[str, object]]:
    wanted = set(names or ())
    if not wanted:
        return list(entities)
    return [entity for entity in entities if entity.get("name") in wanted]


def export_entities(
    api: RemoteApi,
    sink: SnapshotSink,
    kind: EntityKind,
    *,
    source_url: str,
    names: Iterable[str] | None = None,
    now: Callable[[], datetime] | None = None,
) -> ExportResult:
    """Write every remote entity of ``kind`` (optionally only ``names``) through ``sink``.

    Unlike import, an export failure is not isolated per entity: a partial copy
    of an environment is not a usable snapshot, so errors propagate.
    """

    path = kind.collection_path
    listing = listed_entities(api.request("GET", path, params=dict(LIST_PARAMS[kind])), path=path)
    selected = _select(listing, names)
    result = ExportResult(kind=kind, listed=len(listing))
    log.info(f"Found {len(listing)} {kind.plural}, exporting {len(selected)}...")

    records: list[ManifestRecord] = []
    used_filenames: set[str] = set()
    for listed in selected:
        remote_id = snapshot_id(listed)
        if remote_id is None:
            raise MalformedResponseError(f"{kind.scope} listing returned an entry without id")

        full = api.request("GET", kind.record_path(remote_id))
        if not isinstance(full, Mapping):
            raise MalformedResponseError(f"{kind.scope} {remote_id} could not be fetched")

        snapshot = sanitize(full, kind=kind, direction=SanitizeDirection.EXPORT)
        filename = snapshot_filename(kind, snapshot, remote_id=remote_id)
        if filename in used_filenames:
            log.warning(f"Several {kind.plural} map to {filename}; the last one exported wins")
        used_filenames.add(filename)

        sink.write_snapshot(filename, snapshot)
        records.append(_manifest_record(kind, listed, remote_id=remote_id, filename=filename))
        result.exported.append(filename)
        log.info(f"Exported: {listed.get('name')} -> {filename}")

    manifest = ExportManifest(
        kind=kind,
        exported_at=(now or _utcnow)(),
        source=source_url,
        records=tuple(records),
    )
    sink.write_manifest(manifest)
    result.manifest = manifest
    return result


def _utcnow() -> datetime:
    return datetime.now(UTC)
