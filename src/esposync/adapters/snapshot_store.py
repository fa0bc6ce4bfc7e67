"""Directory of JSON snapshot files, one entity per file.

Files whose names start with ``_`` are reserved (the export manifest lives in
``_manifest.json``) and are never read back as entities.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import datetime  # noqa: TC003
from functools import partial
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final

from pydantic import BaseModel, ConfigDict, Field

from esposync.domain.engine import BatchEntry
from esposync.domain.errors import SetupError, SnapshotReadError
from esposync.domain.export import MANIFEST_FILENAME

if TYPE_CHECKING:
    from esposync.domain.export import ExportManifest, ManifestRecord
    from esposync.domain.snapshot import EntitySnapshot

log = getLogger(__name__)

RESERVED_PREFIX: Final[str] = "_"
SNAPSHOT_SUFFIX: Final[str] = ".json"


class ManifestRecordDocument(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str | None = None
    name: str | None = None
    entity_type: Any = Field(default=None, alias="entityType")
    type: Any = None
    is_active: Any = Field(default=None, alias="isActive")
    file: str


class ManifestDocument(BaseModel):
    """On-disk layout of ``_manifest.json``; the record list is keyed by the kind's plural."""

    model_config = ConfigDict(populate_by_name=True)

    exported_at: datetime = Field(alias="exportedAt")
    source: str
    count: int
    records: list[ManifestRecordDocument]

    def to_json_object(self, *, records_key: str) -> dict[str, object]:
        data = self.model_dump(mode="json", by_alias=True, exclude={"records"})
        data[records_key] = [
            record.model_dump(mode="json", by_alias=True, exclude_none=True) for record in self.records
        ]
        return data


def _record_document(record: ManifestRecord) -> ManifestRecordDocument:
    return ManifestRecordDocument(
        id=record.id,
        name=record.name,
        entity_type=record.entity_type,
        type=record.type,
        is_active=record.is_active,
        file=record.file,
    )


def _reject_constant(constant: str) -> object:
    raise ValueError(f"non-finite number {constant} is not allowed")


def read_snapshot(path: Path) -> EntitySnapshot:
    """Parse one snapshot file, raising :class:`SnapshotReadError` on any problem.

    ``NaN`` and ``Infinity`` are rejected here; the remote could never receive them.
    """

    try:
        with path.open(encoding="utf-8") as handle:
            data = json.load(handle, parse_constant=_reject_constant)
    except (OSError, UnicodeDecodeError) as exc:
        raise SnapshotReadError(f"Cannot read {path.name}: {exc}", label=path.name) from exc
    except ValueError as exc:
        raise SnapshotReadError(f"Invalid JSON in {path.name}: {exc}", label=path.name) from exc

    if not isinstance(data, Mapping):
        raise SnapshotReadError(f"{path.name} does not contain a JSON object", label=path.name)
    return data


def _dump_json(path: Path, data: object) -> None:
    with path.open("w", encoding="utf-8") as handle:
        json.dump(data, handle, indent=2, ensure_ascii=False)
        handle.write("\n")


class SnapshotStore:
    """Reads and writes the snapshot files of one entity kind."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def snapshot_paths(self) -> list[Path]:
        """Return the entity files in name order, skipping reserved ones."""

        if not self.directory.is_dir():
            raise SetupError(f"Snapshot directory not found: {self.directory}")
        try:
            candidates = sorted(self.directory.iterdir())
        except OSError as exc:
            raise SetupError(f"Cannot read snapshot directory {self.directory}: {exc}") from exc

        return [
            path
            for path in candidates
            if path.suffix == SNAPSHOT_SUFFIX
            and not path.name.startswith(RESERVED_PREFIX)
            and path.is_file()
        ]

    def has_snapshots(self) -> bool:
        """Return whether the directory exists and holds at least one entity file."""

        return self.directory.is_dir() and bool(self.snapshot_paths())

    def entries(self) -> list[BatchEntry]:
        """Return one lazily-parsed :class:`BatchEntry` per entity file."""

        return [
            BatchEntry(label=path.name, load=partial(read_snapshot, path)) for path in self.snapshot_paths()
        ]

    def write_snapshot(self, filename: str, snapshot: EntitySnapshot) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        _dump_json(self.directory / filename, dict(snapshot))

    def write_manifest(self, manifest: ExportManifest) -> None:
        document = ManifestDocument(
            exported_at=manifest.exported_at,
            source=manifest.source,
            count=manifest.count,
            records=[_record_document(record) for record in manifest.records],
        )
        self.directory.mkdir(parents=True, exist_ok=True)
        _dump_json(
            self.directory / MANIFEST_FILENAME,
            document.to_json_object(records_key=manifest.kind.plural),
        )
        log.debug(f"Wrote manifest for {manifest.count} {manifest.kind.plural}")
