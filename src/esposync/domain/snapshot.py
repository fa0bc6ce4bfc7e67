"""Entity snapshots and the sanitizer that makes them portable.

A snapshot is the JSON body of one report or workflow as the remote API returns
it. Some of its fields only make sense inside the environment that produced it
(audit timestamps, creator ids, for reports the record id itself); the
sanitizer removes them before a snapshot is written to disk or sent to another
environment.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from enum import StrEnum
from typing import Final
from urllib.parse import quote

type EntitySnapshot = Mapping[str, object]

ENVIRONMENT_BOUND_FIELDS: Final[frozenset[str]] = frozenset(
    {
        "createdAt",
        "modifiedAt",
        "createdById",
        "createdByName",
        "modifiedById",
        "modifiedByName",
    }
)

# EspoCRM silently ignores report updates that carry these.
REPORT_IMPORT_REJECTED_FIELDS: Final[frozenset[str]] = frozenset(
    {"entityId", "entityType", "isInternal"}
)


class EntityKind(StrEnum):
    REPORT = "report"
    WORKFLOW = "workflow"

    @property
    def scope(self) -> str:
        """Remote entity type name used in API paths."""
        return self.value.capitalize()

    @property
    def plural(self) -> str:
        return f"{self.value}s"

    @property
    def collection_path(self) -> str:
        return f"/api/v1/{self.scope}"

    def record_path(self, entity_id: str) -> str:
        """Path of one record; the id is percent-encoded so it stays a single segment."""
        return f"{self.collection_path}/{quote(entity_id, safe='')}"


class SanitizeDirection(StrEnum):
    EXPORT = "export"
    IMPORT = "import"


_EXCLUDED_FIELDS: Final[dict[tuple[EntityKind, SanitizeDirection], frozenset[str]]] = {
    (EntityKind.REPORT, SanitizeDirection.EXPORT): ENVIRONMENT_BOUND_FIELDS | {"id"},
    (EntityKind.REPORT, SanitizeDirection.IMPORT): (
        ENVIRONMENT_BOUND_FIELDS | {"id"} | REPORT_IMPORT_REJECTED_FIELDS
    ),
    # Workflow ids are the identity key across environments and must survive.
    (EntityKind.WORKFLOW, SanitizeDirection.EXPORT): ENVIRONMENT_BOUND_FIELDS,
    (EntityKind.WORKFLOW, SanitizeDirection.IMPORT): ENVIRONMENT_BOUND_FIELDS,
}


def excluded_fields(kind: EntityKind, direction: SanitizeDirection) -> frozenset[str]:
    """Return the fields :func:`sanitize` drops for ``kind`` moving in ``direction``."""

    return _EXCLUDED_FIELDS[(kind, direction)]


def sanitize(
    raw: EntitySnapshot,
    *,
    kind: EntityKind,
    direction: SanitizeDirection,
) -> dict[str, object]:
    """Return a portable copy of ``raw``.

    The input is left untouched. Remaining values are deep-copied so nested
    structures in the result can be modified without affecting the source.
    """

    excluded = excluded_fields(kind, direction)
    return {key: copy.deepcopy(value) for key, value in raw.items() if key not in excluded}


def snapshot_name(snapshot: EntitySnapshot) -> str | None:
    """Return the ``name`` of ``snapshot`` verbatim, or ``None`` when absent or blank."""

    name = snapshot.get("name")
    if not isinstance(name, str) or not name.strip():
        return None
    return name


def snapshot_id(snapshot: EntitySnapshot) -> str | None:
    entity_id = snapshot.get("id")
    if isinstance(entity_id, int) and not isinstance(entity_id, bool):
        return str(entity_id)
    if not isinstance(entity_id, str) or not entity_id.strip():
        return None
    return entity_id
