"""Identity resolution against the target environment.

Reports and workflows are matched differently:

- reports are matched by exact ``name`` through a filtered listing; the ``id``
  in a local report file belongs to whichever environment exported it and is
  never trusted;
- workflows carry ids that the operator keeps identical across environments,
  so the local ``id`` is looked up directly and ``name`` plays no part.

Resolvers never retry and never cache: every call asks the remote again.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final, Protocol

from .errors import MalformedResponseError, ValidationError
from .snapshot import EntityKind, snapshot_id, snapshot_name

if TYPE_CHECKING:
    from .ports import RemoteApi
    from .snapshot import EntitySnapshot


class IdentityStrategy(Protocol):
    """Kind-specific rules for matching and writing one entity."""

    @property
    def kind(self) -> EntityKind: ...

    @property
    def update_method(self) -> str: ...

    def resolve(self, snapshot: EntitySnapshot, api: RemoteApi) -> str | None:
        """Return the remote id ``snapshot`` should update, or ``None`` to create it."""
        ...

    def create_payload(self, snapshot: EntitySnapshot) -> dict[str, object]:
        """Return the body to POST when :meth:`resolve` found nothing."""
        ...


def listed_entities(response: object, *, path: str) -> list[Mapping[str, object]]:
    """Extract the ``list`` envelope of an EspoCRM collection response.

    ``None`` (404) is an empty collection. Anything else that is not a mapping
    holding a list of mappings is rejected.
    """

    if response is None:
        return []
    if not isinstance(response, Mapping):
        raise MalformedResponseError(f"Expected a JSON object from {path}, got {type(response).__name__}")
    items = response.get("list")
    if not isinstance(items, Sequence) or isinstance(items, str):
        raise MalformedResponseError(f"Expected 'list' to be an array in response from {path}")
    entities: list[Mapping[str, object]] = []
    for item in items:
        if not isinstance(item, Mapping):
            raise MalformedResponseError(f"Unexpected list item in response from {path}")
        entities.append(item)
    return entities


@dataclass(frozen=True, slots=True)
class NameIdentityStrategy:
    """Match on exact ``name`` through a one-row filtered listing."""

    kind: EntityKind = EntityKind.REPORT

    @property
    def update_method(self) -> str:
        return "PATCH"

    def resolve(self, snapshot: EntitySnapshot, api: RemoteApi) -> str | None:
        name = snapshot_name(snapshot)
        if name is None:
            raise ValidationError(f"{self.kind.scope} snapshot is missing required field: name")

        path = self.kind.collection_path
        response = api.request("GET", path, params={"maxSize": 1, "filters[name]": name})
        matches = listed_entities(response, path=path)
        if not matches:
            return None
        remote_id = snapshot_id(matches[0])
        if remote_id is None:
            raise MalformedResponseError(
                f"{self.kind.scope} lookup for {name!r} returned an entry without id"
            )
        return remote_id

    def create_payload(self, snapshot: EntitySnapshot) -> dict[str, object]:
        return {key: value for key, value in snapshot.items() if key != "id"}


@dataclass(frozen=True, slots=True)
class IdIdentityStrategy:
    """Match on the snapshot's own ``id``, which the target keeps on create."""

    kind: EntityKind = EntityKind.WORKFLOW

    @property
    def update_method(self) -> str:
        return "PUT"

    def _local_id(self, snapshot: EntitySnapshot) -> str:
        entity_id = snapshot_id(snapshot)
        if entity_id is None:
            raise ValidationError(f"{self.kind.scope} snapshot is missing required field: id")
        return entity_id

    def resolve(self, snapshot: EntitySnapshot, api: RemoteApi) -> str | None:
        entity_id = self._local_id(snapshot)
        path = self.kind.record_path(entity_id)
        response = api.request("GET", path)
        if response is None:
            return None
        if not isinstance(response, Mapping):
            raise MalformedResponseError(f"Expected a JSON object from {path}, got {type(response).__name__}")
        return entity_id

    def create_payload(self, snapshot: EntitySnapshot) -> dict[str, object]:
        payload = dict(snapshot)
        payload["id"] = self._local_id(snapshot)
        return payload


IDENTITY_STRATEGIES: Final[Mapping[EntityKind, IdentityStrategy]] = {
    EntityKind.REPORT: NameIdentityStrategy(),
    EntityKind.WORKFLOW: IdIdentityStrategy(),
}


def identity_strategy_for(kind: EntityKind) -> IdentityStrategy:
    return IDENTITY_STRATEGIES[kind]
