"""Upsert driver for report and workflow snapshots.

Each entity goes through the same steps: validate, sanitize, resolve identity,
then update in place or create. Running a batch twice against the same target
resolves every entity on the second pass, so no duplicates are ever created.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from .errors import EntitySyncError, ValidationError
from .identity import identity_strategy_for
from .snapshot import SanitizeDirection, sanitize, snapshot_name

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from .identity import IdentityStrategy
    from .ports import RemoteApi
    from .snapshot import EntityKind, EntitySnapshot

log = getLogger(__name__)


class UpsertOutcome(StrEnum):
    CREATED = "created"
    UPDATED = "updated"


@dataclass(frozen=True, slots=True)
class BatchEntry:
    """One unit of work: a label for diagnostics and a loader for the snapshot.

    Loading is deferred so a file that fails to parse only fails its own entry.
    """

    label: str
    load: Callable[[], EntitySnapshot]

    @classmethod
    def of(cls, snapshot: EntitySnapshot, *, label: str | None = None) -> BatchEntry:
        return cls(label=label or str(snapshot.get("name") or "<unnamed>"), load=lambda: snapshot)


@dataclass(frozen=True, slots=True)
class EntityFailure:
    label: str
    error: str


@dataclass(slots=True)
class SyncTally:
    """Outcome counts of one batch."""

    kind: EntityKind
    created: int = 0
    updated: int = 0
    failed: int = 0
    dry_run: bool = False
    failures: list[EntityFailure] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.created + self.updated + self.failed

    def record(self, outcome: UpsertOutcome) -> None:
        if outcome is UpsertOutcome.CREATED:
            self.created += 1
        else:
            self.updated += 1

    def record_failure(self, label: str, error: Exception) -> None:
        self.failed += 1
        self.failures.append(EntityFailure(label=label, error=str(error)))

    def summary(self) -> list[str]:
        heading = f"{self.kind.scope} import summary"
        if self.dry_run:
            heading += " (dry run, nothing written)"
        lines = [
            f"{heading}:",
            f"  Created: {self.created}",
            f"  Updated: {self.updated}",
            f"  Failed:  {self.failed}",
        ]
        lines.extend(f"    - {failure.label}: {failure.error}" for failure in self.failures)
        return lines


@dataclass(slots=True)
class ReconciliationEngine:
    """Create-or-update snapshots in one target environment."""

    api: RemoteApi
    dry_run: bool = False
    strategy_for: Callable[[EntityKind], IdentityStrategy] = identity_strategy_for

    def upsert(self, snapshot: EntitySnapshot, kind: EntityKind) -> UpsertOutcome:
        """Upsert a single snapshot, raising :class:`EntitySyncError` on failure."""

        name = snapshot_name(snapshot)
        if name is None:
            raise ValidationError(f"{kind.scope} JSON missing required field: name")

        payload = sanitize(snapshot, kind=kind, direction=SanitizeDirection.IMPORT)
        strategy = self.strategy_for(kind)
        remote_id = strategy.resolve(payload, self.api)

        if remote_id is not None:
            self._write(strategy.update_method, kind.record_path(remote_id), payload)
            log.info(f"Updated: {name}")
            return UpsertOutcome.UPDATED

        self._write("POST", kind.collection_path, strategy.create_payload(payload))
        log.info(f"Created: {name}")
        return UpsertOutcome.CREATED

    def upsert_batch(self, entries: Iterable[BatchEntry], kind: EntityKind) -> SyncTally:
        """Upsert ``entries`` one after another; individual failures never abort the batch."""

        tally = SyncTally(kind=kind, dry_run=self.dry_run)
        for entry in entries:
            try:
                outcome = self.upsert(entry.load(), kind)
            except EntitySyncError as exc:
                exc.label = exc.label or entry.label
                log.error(f"Error processing {entry.label}: {exc}")  # noqa: TRY400
                tally.record_failure(entry.label, exc)
                continue
            tally.record(outcome)
        return tally

    def _write(self, method: str, path: str, payload: Mapping[str, object]) -> None:
        if self.dry_run:
            log.info(f"[dry-run] Would {method} {path}")
            return
        self.api.request(method, path, body=payload)
