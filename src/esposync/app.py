"""Application orchestration entry points."""

from __future__ import annotations

import time
from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING, Final

from esposync.adapters.espo import is_ready, open_espo_client, open_login_client
from esposync.adapters.snapshot_store import SnapshotStore
from esposync.config import get_sync_config
from esposync.domain.engine import ReconciliationEngine, SyncTally
from esposync.domain.errors import SetupError
from esposync.domain.export import ExportResult, export_entities
from esposync.domain.snapshot import EntityKind

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from esposync.adapters.espo import EspoClient
    from esposync.config import EspoConfig, SyncConfig

type ClientFactory = Callable[[EspoConfig], EspoClient]

log = getLogger(__name__)

DEFAULT_WAIT_ATTEMPTS: Final[int] = 60
DEFAULT_WAIT_INTERVAL_SECONDS: Final[float] = 5.0


def snapshot_directory(kind: EntityKind, sync_config: SyncConfig | None = None) -> Path:
    config = sync_config or get_sync_config()
    return config.reports_dir if kind is EntityKind.REPORT else config.workflows_dir


def import_entities(
    kind: EntityKind,
    *,
    config: EspoConfig,
    directory: Path | None = None,
    dry_run: bool = False,
    client_factory: ClientFactory | None = None,
) -> SyncTally:
    """Upsert every snapshot file of ``kind`` into the environment described by ``config``.

    Setup problems (missing directory, failed login) raise before any entity is
    processed; per-entity failures are counted in the returned tally.
    """

    store = SnapshotStore(directory or snapshot_directory(kind))
    entries = store.entries()
    log.info(
        f"Importing {len(entries)} {kind.plural} from {store.directory} into "
        f"{config.preset or config.base_url}{' (dry run)' if dry_run else ''}"
    )

    with (client_factory or open_espo_client)(config) as client:
        engine = ReconciliationEngine(api=client, dry_run=dry_run)
        tally = engine.upsert_batch(entries, kind)

    for line in tally.summary():
        log.info(line)
    return tally


def export_entities_to_directory(
    kind: EntityKind,
    *,
    config: EspoConfig,
    directory: Path | None = None,
    names: Iterable[str] | None = None,
    client_factory: ClientFactory | None = None,
) -> ExportResult:
    """Write the remote entities of ``kind`` as snapshot files plus ``_manifest.json``."""

    sync_config = get_sync_config()
    store = SnapshotStore(directory or snapshot_directory(kind, sync_config))
    selected_names = tuple(names or ())
    if not selected_names and kind is EntityKind.REPORT:
        selected_names = sync_config.report_names
    log.info(f"Exporting {kind.plural} from {config.base_url} to {store.directory}")

    with (client_factory or open_espo_client)(config) as client:
        result = export_entities(
            client,
            store,
            kind,
            source_url=config.base_url,
            names=selected_names,
        )

    for line in result.summary():
        log.info(line)
    return result


def wait_until_ready(
    config: EspoConfig,
    *,
    attempts: int = DEFAULT_WAIT_ATTEMPTS,
    interval: float = DEFAULT_WAIT_INTERVAL_SECONDS,
    client_factory: ClientFactory | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Poll the login endpoint until it answers, for instances that are still starting.

    Returns the attempt that succeeded; raises :class:`SetupError` once
    ``attempts`` polls have failed.
    """

    log.info(f"Waiting for EspoCRM at {config.base_url} to be ready...")
    with (client_factory or open_login_client)(config) as client:
        for attempt in range(1, attempts + 1):
            if is_ready(client):
                log.info("EspoCRM is ready!")
                return attempt
            log.info(f"  Attempt {attempt}/{attempts} - waiting...")
            if attempt < attempts:
                sleep(interval)

    raise SetupError(f"EspoCRM did not become ready after {attempts} attempts")


def import_all(
    *,
    config: EspoConfig,
    dry_run: bool = False,
    client_factory: ClientFactory | None = None,
) -> dict[EntityKind, SyncTally]:
    """Import reports, then workflows, from their configured directories.

    A kind whose directory is missing or holds no entity files is skipped
    rather than treated as a setup error.
    """

    sync_config = get_sync_config()
    tallies: dict[EntityKind, SyncTally] = {}
    for kind in (EntityKind.REPORT, EntityKind.WORKFLOW):
        directory = snapshot_directory(kind, sync_config)
        if not SnapshotStore(directory).has_snapshots():
            log.info(f"No {kind.value} JSON files found in {directory}. Skipping {kind.value} import.")
            continue
        tallies[kind] = import_entities(
            kind,
            config=config,
            directory=directory,
            dry_run=dry_run,
            client_factory=client_factory,
        )
    return tallies
