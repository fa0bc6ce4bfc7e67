from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from esposync.app import (
    DEFAULT_WAIT_ATTEMPTS,
    DEFAULT_WAIT_INTERVAL_SECONDS,
    export_entities_to_directory,
    import_all,
    import_entities,
    wait_until_ready,
)
from esposync.config import (
    ConfigurationError,
    EspoOverrides,
    configure_logging,
    get_espo_config,
    parse_name_list,
)
from esposync.domain.errors import EntitySyncError, SetupError
from esposync.domain.snapshot import EntityKind

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)

KIND_CHOICES = {kind.plural: kind for kind in EntityKind}
ALL_KINDS = "all"
# 128 + SIGINT, the shell convention for an interrupted process
INTERRUPTED_EXIT_CODE = 130


def _add_connection_arguments(parser: argparse.ArgumentParser, kinds: Sequence[str]) -> None:
    parser.add_argument(
        "kind",
        choices=kinds,
        help="Entity kind to synchronise",
    )
    parser.add_argument(
        "--env",
        dest="preset",
        type=str,
        help="Environment preset selecting ESPO_<ENV>_* variables (dev, prod)",
    )
    parser.add_argument("--url", type=str, help="EspoCRM base URL (overrides the preset)")
    parser.add_argument("--api-key", type=str, help="API key sent as X-Api-Key")
    parser.add_argument("--user", type=str, help="Username for token login")
    parser.add_argument("--password", type=str, help="Password for token login")
    parser.add_argument(
        "--dir",
        dest="directory",
        type=Path,
        help="Snapshot directory (defaults to REPORTS_DIR / WORKFLOWS_DIR)",
    )


def _positive_int(raw: str) -> int:
    value = int(raw)
    if value < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return value


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Synchronise EspoCRM reports and workflows between environments"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    importer = subparsers.add_parser("import", help="Upsert snapshot files into an environment")
    _add_connection_arguments(importer, [*sorted(KIND_CHOICES), ALL_KINDS])
    importer.add_argument(
        "--dry-run",
        action="store_true",
        help="Resolve identities but skip every create and update",
    )
    importer.add_argument(
        "--wait-ready",
        action="store_true",
        help="Poll the instance until it answers before importing",
    )
    importer.add_argument(
        "--wait-attempts",
        type=_positive_int,
        default=DEFAULT_WAIT_ATTEMPTS,
        help=f"Readiness polls before giving up (default {DEFAULT_WAIT_ATTEMPTS})",
    )
    importer.add_argument(
        "--wait-interval",
        type=float,
        default=DEFAULT_WAIT_INTERVAL_SECONDS,
        help=f"Seconds between readiness polls (default {DEFAULT_WAIT_INTERVAL_SECONDS:g})",
    )

    exporter = subparsers.add_parser("export", help="Write an environment's entities to files")
    _add_connection_arguments(exporter, sorted(KIND_CHOICES))
    exporter.add_argument(
        "--names",
        type=parse_name_list,
        default=(),
        help="Comma separated entity names to export (reports default to REPORT_NAMES)",
    )

    args = parser.parse_args(list(argv))
    if args.kind == ALL_KINDS and args.directory is not None:
        parser.error("--dir cannot be combined with 'all'; set REPORTS_DIR and WORKFLOWS_DIR instead")
    return args


def _overrides(args: argparse.Namespace) -> EspoOverrides:
    return EspoOverrides(
        url=args.url,
        api_key=args.api_key,
        username=args.user,
        password=args.password,
    )


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)
    kind = KIND_CHOICES.get(parsed_args.kind)
    scope = kind.scope if kind else "Data"

    try:
        config = get_espo_config(parsed_args.preset, overrides=_overrides(parsed_args))
        if parsed_args.command == "import":
            if parsed_args.wait_ready:
                wait_until_ready(
                    config,
                    attempts=parsed_args.wait_attempts,
                    interval=parsed_args.wait_interval,
                )
            if kind is None:
                import_all(config=config, dry_run=parsed_args.dry_run)
            else:
                import_entities(
                    kind,
                    config=config,
                    directory=parsed_args.directory,
                    dry_run=parsed_args.dry_run,
                )
        elif parsed_args.command == "export" and kind is not None:
            export_entities_to_directory(
                kind,
                config=config,
                directory=parsed_args.directory,
                names=parsed_args.names,
            )
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except (ConfigurationError, SetupError) as exc:
        log.error(f"Setup failed: {exc}")  # noqa: TRY400
        sys.exit(1)
    except EntitySyncError as exc:
        log.error(f"{scope} {parsed_args.command} failed: {exc}")  # noqa: TRY400
        sys.exit(1)
    except Exception:
        log.exception("Fatal error during sync")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C): entities already written stay written."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(INTERRUPTED_EXIT_CODE)


def run() -> None:
    """Console script entry point: load ``.env`` and install the SIGINT handler."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
