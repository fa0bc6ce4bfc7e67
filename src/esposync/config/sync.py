"""Snapshot directory and export filter defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

from .env import first_env_value

DEFAULT_REPORTS_DIR: Final[str] = "data/reports"
DEFAULT_WORKFLOWS_DIR: Final[str] = "data/workflows"


def parse_name_list(raw: str | None) -> tuple[str, ...]:
    """Split a comma separated list of entity names, dropping blanks."""

    if not raw:
        return ()
    return tuple(name.strip() for name in raw.split(",") if name.strip())


@dataclass(frozen=True, slots=True)
class SyncConfig:
    reports_dir: Path = field(default_factory=lambda: Path(DEFAULT_REPORTS_DIR))
    workflows_dir: Path = field(default_factory=lambda: Path(DEFAULT_WORKFLOWS_DIR))
    report_names: tuple[str, ...] = ()


def get_sync_config() -> SyncConfig:
    return SyncConfig(
        reports_dir=Path(first_env_value("REPORTS_DIR") or DEFAULT_REPORTS_DIR),
        workflows_dir=Path(first_env_value("WORKFLOWS_DIR") or DEFAULT_WORKFLOWS_DIR),
        report_names=parse_name_list(os.getenv("REPORT_NAMES")),
    )
