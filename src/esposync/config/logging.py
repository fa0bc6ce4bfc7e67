"""Shared logging helpers for esposync."""

from __future__ import annotations

import logging


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger once with defaults suited to a sync run.

    Parameters mirror ``logging.basicConfig``: INFO by default and a terse format
    so per-entity outcomes read well in a terminal or CI log. ``httpx`` request
    lines are only shown at DEBUG. Pass ``force=True`` to reconfigure during
    tests or specialised entry points.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    logging.getLogger("httpx").setLevel(logging.DEBUG if level <= logging.DEBUG else logging.WARNING)
