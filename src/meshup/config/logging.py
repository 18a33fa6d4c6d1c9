"""Logging setup for the ``meshup`` command line."""

from __future__ import annotations

import logging


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Send log records to stderr via ``logging.basicConfig``.

    ``meshup upgrade`` writes the rendered manifest to stdout, so diagnostics must never
    share that stream. The CLI passes WARNING by default and DEBUG under ``--verbose``.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
