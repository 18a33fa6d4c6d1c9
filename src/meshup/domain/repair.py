"""Normalisation of persisted install records."""

from __future__ import annotations

from dataclasses import replace
from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

    from meshup.domain.model import InstallRecord

log = getLogger(__name__)


def repair_install(
    install: InstallRecord,
    *,
    generate_uuid: Callable[[], str],
    cli_version: str,
) -> InstallRecord:
    """Fill in missing install fields.

    A missing uuid is generated once and then kept forever; the CLI version always
    becomes the version of the running tool. Flags are merged separately.
    """

    uuid = install.uuid
    if not uuid:
        uuid = generate_uuid()
        log.info("Install record had no uuid; assigned %s", uuid)
    return replace(install, uuid=uuid, cli_version=cli_version)


__all__ = ["repair_install"]
