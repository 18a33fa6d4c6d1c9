"""Install record persisted alongside the control-plane configuration."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RecordedFlag:
    """A flag value captured during a previous install or upgrade."""

    name: str
    value: str


@dataclass(frozen=True, slots=True)
class InstallRecord:
    """Who installed the control plane, with which tool version and which overrides.

    ``uuid`` is assigned once and survives every later upgrade. ``cli_version`` always
    reflects the most recent tool that reconciled the configuration.
    """

    uuid: str = ""
    cli_version: str = ""
    flags: tuple[RecordedFlag, ...] = ()
