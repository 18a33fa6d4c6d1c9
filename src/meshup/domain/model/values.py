"""Immutable value tree handed to the manifest renderer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .config import GlobalConfig
    from .identity import ResolvedIdentity
    from .install import InstallRecord


@dataclass(frozen=True, slots=True, kw_only=True)
class ReconciledValues:
    """Final configuration for one upgrade run.

    ``global_config.identity_context`` always equals ``identity.context``; the builder
    guarantees it so that the persisted configuration and the issuer secret agree.
    """

    namespace: str
    cli_version: str
    controller_replicas: int
    controller_log_level: str
    high_availability: bool
    install: InstallRecord
    global_config: GlobalConfig
    identity: ResolvedIdentity
