"""Domain model for control-plane upgrade reconciliation."""

from __future__ import annotations

from .config import ControlPlaneConfig, GlobalConfig, IdentityContext, ProxyConfig
from .identity import (
    AbsentIdentity,
    GeneratedIdentity,
    Identity,
    IssuerCredential,
    PresentIdentity,
    ResolvedIdentity,
    identity_from_context,
)
from .install import InstallRecord, RecordedFlag
from .values import ReconciledValues

__all__ = [
    "AbsentIdentity",
    "ControlPlaneConfig",
    "GeneratedIdentity",
    "GlobalConfig",
    "Identity",
    "IdentityContext",
    "InstallRecord",
    "IssuerCredential",
    "PresentIdentity",
    "ProxyConfig",
    "RecordedFlag",
    "ReconciledValues",
    "ResolvedIdentity",
    "identity_from_context",
]
