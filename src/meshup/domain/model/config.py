"""Control-plane configuration documents."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta

from .install import InstallRecord


@dataclass(frozen=True, slots=True)
class ProxyConfig:
    """Settings injected into every data-plane proxy."""

    image: str = ""
    version: str = ""
    log_level: str = ""
    uid: int = 0
    inbound_port: int = 0
    outbound_port: int = 0
    admin_port: int = 0
    control_port: int = 0
    ignore_inbound_ports: tuple[int, ...] = ()
    ignore_outbound_ports: tuple[int, ...] = ()


@dataclass(frozen=True, slots=True)
class IdentityContext:
    trust_domain: str = ""
    trust_anchors_pem: str = ""
    clock_skew_allowance: timedelta = timedelta(0)
    issuance_lifetime: timedelta = timedelta(0)


@dataclass(frozen=True, slots=True)
class GlobalConfig:
    """Cluster-wide settings shared by every control-plane component."""

    namespace: str = ""
    version: str = ""
    cni_enabled: bool = False
    auto_inject: bool = False
    omit_webhook_side_effects: bool = False
    proxy: ProxyConfig = field(default_factory=ProxyConfig)
    identity_context: IdentityContext | None = None


@dataclass(frozen=True, slots=True)
class ControlPlaneConfig:
    """Everything read from the persisted configuration in one run."""

    install: InstallRecord = field(default_factory=InstallRecord)
    global_config: GlobalConfig = field(default_factory=GlobalConfig)
