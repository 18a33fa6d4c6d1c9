"""Port implementations reading the control-plane objects from a cluster store."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Final

from meshup.domain.ports.fetching import IssuerSecret

from .translator import decode_configs

if TYPE_CHECKING:
    from meshup.domain.model import ControlPlaneConfig

    from .store import ClusterStore

log = getLogger(__name__)

CONFIG_MAP_NAME: Final[str] = "meshup-config"
ISSUER_SECRET_NAME: Final[str] = "meshup-identity-issuer"
ISSUER_KEY_NAME: Final[str] = "key.pem"
ISSUER_CRT_NAME: Final[str] = "crt.pem"
ISSUER_EXPIRY_ANNOTATION: Final[str] = "meshup.io/identity-issuer-expiry"


@dataclass(slots=True)
class ClusterConfigFetcher:
    store: ClusterStore
    namespace: str

    def __call__(self) -> ControlPlaneConfig:
        log.debug("Fetching configmap %s/%s", self.namespace, CONFIG_MAP_NAME)
        data = self.store.get_config_map(self.namespace, CONFIG_MAP_NAME)
        return decode_configs(data)


@dataclass(slots=True)
class ClusterIssuerSecretReader:
    store: ClusterStore
    namespace: str

    def __call__(self) -> IssuerSecret:
        log.debug("Fetching secret %s/%s", self.namespace, ISSUER_SECRET_NAME)
        data = self.store.get_secret(self.namespace, ISSUER_SECRET_NAME)
        # Missing or non-UTF-8 fields surface later as undecodable PEM.
        return IssuerSecret(
            key_pem=data.get(ISSUER_KEY_NAME, b"").decode("utf-8", errors="replace"),
            crt_pem=data.get(ISSUER_CRT_NAME, b"").decode("utf-8", errors="replace"),
        )


__all__ = [
    "CONFIG_MAP_NAME",
    "ISSUER_CRT_NAME",
    "ISSUER_EXPIRY_ANNOTATION",
    "ISSUER_KEY_NAME",
    "ISSUER_SECRET_NAME",
    "ClusterConfigFetcher",
    "ClusterIssuerSecretReader",
]
