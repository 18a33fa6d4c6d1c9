"""Public interface for the Kubernetes adapter."""

from __future__ import annotations

from .fetcher import (
    CONFIG_MAP_NAME,
    ISSUER_CRT_NAME,
    ISSUER_EXPIRY_ANNOTATION,
    ISSUER_KEY_NAME,
    ISSUER_SECRET_NAME,
    ClusterConfigFetcher,
    ClusterIssuerSecretReader,
)
from .store import ClusterStore, KubernetesApiStore
from .translator import decode_configs, encode_configs

__all__ = [
    "CONFIG_MAP_NAME",
    "ISSUER_CRT_NAME",
    "ISSUER_EXPIRY_ANNOTATION",
    "ISSUER_KEY_NAME",
    "ISSUER_SECRET_NAME",
    "ClusterConfigFetcher",
    "ClusterIssuerSecretReader",
    "ClusterStore",
    "KubernetesApiStore",
    "decode_configs",
    "encode_configs",
]
