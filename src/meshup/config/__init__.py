"""Application configuration helpers."""

from __future__ import annotations

from .cluster import (
    DEFAULT_NAMESPACE,
    ClusterConfig,
    get_cluster_config,
    get_namespace,
    in_cluster_config,
    load_kubeconfig,
)
from .env import optional_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .logging import configure_logging

__all__ = [
    "DEFAULT_NAMESPACE",
    "ClusterConfig",
    "ConfigurationError",
    "MissingConfigurationError",
    "configure_logging",
    "get_cluster_config",
    "get_namespace",
    "in_cluster_config",
    "load_kubeconfig",
    "optional_env_var",
    "require_env_vars",
]
