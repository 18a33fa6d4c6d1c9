"""Errors raised while locating and loading cluster credentials."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Raised when kubeconfig, service-account or TLS settings cannot be used.

    Covers malformed kubeconfig documents, unknown contexts and CA bundles or client
    certificates that fail to load.
    """


class MissingConfigurationError(ConfigurationError):
    """Raised when there is no kubeconfig and no in-cluster service account to fall back on."""
