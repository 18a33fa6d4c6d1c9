"""Render reconciled values as Kubernetes manifests."""

from __future__ import annotations

import base64
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Final

import yaml

from meshup.adapters.kubernetes.fetcher import (
    CONFIG_MAP_NAME,
    ISSUER_CRT_NAME,
    ISSUER_EXPIRY_ANNOTATION,
    ISSUER_KEY_NAME,
    ISSUER_SECRET_NAME,
)
from meshup.adapters.kubernetes.translator import encode_configs
from meshup.domain.durations import format_duration
from meshup.domain.errors import RenderError
from meshup.domain.model import ControlPlaneConfig

if TYPE_CHECKING:
    from meshup.domain.model import ReconciledValues

CONTROLLER_IMAGE: Final[str] = "ghcr.io/meshup/controller"
IDENTITY_DEPLOYMENT_NAME: Final[str] = "meshup-identity"
COMPONENT_LABEL: Final[str] = "meshup.io/control-plane-component"
NAMESPACE_LABEL: Final[str] = "meshup.io/control-plane-ns"
CREATED_BY_ANNOTATION: Final[str] = "meshup.io/created-by"


def render_manifest(values: ReconciledValues) -> str:
    """Render ``values`` as a multi-document YAML stream.

    The stream can be fed back through ``--from-manifests`` on a later upgrade.
    """

    documents = [
        config_map_document(values),
        issuer_secret_document(values),
        identity_deployment_document(values),
    ]
    try:
        return yaml.safe_dump_all(documents, sort_keys=False, explicit_start=True)
    except yaml.YAMLError as exc:
        raise RenderError(f"could not render upgrade configuration: {exc}") from exc


def config_map_document(values: ReconciledValues) -> dict[str, Any]:
    configs = ControlPlaneConfig(install=values.install, global_config=values.global_config)
    return {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": _metadata(values, CONFIG_MAP_NAME, component="controller"),
        "data": encode_configs(configs),
    }


def issuer_secret_document(values: ReconciledValues) -> dict[str, Any]:
    issuer = values.identity.issuer
    metadata = _metadata(values, ISSUER_SECRET_NAME, component="identity")
    metadata["annotations"][ISSUER_EXPIRY_ANNOTATION] = _rfc3339(issuer.not_after)
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "type": "Opaque",
        "metadata": metadata,
        "data": {
            ISSUER_CRT_NAME: _b64(issuer.crt_pem),
            ISSUER_KEY_NAME: _b64(issuer.key_pem),
        },
    }


def identity_deployment_document(values: ReconciledValues) -> dict[str, Any]:
    identity = values.identity
    labels = {COMPONENT_LABEL: "identity", NAMESPACE_LABEL: values.namespace}
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": _metadata(values, IDENTITY_DEPLOYMENT_NAME, component="identity"),
        "spec": {
            "replicas": identity.replicas,
            "selector": {"matchLabels": labels},
            "template": {
                "metadata": {"labels": labels},
                "spec": {
                    "containers": [
                        {
                            "name": "identity",
                            "image": f"{CONTROLLER_IMAGE}:{values.cli_version}",
                            "args": [
                                "identity",
                                f"-log-level={values.controller_log_level}",
                                f"-trust-domain={identity.trust_domain}",
                                "-issuance-lifetime="
                                f"{format_duration(identity.context.issuance_lifetime)}",
                                "-clock-skew-allowance="
                                f"{format_duration(identity.context.clock_skew_allowance)}",
                            ],
                            "volumeMounts": [
                                {"name": "config", "mountPath": "/var/run/meshup/config"},
                                {
                                    "name": "identity-issuer",
                                    "mountPath": "/var/run/meshup/identity/issuer",
                                },
                            ],
                        }
                    ],
                    "volumes": [
                        {"name": "config", "configMap": {"name": CONFIG_MAP_NAME}},
                        {"name": "identity-issuer", "secret": {"secretName": ISSUER_SECRET_NAME}},
                    ],
                },
            },
        },
    }


def _metadata(values: ReconciledValues, name: str, *, component: str) -> dict[str, Any]:
    return {
        "name": name,
        "namespace": values.namespace,
        "labels": {COMPONENT_LABEL: component, NAMESPACE_LABEL: values.namespace},
        "annotations": {CREATED_BY_ANNOTATION: f"meshup/cli {values.cli_version}"},
    }


def _b64(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def _rfc3339(value: datetime) -> str:
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


__all__ = [
    "CONTROLLER_IMAGE",
    "IDENTITY_DEPLOYMENT_NAME",
    "config_map_document",
    "identity_deployment_document",
    "issuer_secret_document",
    "render_manifest",
]
