"""Cluster access configuration (kubeconfig and in-cluster service account)."""

from __future__ import annotations

import base64
import binascii
import os
import ssl
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final

import yaml

from .env import optional_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError

DEFAULT_NAMESPACE: Final[str] = "meshup"
DEFAULT_TIMEOUT_SECONDS: Final[float] = 30.0
DEFAULT_KUBECONFIG: Final[Path] = Path("~/.kube/config")
SERVICE_ACCOUNT_DIR: Final[Path] = Path("/var/run/secrets/kubernetes.io/serviceaccount")


@dataclass(frozen=True, slots=True)
class ClusterConfig:
    """Connection settings for the Kubernetes API server."""

    server: str
    token: str | None = None
    ca_file: Path | None = None
    ca_data: str | None = None
    client_cert_file: Path | None = None
    client_key_file: Path | None = None
    insecure_skip_verify: bool = False
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    def ssl_context(self) -> ssl.SSLContext | bool:
        """Return the ``verify`` argument for an ``httpx.Client``.

        Raises :class:`ConfigurationError` when the CA bundle or client certificate
        cannot be loaded.
        """

        if self.insecure_skip_verify:
            return False
        try:
            context = ssl.create_default_context(
                cafile=str(self.ca_file) if self.ca_file else None,
                cadata=self.ca_data,
            )
            if self.client_cert_file is not None:
                context.load_cert_chain(
                    str(self.client_cert_file),
                    str(self.client_key_file) if self.client_key_file else None,
                )
        except (OSError, ValueError) as exc:
            # ssl.SSLError is an OSError; malformed cadata raises ValueError.
            raise ConfigurationError(
                f"Could not load TLS settings for {self.server}: {exc}"
            ) from exc
        return context

    def default_headers(self) -> dict[str, str]:
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}


def get_namespace(explicit: str | None = None) -> str:
    if explicit:
        return explicit
    return optional_env_var("MESHUP_NAMESPACE", DEFAULT_NAMESPACE)


def get_cluster_config(
    *,
    kubeconfig: str | None = None,
    context: str | None = None,
) -> ClusterConfig:
    """Resolve cluster settings from a kubeconfig, falling back to in-cluster mode."""

    path = _resolve_kubeconfig_path(kubeconfig)
    if path is not None and path.is_file():
        return load_kubeconfig(path, context=context)
    if kubeconfig:
        raise MissingConfigurationError(f"kubeconfig not found: {kubeconfig}")
    if os.getenv("KUBERNETES_SERVICE_HOST"):
        return in_cluster_config()
    raise MissingConfigurationError(
        "No kubeconfig found and not running inside a cluster; pass --kubeconfig"
    )


def load_kubeconfig(path: Path, *, context: str | None = None) -> ClusterConfig:
    """Build a :class:`ClusterConfig` from the selected context of a kubeconfig file."""

    try:
        with path.open(encoding="utf-8") as handle:
            document = yaml.safe_load(handle)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Could not read kubeconfig {path}: {exc}") from exc
    if not isinstance(document, dict):
        raise ConfigurationError(f"kubeconfig {path} must be a mapping")

    context_name = context or document.get("current-context")
    if not context_name:
        raise ConfigurationError(f"kubeconfig {path} has no current-context; pass --context")

    context_entry = _named_entry(document, "contexts", context_name, key="context")
    cluster_entry = _named_entry(document, "clusters", context_entry.get("cluster"), key="cluster")
    user_name = context_entry.get("user")
    user_entry = _named_entry(document, "users", user_name, key="user") if user_name else {}

    server = cluster_entry.get("server")
    if not server:
        raise ConfigurationError(f"cluster for context {context_name!r} has no server")

    base_dir = path.parent
    if user_entry.get("client-certificate-data") or user_entry.get("client-key-data"):
        raise ConfigurationError(
            "Inline client certificates are not supported; use client-certificate/client-key paths"
        )

    token = user_entry.get("token")
    token_file = user_entry.get("tokenFile")
    if not token and token_file:
        token = _read_text(_relative_to(base_dir, token_file)).strip()

    return ClusterConfig(
        server=str(server).rstrip("/"),
        token=token or None,
        ca_file=_optional_path(base_dir, cluster_entry.get("certificate-authority")),
        ca_data=_decode_inline_pem(cluster_entry.get("certificate-authority-data")),
        client_cert_file=_optional_path(base_dir, user_entry.get("client-certificate")),
        client_key_file=_optional_path(base_dir, user_entry.get("client-key")),
        insecure_skip_verify=bool(cluster_entry.get("insecure-skip-tls-verify", False)),
    )


def in_cluster_config(*, account_dir: Path = SERVICE_ACCOUNT_DIR) -> ClusterConfig:
    """Build a :class:`ClusterConfig` from the pod's service-account mount."""

    values = require_env_vars(("KUBERNETES_SERVICE_HOST", "KUBERNETES_SERVICE_PORT"))
    host = values["KUBERNETES_SERVICE_HOST"]
    if ":" in host:
        host = f"[{host}]"
    return ClusterConfig(
        server=f"https://{host}:{values['KUBERNETES_SERVICE_PORT']}",
        token=_read_text(account_dir / "token").strip(),
        ca_file=account_dir / "ca.crt",
    )


def _resolve_kubeconfig_path(explicit: str | None) -> Path | None:
    if explicit:
        return Path(explicit).expanduser()
    env_value = os.getenv("KUBECONFIG")
    if env_value:
        first = next((part for part in env_value.split(os.pathsep) if part), None)
        if first:
            return Path(first).expanduser()
    return DEFAULT_KUBECONFIG.expanduser()


def _named_entry(
    document: dict[str, Any], section: str, name: object, *, key: str
) -> dict[str, Any]:
    for entry in document.get(section) or ():
        if isinstance(entry, dict) and entry.get("name") == name:
            value = entry.get(key)
            if isinstance(value, dict):
                return value
            break
    raise ConfigurationError(f"kubeconfig has no usable {section[:-1]} named {name!r}")


def _relative_to(base_dir: Path, value: str) -> Path:
    candidate = Path(value).expanduser()
    return candidate if candidate.is_absolute() else base_dir / candidate


def _optional_path(base_dir: Path, value: object) -> Path | None:
    if not value:
        return None
    return _relative_to(base_dir, str(value))


def _decode_inline_pem(value: object) -> str | None:
    if not value:
        return None
    try:
        return base64.b64decode(str(value), validate=True).decode("ascii")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise ConfigurationError(f"Invalid certificate-authority-data: {exc}") from exc


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Could not read {path}: {exc}") from exc
