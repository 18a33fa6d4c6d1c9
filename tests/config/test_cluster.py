from __future__ import annotations

import base64
from pathlib import Path

import pytest
import yaml

from meshup.config import (
    ClusterConfig,
    ConfigurationError,
    MissingConfigurationError,
    get_cluster_config,
    in_cluster_config,
    load_kubeconfig,
)


def _kubeconfig(
    tmp_path: Path,
    *,
    user: dict[str, object] | None = None,
    cluster: dict[str, object] | None = None,
    current: str | None = "dev",
) -> Path:
    document: dict[str, object] = {
        "apiVersion": "v1",
        "kind": "Config",
        "clusters": [
            {"name": "dev-cluster", "cluster": cluster or {"server": "https://dev:6443/"}},
            {"name": "prod-cluster", "cluster": {"server": "https://prod:6443"}},
        ],
        "users": [{"name": "dev-user", "user": user or {"token": "dev-token"}}],
        "contexts": [
            {"name": "dev", "context": {"cluster": "dev-cluster", "user": "dev-user"}},
            {"name": "prod", "context": {"cluster": "prod-cluster"}},
        ],
    }
    if current is not None:
        document["current-context"] = current
    path = tmp_path / "config"
    path.write_text(yaml.safe_dump(document), encoding="utf-8")
    return path


def test_load_kubeconfig_uses_current_context(tmp_path: Path) -> None:
    config = load_kubeconfig(_kubeconfig(tmp_path))

    assert config.server == "https://dev:6443"
    assert config.token == "dev-token"
    assert config.default_headers() == {"Authorization": "Bearer dev-token"}


def test_load_kubeconfig_with_explicit_context(tmp_path: Path) -> None:
    config = load_kubeconfig(_kubeconfig(tmp_path), context="prod")

    assert config.server == "https://prod:6443"
    assert config.token is None
    assert config.default_headers() == {}


def test_load_kubeconfig_resolves_relative_paths(tmp_path: Path) -> None:
    (tmp_path / "token").write_text("file-token\n", encoding="utf-8")
    ca_data = base64.b64encode(b"-----BEGIN CERTIFICATE-----").decode("ascii")
    path = _kubeconfig(
        tmp_path,
        user={"tokenFile": "token", "client-certificate": "certs/client.crt"},
        cluster={
            "server": "https://dev:6443",
            "certificate-authority": "ca.crt",
            "certificate-authority-data": ca_data,
            "insecure-skip-tls-verify": True,
        },
    )

    config = load_kubeconfig(path)

    assert config.token == "file-token"
    assert config.ca_file == tmp_path / "ca.crt"
    assert config.ca_data == "-----BEGIN CERTIFICATE-----"
    assert config.client_cert_file == tmp_path / "certs" / "client.crt"
    assert config.ssl_context() is False


@pytest.mark.parametrize(
    ("kwargs", "message"),
    [
        ({"current": None}, "no current-context"),
        ({"user": {"client-certificate-data": "AAAA"}}, "Inline client certificates"),
        ({"cluster": {"certificate-authority-data": "AAAA"}}, "has no server"),
        (
            {"cluster": {"server": "https://dev", "certificate-authority-data": "%%"}},
            "certificate-authority-data",
        ),
    ],
)
def test_load_kubeconfig_errors(
    tmp_path: Path, kwargs: dict[str, object], message: str
) -> None:
    path = _kubeconfig(tmp_path, **kwargs)  # type: ignore[arg-type]

    with pytest.raises(ConfigurationError, match=message):
        load_kubeconfig(path)


def test_load_kubeconfig_unknown_context(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="no usable context named 'missing'"):
        load_kubeconfig(_kubeconfig(tmp_path), context="missing")


def test_load_kubeconfig_rejects_non_mapping(tmp_path: Path) -> None:
    path = tmp_path / "config"
    path.write_text("- not\n- a mapping\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="must be a mapping"):
        load_kubeconfig(path)


def test_get_cluster_config_prefers_kubeconfig_env(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    path = _kubeconfig(tmp_path)
    monkeypatch.setenv("KUBECONFIG", str(path))

    assert get_cluster_config().server == "https://dev:6443"


def test_get_cluster_config_explicit_path_must_exist(tmp_path: Path) -> None:
    with pytest.raises(MissingConfigurationError, match="kubeconfig not found"):
        get_cluster_config(kubeconfig=str(tmp_path / "absent"))


def test_get_cluster_config_without_any_source(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("KUBECONFIG", str(tmp_path / "absent"))
    monkeypatch.delenv("KUBERNETES_SERVICE_HOST", raising=False)

    with pytest.raises(MissingConfigurationError, match="not running inside a cluster"):
        get_cluster_config()


def test_in_cluster_config_reads_service_account(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    (tmp_path / "token").write_text("sa-token\n", encoding="utf-8")
    monkeypatch.setenv("KUBERNETES_SERVICE_HOST", "fd00::1")
    monkeypatch.setenv("KUBERNETES_SERVICE_PORT", "443")

    config = in_cluster_config(account_dir=tmp_path)

    assert config.server == "https://[fd00::1]:443"
    assert config.token == "sa-token"
    assert config.ca_file == tmp_path / "ca.crt"


def test_in_cluster_config_requires_service_env(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("KUBERNETES_SERVICE_HOST", raising=False)
    monkeypatch.delenv("KUBERNETES_SERVICE_PORT", raising=False)

    with pytest.raises(MissingConfigurationError, match="KUBERNETES_SERVICE_HOST"):
        in_cluster_config(account_dir=tmp_path)


@pytest.mark.parametrize(
    ("field", "value"),
    [
        ("ca_file", "missing.crt"),
        ("client_cert_file", "missing-client.crt"),
    ],
)
def test_unreadable_tls_files_are_configuration_errors(
    tmp_path: Path, field: str, value: str
) -> None:
    config = ClusterConfig(server="https://dev:6443", **{field: tmp_path / value})

    with pytest.raises(ConfigurationError, match="Could not load TLS settings"):
        config.ssl_context()


def test_malformed_ca_data_is_a_configuration_error() -> None:
    config = ClusterConfig(server="https://dev:6443", ca_data="not a certificate")

    with pytest.raises(ConfigurationError, match="Could not load TLS settings for https://dev"):
        config.ssl_context()
