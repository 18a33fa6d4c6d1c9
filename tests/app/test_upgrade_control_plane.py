from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
import yaml

from meshup.adapters.tls import SelfSignedIdentityGenerator
from meshup.app import upgrade_control_plane
from meshup.domain.errors import FetchError, InvalidOptionsError
from meshup.domain.model import RecordedFlag
from tests.support.certificates import NOW
from tests.support.cluster import NAMESPACE, InMemoryStore, make_store, stored_config

if TYPE_CHECKING:
    from pathlib import Path

    from meshup.app import UpgradeOutput


def _upgrade(store: InMemoryStore | None = None, **kwargs: object) -> UpgradeOutput:
    return upgrade_control_plane(
        namespace=NAMESPACE,
        store=store,
        identity_generator=SelfSignedIdentityGenerator(now_provider=lambda: NOW),
        generate_uuid=lambda: "uuid-1",
        cli_version="v1.2.3",
        **kwargs,  # type: ignore[arg-type]
    )


def test_upgrade_renders_manifest_from_store() -> None:
    install = {"uuid": "", "cliVersion": "v0", "flags": [{"name": "ha", "value": "true"}]}
    store = make_store(stored_config(install=install))

    output = _upgrade(store, explicit_flags={"proxy-log-level": "debug"})

    assert output.values.install.uuid == "uuid-1"
    assert output.values.install.flags == (
        RecordedFlag("ha", "true"),
        RecordedFlag("proxy-log-level", "debug"),
    )
    kinds = [doc["kind"] for doc in yaml.safe_load_all(output.manifest)]
    assert kinds == ["ConfigMap", "Secret", "Deployment"]


def test_second_upgrade_from_rendered_manifests_keeps_identity(tmp_path: Path) -> None:
    # The second run verifies against the wall clock.
    first = upgrade_control_plane(
        namespace=NAMESPACE,
        store=make_store(stored_config()),
        generate_uuid=lambda: "uuid-1",
        cli_version="v1.2.3",
    )
    manifests = tmp_path / "meshup.yaml"
    manifests.write_text(first.manifest, encoding="utf-8")

    second = upgrade_control_plane(
        namespace=NAMESPACE,
        from_manifests=str(manifests),
        generate_uuid=lambda: pytest.fail("uuid must be preserved"),
        cli_version="v1.2.4",
    )

    assert second.values.identity.generated is False
    assert second.values.identity.issuer == first.values.identity.issuer
    assert second.values.identity.context == first.values.identity.context
    assert second.values.install.uuid == "uuid-1"
    assert second.values.install.cli_version == "v1.2.4"


def test_unknown_explicit_flag_is_rejected() -> None:
    with pytest.raises(ValueError, match="unknown flags"):
        _upgrade(make_store(stored_config()), explicit_flags={"bogus": "1"})


def test_invalid_explicit_flag_is_an_upgrade_error() -> None:
    store = make_store(stored_config())

    with pytest.raises(InvalidOptionsError):
        _upgrade(store, explicit_flags={"proxy-uid": "-1"})

    assert store.reads == []


def test_fetch_failure_renders_nothing() -> None:
    with pytest.raises(FetchError):
        _upgrade(InMemoryStore())


def test_namespace_defaults_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MESHUP_NAMESPACE", NAMESPACE)
    store = make_store(stored_config())

    output = upgrade_control_plane(
        store=store,
        identity_generator=SelfSignedIdentityGenerator(now_provider=lambda: NOW),
        generate_uuid=lambda: "uuid-1",
        cli_version="v1.2.3",
    )

    assert output.values.namespace == NAMESPACE
    assert store.reads[0] == ("configmap", NAMESPACE, "meshup-config")
