"""Application orchestration entry points."""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from meshup import __version__
from meshup.adapters.kubernetes import (
    ClusterConfigFetcher,
    ClusterIssuerSecretReader,
    KubernetesApiStore,
)
from meshup.adapters.manifest import ManifestStore, render_manifest
from meshup.adapters.tls import CryptographyVerifier, SelfSignedIdentityGenerator
from meshup.config import get_cluster_config, get_namespace
from meshup.domain.flags import FlagSet
from meshup.domain.identity import IdentityReconciler
from meshup.domain.options import FLAG_SPECS
from meshup.domain.upgrade import UpgradePipeline, UpgradeRequest

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping

    from meshup.adapters.kubernetes import ClusterStore
    from meshup.domain.model import ReconciledValues
    from meshup.domain.ports import CredentialVerifier, IdentityGenerator

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class UpgradeOutput:
    manifest: str
    values: ReconciledValues


def _generate_uuid() -> str:
    return str(uuid.uuid4())


def upgrade_control_plane(
    *,
    explicit_flags: Mapping[str, str] | None = None,
    namespace: str | None = None,
    from_manifests: str | None = None,
    kubeconfig: str | None = None,
    kube_context: str | None = None,
    store: ClusterStore | None = None,
    identity_generator: IdentityGenerator | None = None,
    verifier: CredentialVerifier | None = None,
    generate_uuid: Callable[[], str] | None = None,
    cli_version: str = __version__,
) -> UpgradeOutput:
    """Reconcile the running control plane with the given flags and render the result.

    Nothing is printed here; callers decide what to do with the manifest so that
    output only happens after every stage succeeded.
    """

    effective_namespace = get_namespace(namespace)
    request = UpgradeRequest(
        flags=FlagSet.from_specs(FLAG_SPECS, explicit_flags),
        namespace=effective_namespace,
        cli_version=cli_version,
    )
    log.info(
        "Starting upgrade: namespace=%s, source=%s, explicit_flags=%s",
        effective_namespace,
        from_manifests or "cluster",
        sorted(explicit_flags or {}),
    )

    with _open_store(
        store,
        namespace=effective_namespace,
        from_manifests=from_manifests,
        kubeconfig=kubeconfig,
        kube_context=kube_context,
    ) as effective_store:
        pipeline = UpgradePipeline(
            fetch_configs=ClusterConfigFetcher(effective_store, effective_namespace),
            resolve_identity=IdentityReconciler(
                generate=identity_generator or SelfSignedIdentityGenerator(),
                read_issuer_secret=ClusterIssuerSecretReader(effective_store, effective_namespace),
                verifier=verifier or CryptographyVerifier(),
            ),
            generate_uuid=generate_uuid or _generate_uuid,
        )
        result = pipeline.run(request)

    return UpgradeOutput(manifest=render_manifest(result.values), values=result.values)


@contextmanager
def _open_store(
    store: ClusterStore | None,
    *,
    namespace: str,
    from_manifests: str | None,
    kubeconfig: str | None,
    kube_context: str | None,
) -> Iterator[ClusterStore]:
    if store is not None:
        yield store
        return
    if from_manifests:
        yield ManifestStore.from_source(from_manifests, default_namespace=namespace)
        return
    with KubernetesApiStore(get_cluster_config(kubeconfig=kubeconfig, context=kube_context)) as api:
        yield api


__all__ = ["UpgradeOutput", "upgrade_control_plane"]
