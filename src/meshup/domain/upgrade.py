"""Orchestrator for the upgrade reconciliation pipeline.

Stages run strictly in order and each consumes the previous stage's output:

1) fetch the persisted configuration
2) repair the install record
3) merge recorded flags under the current invocation's flags
4) resolve the identity (verify the existing one or generate a new one)
5) build the immutable value tree

Any failure aborts the whole run; nothing is written back to the cluster.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from logging import getLogger
from typing import TYPE_CHECKING

from meshup.domain.errors import PreconditionError
from meshup.domain.flags import reconcile_flags
from meshup.domain.options import UpgradeOptions, apply_options
from meshup.domain.repair import repair_install
from meshup.domain.values import build_values

if TYPE_CHECKING:
    from collections.abc import Callable

    from meshup.domain.flags import FlagSet
    from meshup.domain.model import GlobalConfig, ReconciledValues, ResolvedIdentity
    from meshup.domain.ports import ConfigFetcher

    ResolveIdentity = Callable[[GlobalConfig, UpgradeOptions], ResolvedIdentity]

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class UpgradeRequest:
    """Caller input for one upgrade run.

    ``ignore_cluster`` exists for parity with install mode and must never be set here.
    """

    flags: FlagSet
    namespace: str
    cli_version: str
    ignore_cluster: bool = False


@dataclass(frozen=True, slots=True)
class UpgradeResult:
    values: ReconciledValues
    options: UpgradeOptions
    flags: FlagSet


@dataclass(slots=True)
class UpgradePipeline:
    """Run the full reconciliation from persisted state to reconciled values."""

    fetch_configs: ConfigFetcher
    resolve_identity: ResolveIdentity
    generate_uuid: Callable[[], str]

    def run(self, request: UpgradeRequest) -> UpgradeResult:
        if request.ignore_cluster:
            raise PreconditionError("ignore_cluster must be unset during an upgrade")

        # Reject bad explicit flags before touching the cluster.
        UpgradeOptions.from_flags(
            request.flags, namespace=request.namespace, cli_version=request.cli_version
        )

        configs = self.fetch_configs()
        install = repair_install(
            configs.install,
            generate_uuid=self.generate_uuid,
            cli_version=request.cli_version,
        )

        # Defaults for this run come from the control plane, not from the flag catalogue.
        flags = reconcile_flags(install.flags, request.flags)
        options = UpgradeOptions.from_flags(
            flags, namespace=request.namespace, cli_version=request.cli_version
        )
        install = replace(install, flags=flags.recorded())
        global_config = apply_options(configs.global_config, options)
        configs = replace(configs, install=install, global_config=global_config)

        identity = self.resolve_identity(global_config, options)
        values = build_values(options, configs, identity)
        log.info(
            "Reconciled install %s (cli %s, %d recorded flags, %s identity)",
            values.install.uuid,
            values.cli_version,
            len(values.install.flags),
            "generated" if identity.generated else "existing",
        )
        return UpgradeResult(values=values, options=options, flags=flags)


__all__ = ["UpgradePipeline", "UpgradeRequest", "UpgradeResult"]
