"""Assembly of the final value tree."""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

from meshup.domain.model import ReconciledValues

if TYPE_CHECKING:
    from meshup.domain.model import ControlPlaneConfig, ResolvedIdentity
    from meshup.domain.options import UpgradeOptions


def build_values(
    options: UpgradeOptions,
    configs: ControlPlaneConfig,
    identity: ResolvedIdentity,
) -> ReconciledValues:
    """Bundle options, configuration and the resolved identity.

    Must run after identity resolution so a freshly generated context ends up in the
    persisted global configuration.
    """

    global_config = replace(configs.global_config, identity_context=identity.context)
    return ReconciledValues(
        namespace=global_config.namespace or options.namespace,
        cli_version=options.cli_version,
        controller_replicas=options.controller_replicas,
        controller_log_level=options.controller_log_level,
        high_availability=options.high_availability,
        install=configs.install,
        global_config=global_config,
        identity=identity,
    )


__all__ = ["build_values"]
