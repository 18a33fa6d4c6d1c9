from __future__ import annotations

from datetime import timedelta

import pytest

from meshup.adapters.tls import SelfSignedIdentityGenerator
from meshup.domain.flags import FlagSet
from meshup.domain.model import GeneratedIdentity
from meshup.domain.options import FLAG_SPECS, IdentityOptions, UpgradeOptions
from tests.support.certificates import NOW, KeyPair, make_certificate
from tests.support.cluster import NAMESPACE


@pytest.fixture
def identity_options() -> IdentityOptions:
    return IdentityOptions(
        trust_domain="cluster.local",
        issuance_lifetime=timedelta(hours=24),
        clock_skew_allowance=timedelta(seconds=20),
        issuer_certificate_lifetime=timedelta(days=365),
        namespace=NAMESPACE,
    )


@pytest.fixture
def upgrade_options() -> UpgradeOptions:
    return UpgradeOptions.from_flags(
        FlagSet.from_specs(FLAG_SPECS), namespace=NAMESPACE, cli_version="v1.2.3"
    )


@pytest.fixture(scope="session")
def trust_root() -> KeyPair:
    return make_certificate("identity.meshup.cluster.local")


@pytest.fixture
def generated_identity(identity_options: IdentityOptions) -> GeneratedIdentity:
    return SelfSignedIdentityGenerator(now_provider=lambda: NOW)(identity_options)
