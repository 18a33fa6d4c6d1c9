from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest

from meshup.adapters.tls import CryptographyVerifier, SelfSignedIdentityGenerator
from meshup.domain.errors import (
    FetchError,
    InvalidIssuerCredentialError,
    MalformedIssuerCredentialError,
    MalformedTrustAnchorsError,
    PreconditionError,
)
from meshup.domain.identity import IdentityReconciler
from meshup.domain.model import (
    AbsentIdentity,
    GeneratedIdentity,
    GlobalConfig,
    IdentityContext,
    PresentIdentity,
    identity_from_context,
)
from meshup.domain.ports import IssuerSecret
from tests.support.certificates import NOW, make_certificate

if TYPE_CHECKING:
    from meshup.domain.options import IdentityOptions, UpgradeOptions
    from tests.support.certificates import KeyPair


class _SecretReader:
    def __init__(self, secret: IssuerSecret | None) -> None:
        self.secret = secret
        self.calls = 0

    def __call__(self) -> IssuerSecret:
        self.calls += 1
        if self.secret is None:
            raise FetchError("secret meshup/meshup-identity-issuer: not found")
        return self.secret


class _FailingGenerator:
    def __call__(self, options: IdentityOptions) -> GeneratedIdentity:
        raise AssertionError("an existing identity must not be regenerated")


def _reconciler(
    reader: _SecretReader,
    *,
    generator: object | None = None,
    now: datetime = NOW,
) -> IdentityReconciler:
    return IdentityReconciler(
        generate=generator or _FailingGenerator(),  # type: ignore[arg-type]
        read_issuer_secret=reader,
        verifier=CryptographyVerifier(),
        now_provider=lambda: now,
    )


def _global_with(anchors_pem: str, trust_domain: str = "cluster.local") -> GlobalConfig:
    return GlobalConfig(
        namespace="meshup",
        identity_context=IdentityContext(
            trust_domain=trust_domain,
            trust_anchors_pem=anchors_pem,
            clock_skew_allowance=timedelta(seconds=20),
            issuance_lifetime=timedelta(hours=24),
        ),
    )


@pytest.mark.parametrize(
    "context",
    [
        None,
        IdentityContext(),
        IdentityContext(trust_domain="cluster.local"),
        IdentityContext(trust_anchors_pem="PEM"),
    ],
)
def test_partial_contexts_are_absent(context: IdentityContext | None) -> None:
    assert identity_from_context(context) == AbsentIdentity()


def test_present_identity_requires_both_fields() -> None:
    with pytest.raises(PreconditionError):
        PresentIdentity(context=IdentityContext(trust_domain="cluster.local"))


def test_existing_identity_is_reused(
    trust_root: KeyPair, upgrade_options: UpgradeOptions
) -> None:
    issuer = make_certificate("issuer", issuer=trust_root)
    reader = _SecretReader(IssuerSecret(key_pem=issuer.key_pem, crt_pem=issuer.crt_pem))
    global_config = _global_with(trust_root.crt_pem, trust_domain="example.org")

    resolved = _reconciler(reader)(global_config, upgrade_options)

    assert resolved.generated is False
    assert resolved.context == global_config.identity_context
    assert resolved.trust_domain == "example.org"
    assert resolved.trust_anchors_pem == trust_root.crt_pem
    assert resolved.issuer.key_pem == issuer.key_pem
    assert resolved.issuer.crt_pem == issuer.crt_pem
    assert resolved.issuer.not_after == issuer.certificate.not_valid_after_utc
    assert resolved.replicas == upgrade_options.controller_replicas


def test_self_signed_issuer_used_as_anchor_is_accepted(
    generated_identity: GeneratedIdentity, upgrade_options: UpgradeOptions
) -> None:
    issuer = generated_identity.issuer
    reader = _SecretReader(IssuerSecret(key_pem=issuer.key_pem, crt_pem=issuer.crt_pem))

    resolved = _reconciler(reader)(
        _global_with(generated_identity.trust_anchors_pem), upgrade_options
    )

    assert resolved.issuer == issuer


def test_issuer_from_another_root_is_rejected(
    trust_root: KeyPair, upgrade_options: UpgradeOptions
) -> None:
    other_root = make_certificate("identity.meshup.cluster.local")
    issuer = make_certificate("issuer", issuer=other_root)
    reader = _SecretReader(IssuerSecret(key_pem=issuer.key_pem, crt_pem=issuer.crt_pem))

    with pytest.raises(InvalidIssuerCredentialError, match="unknown authority"):
        _reconciler(reader)(_global_with(trust_root.crt_pem), upgrade_options)


def test_expired_issuer_is_rejected(trust_root: KeyPair, upgrade_options: UpgradeOptions) -> None:
    issuer = make_certificate(
        "issuer",
        issuer=trust_root,
        not_before=NOW - timedelta(days=30),
        not_after=NOW - timedelta(days=1),
    )
    reader = _SecretReader(IssuerSecret(key_pem=issuer.key_pem, crt_pem=issuer.crt_pem))

    with pytest.raises(InvalidIssuerCredentialError, match="expired"):
        _reconciler(reader)(_global_with(trust_root.crt_pem), upgrade_options)


def test_not_yet_valid_issuer_is_rejected(
    trust_root: KeyPair, upgrade_options: UpgradeOptions
) -> None:
    issuer = make_certificate("issuer", issuer=trust_root, not_before=NOW + timedelta(days=1))
    reader = _SecretReader(IssuerSecret(key_pem=issuer.key_pem, crt_pem=issuer.crt_pem))

    with pytest.raises(InvalidIssuerCredentialError, match="not valid before"):
        _reconciler(reader)(_global_with(trust_root.crt_pem), upgrade_options)


def test_mismatched_key_is_rejected(trust_root: KeyPair, upgrade_options: UpgradeOptions) -> None:
    issuer = make_certificate("issuer", issuer=trust_root)
    stranger = make_certificate("stranger", issuer=trust_root)
    reader = _SecretReader(IssuerSecret(key_pem=stranger.key_pem, crt_pem=issuer.crt_pem))

    with pytest.raises(InvalidIssuerCredentialError, match="does not match"):
        _reconciler(reader)(_global_with(trust_root.crt_pem), upgrade_options)


def test_issuer_with_intermediate_chain_is_accepted(
    trust_root: KeyPair, upgrade_options: UpgradeOptions
) -> None:
    intermediate = make_certificate("intermediate", issuer=trust_root)
    issuer = make_certificate("issuer", issuer=intermediate)
    reader = _SecretReader(
        IssuerSecret(key_pem=issuer.key_pem, crt_pem=issuer.crt_pem + intermediate.crt_pem)
    )

    resolved = _reconciler(reader)(_global_with(trust_root.crt_pem), upgrade_options)

    assert resolved.issuer.not_after == issuer.certificate.not_valid_after_utc


def test_malformed_trust_anchors_fail_before_reading_the_secret(
    upgrade_options: UpgradeOptions,
) -> None:
    reader = _SecretReader(None)

    with pytest.raises(MalformedTrustAnchorsError):
        _reconciler(reader)(_global_with("not a certificate"), upgrade_options)

    assert reader.calls == 0


def test_missing_secret_is_a_fetch_error(
    trust_root: KeyPair, upgrade_options: UpgradeOptions
) -> None:
    with pytest.raises(FetchError):
        _reconciler(_SecretReader(None))(_global_with(trust_root.crt_pem), upgrade_options)


@pytest.mark.parametrize(
    ("key_pem", "crt_pem"),
    [
        ("garbage", None),
        (None, "garbage"),
        ("", ""),
    ],
)
def test_undecodable_issuer_is_malformed(
    trust_root: KeyPair,
    upgrade_options: UpgradeOptions,
    key_pem: str | None,
    crt_pem: str | None,
) -> None:
    issuer = make_certificate("issuer", issuer=trust_root)
    secret = IssuerSecret(
        key_pem=issuer.key_pem if key_pem is None else key_pem,
        crt_pem=issuer.crt_pem if crt_pem is None else crt_pem,
    )

    with pytest.raises(MalformedIssuerCredentialError):
        _reconciler(_SecretReader(secret))(_global_with(trust_root.crt_pem), upgrade_options)


def test_absent_identity_is_generated(upgrade_options: UpgradeOptions) -> None:
    reader = _SecretReader(None)
    generator = SelfSignedIdentityGenerator(now_provider=lambda: NOW)

    resolved = _reconciler(reader, generator=generator)(
        GlobalConfig(namespace="meshup"), upgrade_options
    )

    assert resolved.generated is True
    assert reader.calls == 0
    assert resolved.trust_domain == upgrade_options.identity.trust_domain
    assert resolved.context.issuance_lifetime == upgrade_options.identity.issuance_lifetime
    assert resolved.context.clock_skew_allowance == upgrade_options.identity.clock_skew_allowance
    assert "BEGIN CERTIFICATE" in resolved.trust_anchors_pem


def test_generation_runs_produce_distinct_credentials(upgrade_options: UpgradeOptions) -> None:
    now = datetime.now(UTC)
    generator = SelfSignedIdentityGenerator(now_provider=lambda: now)
    reconciler = _reconciler(_SecretReader(None), generator=generator, now=now)
    lifetime = upgrade_options.identity.issuer_certificate_lifetime

    first = reconciler(GlobalConfig(), upgrade_options)
    second = reconciler(GlobalConfig(), upgrade_options)

    assert first.issuer.key_pem != second.issuer.key_pem
    assert first.issuer.crt_pem != second.issuer.crt_pem
    for resolved in (first, second):
        assert abs(resolved.issuer.not_after - (now + lifetime)) < timedelta(seconds=1)


def test_generated_identity_verifies_on_the_next_run(
    generated_identity: GeneratedIdentity, upgrade_options: UpgradeOptions
) -> None:
    context = IdentityContext(
        trust_domain=generated_identity.trust_domain,
        trust_anchors_pem=generated_identity.trust_anchors_pem,
    )
    issuer = generated_identity.issuer
    reader = _SecretReader(IssuerSecret(key_pem=issuer.key_pem, crt_pem=issuer.crt_pem))

    resolved = _reconciler(reader)(
        GlobalConfig(identity_context=context), upgrade_options
    )

    assert resolved.generated is False
    assert resolved.issuer == issuer
