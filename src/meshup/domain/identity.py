"""Decide whether to reuse, verify or generate the mesh identity.

An existing identity is never replaced: when the stored trust anchors or the issuer
secret do not check out, the run fails and the operator has to decide. Replacing
them would break mutual TLS between proxies that still trust the old anchors.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from meshup.domain.errors import (
    InvalidIssuerCredentialError,
    MalformedIssuerCredentialError,
    MalformedTrustAnchorsError,
)
from meshup.domain.model import (
    AbsentIdentity,
    IdentityContext,
    IssuerCredential,
    PresentIdentity,
    ResolvedIdentity,
    identity_from_context,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from meshup.domain.model import GlobalConfig
    from meshup.domain.options import UpgradeOptions
    from meshup.domain.ports import CredentialVerifier, IdentityGenerator, IssuerSecretReader

log = getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class IdentityReconciler:
    generate: IdentityGenerator
    read_issuer_secret: IssuerSecretReader
    verifier: CredentialVerifier
    now_provider: Callable[[], datetime] = field(default=_utcnow)

    def __call__(self, global_config: GlobalConfig, options: UpgradeOptions) -> ResolvedIdentity:
        match identity_from_context(global_config.identity_context):
            case PresentIdentity(context=context):
                log.info("Verifying existing issuer credentials for %s", context.trust_domain)
                issuer = self.fetch_issuer(context)
                return ResolvedIdentity(
                    context=context,
                    issuer=issuer,
                    replicas=options.controller_replicas,
                )
            case AbsentIdentity():
                # Upgrading from a version without identity support, or the stored
                # context is incomplete.
                log.info("No usable identity configured; generating a new trust anchor")
                return self._generate(options)

    def fetch_issuer(self, context: IdentityContext) -> IssuerCredential:
        """Read the issuer secret and verify it against ``context``'s trust anchors."""

        try:
            anchors = self.verifier.load_trust_anchors(context.trust_anchors_pem)
        except ValueError as exc:
            raise MalformedTrustAnchorsError(f"could not decode trust anchors: {exc}") from exc

        secret = self.read_issuer_secret()

        try:
            credential = self.verifier.load_credential(secret.key_pem, secret.crt_pem)
        except ValueError as exc:
            raise MalformedIssuerCredentialError(
                f"could not decode issuer credentials: {exc}"
            ) from exc

        try:
            self.verifier.verify(credential, anchors, at=self.now_provider())
        except ValueError as exc:
            raise InvalidIssuerCredentialError(f"invalid issuer credentials: {exc}") from exc

        log.debug("Issuer certificate valid until %s", credential.not_after.isoformat())
        return IssuerCredential(
            key_pem=secret.key_pem,
            crt_pem=secret.crt_pem,
            not_after=credential.not_after,
        )

    def _generate(self, options: UpgradeOptions) -> ResolvedIdentity:
        generated = self.generate(options.identity)
        context = IdentityContext(
            trust_domain=generated.trust_domain,
            trust_anchors_pem=generated.trust_anchors_pem,
            clock_skew_allowance=options.identity.clock_skew_allowance,
            issuance_lifetime=options.identity.issuance_lifetime,
        )
        return ResolvedIdentity(
            context=context,
            issuer=generated.issuer,
            replicas=options.controller_replicas,
            generated=True,
        )


__all__ = ["IdentityReconciler"]
