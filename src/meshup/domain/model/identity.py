"""Identity variants and issuer credentials."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from meshup.domain.errors import PreconditionError

from .config import IdentityContext

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True, slots=True)
class IssuerCredential:
    """Private key and certificate used by the identity component to sign workloads."""

    key_pem: str
    crt_pem: str
    not_after: datetime


@dataclass(frozen=True, slots=True)
class AbsentIdentity:
    """No usable identity is configured; a new one must be generated."""


@dataclass(frozen=True, slots=True)
class PresentIdentity:
    """A configured identity whose issuer must be fetched and verified."""

    context: IdentityContext

    def __post_init__(self) -> None:
        if not self.context.trust_domain or not self.context.trust_anchors_pem:
            raise PreconditionError(
                "a present identity requires both a trust domain and trust anchors"
            )


type Identity = AbsentIdentity | PresentIdentity


def identity_from_context(context: IdentityContext | None) -> Identity:
    """Classify a stored identity context; partially populated contexts count as absent."""

    if context is None or not context.trust_domain or not context.trust_anchors_pem:
        return AbsentIdentity()
    return PresentIdentity(context=context)


@dataclass(frozen=True, slots=True)
class GeneratedIdentity:
    """Output of an identity generator for a brand-new trust relationship."""

    trust_domain: str
    trust_anchors_pem: str
    issuer: IssuerCredential


@dataclass(frozen=True, slots=True)
class ResolvedIdentity:
    """Identity settings embedded into the reconciled values."""

    context: IdentityContext
    issuer: IssuerCredential
    replicas: int
    generated: bool = False

    @property
    def trust_domain(self) -> str:
        return self.context.trust_domain

    @property
    def trust_anchors_pem(self) -> str:
        return self.context.trust_anchors_pem
