"""Ports for identity generation and credential verification."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime

    from meshup.domain.model import GeneratedIdentity
    from meshup.domain.options import IdentityOptions


@runtime_checkable
class IdentityGenerator(Protocol):
    """Mint a new trust anchor and issuer credential.

    Raises :class:`meshup.domain.errors.IdentityGenerationError` on failure.
    """

    def __call__(self, options: IdentityOptions) -> GeneratedIdentity:
        ...


class TrustAnchors(Protocol):
    """Opaque pool of decoded trust-anchor certificates."""


class CandidateCredential(Protocol):
    """Decoded issuer key and certificate awaiting verification."""

    @property
    def not_after(self) -> datetime:
        ...


@runtime_checkable
class CredentialVerifier(Protocol):
    """PEM decoding and chain verification primitives.

    Every method raises ``ValueError`` on failure; callers translate that into the
    error matching the step that failed.
    """

    def load_trust_anchors(self, pem: str) -> TrustAnchors:
        ...

    def load_credential(self, key_pem: str, crt_pem: str) -> CandidateCredential:
        ...

    def verify(
        self,
        credential: CandidateCredential,
        anchors: TrustAnchors,
        *,
        at: datetime,
    ) -> None:
        ...


__all__ = [
    "CandidateCredential",
    "CredentialVerifier",
    "IdentityGenerator",
    "TrustAnchors",
]
