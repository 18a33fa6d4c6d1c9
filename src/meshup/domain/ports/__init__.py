"""Domain port definitions for adapters."""

from __future__ import annotations

from .fetching import ConfigFetcher, IssuerSecret, IssuerSecretReader
from .identity import CandidateCredential, CredentialVerifier, IdentityGenerator, TrustAnchors

__all__ = [
    "CandidateCredential",
    "ConfigFetcher",
    "CredentialVerifier",
    "IdentityGenerator",
    "IssuerSecret",
    "IssuerSecretReader",
    "TrustAnchors",
]
