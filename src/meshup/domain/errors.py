"""Failure taxonomy for upgrade reconciliation.

Every environment-caused failure derives from :class:`UpgradeError` and is reported
to the operator. :class:`PreconditionError` is reserved for broken calling code and
is an ``AssertionError`` so that user-facing handlers never catch it.
"""

from __future__ import annotations


class UpgradeError(RuntimeError):
    """Base class for fatal, user-facing reconciliation failures."""


class FetchError(UpgradeError):
    """Raised when persisted configuration or secrets cannot be read."""


class MalformedTrustAnchorsError(UpgradeError):
    """Raised when the stored trust-anchor PEM cannot be decoded."""


class MalformedIssuerCredentialError(UpgradeError):
    """Raised when the issuer key or certificate PEM cannot be decoded."""


class InvalidIssuerCredentialError(UpgradeError):
    """Raised when the issuer credential does not verify against the trust anchors."""


class IdentityGenerationError(UpgradeError):
    """Raised when a new identity could not be generated."""


class InvalidOptionsError(UpgradeError):
    """Raised when a flag value cannot be parsed or is out of range."""


class RenderError(UpgradeError):
    """Raised when reconciled values cannot be rendered into a manifest."""


class PreconditionError(AssertionError):
    """Raised when calling code violates an internal invariant."""


__all__ = [
    "FetchError",
    "IdentityGenerationError",
    "InvalidIssuerCredentialError",
    "InvalidOptionsError",
    "MalformedIssuerCredentialError",
    "MalformedTrustAnchorsError",
    "PreconditionError",
    "RenderError",
    "UpgradeError",
]
