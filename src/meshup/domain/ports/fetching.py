"""Ports for reading persisted control-plane state."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from meshup.domain.model import ControlPlaneConfig


@dataclass(frozen=True, slots=True)
class IssuerSecret:
    """Raw PEM material read from the issuer secret."""

    key_pem: str
    crt_pem: str


@runtime_checkable
class ConfigFetcher(Protocol):
    """Callable port returning the persisted configuration.

    Implementations raise :class:`meshup.domain.errors.FetchError` on any read or
    decode failure and never fall back to defaults.
    """

    def __call__(self) -> ControlPlaneConfig:
        ...


@runtime_checkable
class IssuerSecretReader(Protocol):
    """Callable port returning the issuer key and certificate PEM blocks.

    Implementations raise :class:`meshup.domain.errors.FetchError` when the secret
    cannot be read.
    """

    def __call__(self) -> IssuerSecret:
        ...


__all__ = ["ConfigFetcher", "IssuerSecret", "IssuerSecretReader"]
