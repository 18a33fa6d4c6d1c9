"""PEM decoding, chain verification and identity generation backed by ``cryptography``."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, Final

from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from meshup.domain.errors import IdentityGenerationError
from meshup.domain.model import GeneratedIdentity, IssuerCredential

if TYPE_CHECKING:
    from collections.abc import Callable

    from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes

    from meshup.domain.options import IdentityOptions

log = getLogger(__name__)

MAX_CHAIN_DEPTH: Final[int] = 8
_PEM_CERTIFICATE_MARKER: Final[bytes] = b"-----BEGIN CERTIFICATE-----"


class TlsError(ValueError):
    """Raised when PEM material cannot be decoded or does not verify."""


@dataclass(frozen=True, slots=True)
class TrustPool:
    certificates: tuple[x509.Certificate, ...]


@dataclass(frozen=True, slots=True)
class Credential:
    """A private key with its certificate and any intermediates that follow it."""

    private_key: PrivateKeyTypes
    certificate: x509.Certificate
    intermediates: tuple[x509.Certificate, ...] = ()

    @property
    def not_after(self) -> datetime:
        return self.certificate.not_valid_after_utc


def decode_pem_certificates(pem: str) -> tuple[x509.Certificate, ...]:
    data = pem.encode("utf-8")
    if _PEM_CERTIFICATE_MARKER not in data:
        raise TlsError("no PEM certificate found")
    try:
        return tuple(x509.load_pem_x509_certificates(data))
    except ValueError as exc:
        raise TlsError(f"invalid certificate PEM: {exc}") from exc


def decode_pem_key(pem: str) -> PrivateKeyTypes:
    try:
        return serialization.load_pem_private_key(pem.encode("utf-8"), password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise TlsError(f"invalid private key PEM: {exc}") from exc


def encode_pem_certificate(certificate: x509.Certificate) -> str:
    return certificate.public_bytes(serialization.Encoding.PEM).decode("ascii")


def encode_pem_key(key: PrivateKeyTypes) -> str:
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


def verify_credential(credential: Credential, pool: TrustPool, *, at: datetime) -> None:
    """Check ``credential`` chains to ``pool`` and is valid at ``at``.

    There is no hostname check: the issuer certificate names a service identity.
    Raises :class:`TlsError` describing the first problem found.
    """

    if _public_key_bytes(credential.private_key.public_key()) != _public_key_bytes(
        credential.certificate.public_key()
    ):
        raise TlsError("private key does not match certificate")

    current = credential.certificate
    intermediates = list(credential.intermediates)
    for _ in range(MAX_CHAIN_DEPTH):
        _check_validity(current, at)
        anchor = _find_issuer(current, pool.certificates)
        if anchor is not None:
            _check_validity(anchor, at)
            return
        parent = _find_issuer(current, intermediates, require_ca=True)
        if parent is None:
            raise TlsError(
                f"certificate {_subject(current)} is signed by an unknown authority "
                f"({current.issuer.rfc4514_string()})"
            )
        intermediates.remove(parent)
        current = parent
    raise TlsError("certificate chain is too long")


@dataclass(frozen=True, slots=True)
class CryptographyVerifier:
    """:class:`meshup.domain.ports.CredentialVerifier` implementation."""

    def load_trust_anchors(self, pem: str) -> TrustPool:
        return TrustPool(certificates=decode_pem_certificates(pem))

    def load_credential(self, key_pem: str, crt_pem: str) -> Credential:
        key = decode_pem_key(key_pem)
        certificates = decode_pem_certificates(crt_pem)
        return Credential(
            private_key=key,
            certificate=certificates[0],
            intermediates=certificates[1:],
        )

    def verify(self, credential: Credential, anchors: TrustPool, *, at: datetime) -> None:
        verify_credential(credential, anchors, at=at)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def issuer_name(trust_domain: str, namespace: str) -> str:
    return f"identity.{namespace}.{trust_domain}"


@dataclass(slots=True)
class SelfSignedIdentityGenerator:
    """Generate an ECDSA P-256 root that acts as both trust anchor and issuer."""

    now_provider: Callable[[], datetime] = field(default=_utcnow)

    def __call__(self, options: IdentityOptions) -> GeneratedIdentity:
        try:
            key = ec.generate_private_key(ec.SECP256R1())
            certificate = self._build_certificate(key, options)
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            raise IdentityGenerationError(
                f"unable to generate issuer credentials: {exc}"
            ) from exc

        crt_pem = encode_pem_certificate(certificate)
        log.info(
            "Generated trust anchor %s valid until %s",
            _subject(certificate),
            certificate.not_valid_after_utc.isoformat(),
        )
        return GeneratedIdentity(
            trust_domain=options.trust_domain,
            trust_anchors_pem=crt_pem,
            issuer=IssuerCredential(
                key_pem=encode_pem_key(key),
                crt_pem=crt_pem,
                not_after=certificate.not_valid_after_utc,
            ),
        )

    def _build_certificate(
        self, key: ec.EllipticCurvePrivateKey, options: IdentityOptions
    ) -> x509.Certificate:
        now = self.now_provider()
        name = x509.Name(
            [
                x509.NameAttribute(
                    NameOID.COMMON_NAME,
                    issuer_name(options.trust_domain, options.namespace),
                )
            ]
        )
        public_key = key.public_key()
        return (
            x509.CertificateBuilder()
            .subject_name(name)
            .issuer_name(name)
            .public_key(public_key)
            .serial_number(x509.random_serial_number())
            .not_valid_before(now - options.clock_skew_allowance)
            .not_valid_after(now + options.issuer_certificate_lifetime)
            .add_extension(x509.BasicConstraints(ca=True, path_length=0), critical=True)
            .add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    content_commitment=False,
                    key_encipherment=False,
                    data_encipherment=False,
                    key_agreement=False,
                    key_cert_sign=True,
                    crl_sign=True,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True,
            )
            .add_extension(x509.SubjectKeyIdentifier.from_public_key(public_key), critical=False)
            .sign(key, hashes.SHA256())
        )


def _find_issuer(
    certificate: x509.Certificate,
    candidates: tuple[x509.Certificate, ...] | list[x509.Certificate],
    *,
    require_ca: bool = False,
) -> x509.Certificate | None:
    for candidate in candidates:
        if candidate.subject != certificate.issuer:
            continue
        if require_ca and not _is_ca(candidate):
            continue
        try:
            certificate.verify_directly_issued_by(candidate)
        except (ValueError, TypeError, InvalidSignature):
            continue
        return candidate
    return None


def _is_ca(certificate: x509.Certificate) -> bool:
    try:
        constraints = certificate.extensions.get_extension_for_class(x509.BasicConstraints)
    except x509.ExtensionNotFound:
        return False
    return constraints.value.ca


def _check_validity(certificate: x509.Certificate, at: datetime) -> None:
    if at < certificate.not_valid_before_utc:
        raise TlsError(
            f"certificate {_subject(certificate)} is not valid before "
            f"{certificate.not_valid_before_utc.isoformat()}"
        )
    if at > certificate.not_valid_after_utc:
        raise TlsError(
            f"certificate {_subject(certificate)} expired at "
            f"{certificate.not_valid_after_utc.isoformat()}"
        )


def _subject(certificate: x509.Certificate) -> str:
    return certificate.subject.rfc4514_string() or "<empty subject>"


def _public_key_bytes(key: object) -> bytes:
    return key.public_bytes(  # type: ignore[attr-defined]
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


__all__ = [
    "Credential",
    "CryptographyVerifier",
    "SelfSignedIdentityGenerator",
    "TlsError",
    "TrustPool",
    "decode_pem_certificates",
    "decode_pem_key",
    "encode_pem_certificate",
    "encode_pem_key",
    "issuer_name",
    "verify_credential",
]
