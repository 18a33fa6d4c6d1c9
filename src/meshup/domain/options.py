"""Typed upgrade options derived from the merged flag set."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import timedelta
from typing import TYPE_CHECKING, Final

from meshup.domain.durations import parse_duration
from meshup.domain.errors import InvalidOptionsError
from meshup.domain.flags import FlagKind, FlagOrigin, FlagSpec
from meshup.domain.model import ProxyConfig

if TYPE_CHECKING:
    from meshup.domain.flags import FlagSet
    from meshup.domain.model import GlobalConfig

HA_CONTROLLER_REPLICAS: Final[int] = 3
CONTROLLER_LOG_LEVELS: Final[frozenset[str]] = frozenset(
    {"panic", "fatal", "error", "warn", "info", "debug"}
)

FLAG_SPECS: Final[tuple[FlagSpec, ...]] = (
    FlagSpec("controller-replicas", "1", "Replicas of each control-plane component", FlagKind.INT),
    FlagSpec("controller-log-level", "info", "Log level for the control-plane components"),
    FlagSpec("ha", "false", "Enable HA deployment config for the control plane", FlagKind.BOOL),
    FlagSpec(
        "proxy-auto-inject",
        "false",
        "Enable proxy sidecar auto-injection via a webhook",
        FlagKind.BOOL,
    ),
    FlagSpec(
        "omit-webhook-side-effects",
        "false",
        "Omit the sideEffects flag in the webhook manifests",
        FlagKind.BOOL,
    ),
    FlagSpec("proxy-image", "ghcr.io/meshup/proxy", "Proxy container image name"),
    FlagSpec("proxy-version", "", "Tag for the proxy image (defaults to the CLI version)"),
    FlagSpec("proxy-log-level", "warn,meshup=info", "Log level for the proxy"),
    FlagSpec("proxy-uid", "2102", "Run the proxy under this user ID", FlagKind.INT),
    FlagSpec("inbound-port", "4143", "Proxy port to use for inbound traffic", FlagKind.INT),
    FlagSpec("outbound-port", "4140", "Proxy port to use for outbound traffic", FlagKind.INT),
    FlagSpec("admin-port", "4191", "Proxy port to serve metrics on", FlagKind.INT),
    FlagSpec("control-port", "4190", "Proxy port to use for control", FlagKind.INT),
    FlagSpec(
        "skip-inbound-ports",
        "",
        "Comma-separated ports that should skip the proxy for inbound traffic",
        FlagKind.PORTS,
    ),
    FlagSpec(
        "skip-outbound-ports",
        "",
        "Comma-separated ports that should skip the proxy for outbound traffic",
        FlagKind.PORTS,
    ),
    FlagSpec("identity-trust-domain", "cluster.local", "Trust domain used for identity"),
    FlagSpec(
        "identity-issuance-lifetime",
        "24h0m0s",
        "How long certificates issued by the identity component remain valid",
        FlagKind.DURATION,
    ),
    FlagSpec(
        "identity-clock-skew-allowance",
        "20s",
        "Amount of clock skew tolerated when issuing certificates",
        FlagKind.DURATION,
    ),
    FlagSpec(
        "identity-issuer-certificate-lifetime",
        "8760h0m0s",
        "Validity of a newly generated trust anchor and issuer certificate",
        FlagKind.DURATION,
    ),
)


@dataclass(frozen=True, slots=True)
class IdentityOptions:
    """Inputs for generating a brand-new identity."""

    trust_domain: str
    issuance_lifetime: timedelta
    clock_skew_allowance: timedelta
    issuer_certificate_lifetime: timedelta
    namespace: str


@dataclass(frozen=True, slots=True, kw_only=True)
class UpgradeOptions:
    """All settings for one upgrade invocation, constructed fresh every time."""

    namespace: str
    cli_version: str
    controller_replicas: int
    controller_log_level: str
    high_availability: bool
    proxy_auto_inject: bool
    omit_webhook_side_effects: bool
    proxy: ProxyConfig
    identity: IdentityOptions

    @classmethod
    def from_flags(cls, flags: FlagSet, *, namespace: str, cli_version: str) -> UpgradeOptions:
        """Parse the merged flag set into typed options.

        Raises :class:`InvalidOptionsError` when a value (explicit or recorded) does not
        parse, then runs :meth:`validate`.
        """

        reader = _FlagReader(flags)
        high_availability = reader.boolean("ha")
        replicas = reader.integer("controller-replicas")
        if high_availability and flags["controller-replicas"].origin is FlagOrigin.DEFAULT:
            replicas = HA_CONTROLLER_REPLICAS

        options = cls(
            namespace=namespace,
            cli_version=cli_version,
            controller_replicas=replicas,
            controller_log_level=reader.string("controller-log-level"),
            high_availability=high_availability,
            proxy_auto_inject=reader.boolean("proxy-auto-inject"),
            omit_webhook_side_effects=reader.boolean("omit-webhook-side-effects"),
            proxy=ProxyConfig(
                image=reader.string("proxy-image"),
                version=reader.string("proxy-version") or cli_version,
                log_level=reader.string("proxy-log-level"),
                uid=reader.integer("proxy-uid"),
                inbound_port=reader.integer("inbound-port"),
                outbound_port=reader.integer("outbound-port"),
                admin_port=reader.integer("admin-port"),
                control_port=reader.integer("control-port"),
                ignore_inbound_ports=reader.ports("skip-inbound-ports"),
                ignore_outbound_ports=reader.ports("skip-outbound-ports"),
            ),
            identity=IdentityOptions(
                trust_domain=reader.string("identity-trust-domain"),
                issuance_lifetime=reader.duration("identity-issuance-lifetime"),
                clock_skew_allowance=reader.duration("identity-clock-skew-allowance"),
                issuer_certificate_lifetime=reader.duration(
                    "identity-issuer-certificate-lifetime"
                ),
                namespace=namespace,
            ),
        )
        options.validate()
        return options

    def validate(self) -> None:
        if self.controller_replicas < 1:
            raise InvalidOptionsError("--controller-replicas must be at least 1")
        if self.controller_log_level not in CONTROLLER_LOG_LEVELS:
            levels = ", ".join(sorted(CONTROLLER_LOG_LEVELS))
            raise InvalidOptionsError(
                f"--controller-log-level must be one of: {levels} "
                f"(got {self.controller_log_level!r})"
            )
        if not self.proxy.log_level:
            raise InvalidOptionsError("--proxy-log-level must not be empty")
        if not self.proxy.image:
            raise InvalidOptionsError("--proxy-image must not be empty")
        if self.proxy.uid < 0:
            raise InvalidOptionsError("--proxy-uid must not be negative")
        for name, port in (
            ("inbound-port", self.proxy.inbound_port),
            ("outbound-port", self.proxy.outbound_port),
            ("admin-port", self.proxy.admin_port),
            ("control-port", self.proxy.control_port),
        ):
            _check_port(name, port)
        if self.proxy.inbound_port == self.proxy.outbound_port:
            raise InvalidOptionsError("--inbound-port and --outbound-port must differ")
        if not self.identity.trust_domain:
            raise InvalidOptionsError("--identity-trust-domain must not be empty")
        for name, value in (
            ("identity-issuance-lifetime", self.identity.issuance_lifetime),
            ("identity-issuer-certificate-lifetime", self.identity.issuer_certificate_lifetime),
        ):
            if value <= timedelta(0):
                raise InvalidOptionsError(f"--{name} must be positive")


def apply_options(global_config: GlobalConfig, options: UpgradeOptions) -> GlobalConfig:
    """Return ``global_config`` updated with the settings the options control.

    The identity context is left alone: an existing trust relationship is never
    changed by flags.
    """

    return replace(
        global_config,
        namespace=global_config.namespace or options.namespace,
        version=options.cli_version,
        auto_inject=global_config.auto_inject or options.proxy_auto_inject,
        omit_webhook_side_effects=options.omit_webhook_side_effects,
        proxy=options.proxy,
    )


class _FlagReader:
    __slots__ = ("_flags",)

    def __init__(self, flags: FlagSet) -> None:
        self._flags = flags

    def _raw(self, name: str) -> str:
        return self._flags[name].value

    def _invalid(self, name: str, expected: str) -> InvalidOptionsError:
        flag = self._flags[name]
        return InvalidOptionsError(
            f"invalid {flag.origin} value for --{name}: {flag.value!r} is not {expected}"
        )

    def string(self, name: str) -> str:
        return self._raw(name).strip()

    def integer(self, name: str) -> int:
        try:
            return int(self._raw(name))
        except ValueError:
            raise self._invalid(name, "an integer") from None

    def boolean(self, name: str) -> bool:
        value = self._raw(name).strip().lower()
        if value in {"true", "1", "t", "yes"}:
            return True
        if value in {"false", "0", "f", "no"}:
            return False
        raise self._invalid(name, "a boolean")

    def duration(self, name: str) -> timedelta:
        try:
            return parse_duration(self._raw(name))
        except ValueError:
            raise self._invalid(name, "a duration") from None

    def ports(self, name: str) -> tuple[int, ...]:
        raw = self._raw(name)
        ports: list[int] = []
        for chunk in raw.split(","):
            part = chunk.strip()
            if not part:
                continue
            try:
                port = int(part)
            except ValueError:
                raise self._invalid(name, "a comma-separated list of ports") from None
            _check_port(name, port)
            ports.append(port)
        return tuple(ports)


def _check_port(name: str, port: int) -> None:
    if not 1 <= port <= 65535:
        raise InvalidOptionsError(f"--{name} must be between 1 and 65535 (got {port})")


__all__ = [
    "FLAG_SPECS",
    "HA_CONTROLLER_REPLICAS",
    "IdentityOptions",
    "UpgradeOptions",
    "apply_options",
]
