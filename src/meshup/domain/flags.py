"""Recordable flags and the precedence rules used to merge them.

A flag value can come from three places. In increasing order of precedence:

1) the compiled-in default of the flag catalogue
2) the value recorded in the install record by a previous run
3) an explicit value passed on the current command line

Every :class:`FlagValue` carries its :class:`FlagOrigin` so callers never need a
mutable "changed" bit on a shared registry.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from meshup.domain.model import RecordedFlag

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping, Sequence

log = getLogger(__name__)


class FlagOrigin(StrEnum):
    DEFAULT = "default"
    RECORDED = "recorded"
    EXPLICIT = "explicit"


class FlagKind(StrEnum):
    STRING = "string"
    INT = "int"
    BOOL = "bool"
    DURATION = "duration"
    PORTS = "ports"


@dataclass(frozen=True, slots=True)
class FlagSpec:
    """Catalogue entry describing one recordable flag."""

    name: str
    default: str
    help: str
    kind: FlagKind = FlagKind.STRING


@dataclass(frozen=True, slots=True)
class FlagValue:
    spec: FlagSpec
    value: str
    origin: FlagOrigin = FlagOrigin.DEFAULT

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def changed(self) -> bool:
        return self.origin is not FlagOrigin.DEFAULT


class FlagSet:
    """Ordered, immutable collection of flag values keyed by name."""

    __slots__ = ("_values",)

    def __init__(self, values: Iterable[FlagValue] = ()) -> None:
        self._values: dict[str, FlagValue] = {}
        for flag in values:
            if flag.name in self._values:
                raise ValueError(f"duplicate flag {flag.name!r}")
            self._values[flag.name] = flag

    @classmethod
    def from_specs(
        cls,
        specs: Iterable[FlagSpec],
        explicit: Mapping[str, str] | None = None,
    ) -> FlagSet:
        """Build a flag set from catalogue defaults plus explicitly passed values."""

        overrides = dict(explicit or {})
        values: list[FlagValue] = []
        for spec in specs:
            if spec.name in overrides:
                values.append(FlagValue(spec, overrides.pop(spec.name), FlagOrigin.EXPLICIT))
            else:
                values.append(FlagValue(spec, spec.default))
        if overrides:
            unknown = ", ".join(sorted(overrides))
            raise ValueError(f"unknown flags: {unknown}")
        return cls(values)

    def lookup(self, name: str) -> FlagValue | None:
        return self._values.get(name)

    def __getitem__(self, name: str) -> FlagValue:
        return self._values[name]

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __iter__(self) -> Iterator[FlagValue]:
        return iter(self._values.values())

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FlagSet):
            return NotImplemented
        return list(self._values.values()) == list(other._values.values())

    def __repr__(self) -> str:
        return f"FlagSet({list(self._values.values())!r})"

    def with_value(self, name: str, value: str, origin: FlagOrigin) -> FlagSet:
        current = self._values[name]
        return FlagSet(
            replace(flag, value=value, origin=origin) if flag is current else flag
            for flag in self._values.values()
        )

    def recorded(self) -> tuple[RecordedFlag, ...]:
        """Flags worth persisting: everything that did not fall back to its default."""

        return tuple(RecordedFlag(flag.name, flag.value) for flag in self if flag.changed)


def reconcile_flags(recorded: Sequence[RecordedFlag], current: FlagSet) -> FlagSet:
    """Restore recorded values for every flag not explicitly set on this invocation.

    Recorded names that the current catalogue no longer knows are dropped with a
    warning. Each name is handled independently, so the order of ``recorded`` does
    not matter beyond duplicate names, where the last entry wins.
    """

    merged = current
    for entry in recorded:
        flag = current.lookup(entry.name)
        if flag is None:
            log.warning("Ignoring recorded flag %s: no longer supported", entry.name)
            continue
        if flag.origin is FlagOrigin.EXPLICIT:
            log.debug(
                "Keeping explicit --%s=%s over recorded %s", flag.name, flag.value, entry.value
            )
            continue
        log.debug("Restoring recorded --%s=%s", entry.name, entry.value)
        merged = merged.with_value(entry.name, entry.value, FlagOrigin.RECORDED)
    return merged


__all__ = [
    "FlagKind",
    "FlagOrigin",
    "FlagSet",
    "FlagSpec",
    "FlagValue",
    "reconcile_flags",
]
