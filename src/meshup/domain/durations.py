"""Parsing and formatting of compact duration strings such as ``24h0m0s``."""

from __future__ import annotations

import re
from datetime import timedelta
from decimal import Decimal, InvalidOperation

_UNITS: dict[str, Decimal] = {
    "ns": Decimal("0.000000001"),
    "us": Decimal("0.000001"),
    "µs": Decimal("0.000001"),
    "ms": Decimal("0.001"),
    "s": Decimal(1),
    "m": Decimal(60),
    "h": Decimal(3600),
}
_COMPONENT = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: str) -> timedelta:
    """Parse ``1h30m``, ``20s``, ``1.5s`` or ``86400s`` into a ``timedelta``.

    Raises ``ValueError`` for empty, negative or otherwise malformed input.
    """

    text = value.strip()
    if text == "0":
        return timedelta(0)
    if not text:
        raise ValueError("empty duration")

    position = 0
    total = Decimal(0)
    while position < len(text):
        match = _COMPONENT.match(text, position)
        if match is None:
            raise ValueError(f"invalid duration: {value!r}")
        try:
            amount = Decimal(match.group(1))
        except InvalidOperation as exc:
            raise ValueError(f"invalid duration: {value!r}") from exc
        total += amount * _UNITS[match.group(2)]
        position = match.end()
    return timedelta(seconds=float(total))


def format_duration(value: timedelta) -> str:
    """Format ``value`` as hours, minutes and seconds (``24h0m0s``, ``1m30s``, ``20s``)."""

    if value < timedelta(0):
        raise ValueError("negative durations are not supported")
    total_micros = (value.days * 86400 + value.seconds) * 1_000_000 + value.microseconds
    hours, remainder = divmod(total_micros, 3600 * 1_000_000)
    minutes, micros = divmod(remainder, 60 * 1_000_000)
    seconds = _format_seconds(micros)
    if hours:
        return f"{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{minutes}m{seconds}s"
    return f"{seconds}s"


def format_seconds(value: timedelta) -> str:
    """Format ``value`` as a plain seconds count (``86400s``) for stored documents."""

    total_micros = (value.days * 86400 + value.seconds) * 1_000_000 + value.microseconds
    return f"{_format_seconds(total_micros)}s"


def _format_seconds(micros: int) -> str:
    whole, fraction = divmod(micros, 1_000_000)
    if not fraction:
        return str(whole)
    return f"{whole}.{fraction:06d}".rstrip("0")
