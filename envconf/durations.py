# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Duration literals such as ``2h``, ``1h30m`` or ``300ms``.

A literal is an optionally signed sequence of decimal numbers, each with an
optional fraction and a mandatory unit.  Valid units are ``ns``, ``us``
(or ``µs``), ``ms``, ``s``, ``m`` and ``h``.  The bare literal ``0`` is also
accepted.  Values are represented as ``datetime.timedelta``, so anything
below one microsecond is truncated.
"""

import re
from datetime import timedelta
from fractions import Fraction


#: Microseconds per unit.
_UNITS: dict[str, Fraction] = {
    "ns": Fraction(1, 1000),
    "us": Fraction(1),
    "µs": Fraction(1),  # U+00B5 micro sign
    "μs": Fraction(1),  # U+03BC greek small letter mu
    "ms": Fraction(1000),
    "s": Fraction(1_000_000),
    "m": Fraction(60_000_000),
    "h": Fraction(3_600_000_000),
}

_COMPONENT = re.compile(
    r"([0-9]+\.?[0-9]*|\.[0-9]+)(ns|us|µs|μs|ms|s|m|h)"
)

#: Largest magnitude representable as a signed 64-bit nanosecond count.
_MAX_MICROS = Fraction(2**63 - 1, 1000)


def parse_duration(literal: str) -> timedelta:
    """Parse a duration literal.

    Args:
        literal: The literal to parse, e.g. ``"1h30m"`` or ``"-5m"``.

    Returns:
        The parsed duration.

    Raises:
        ValueError: If the literal is malformed or out of range.
    """
    text = literal.strip()
    sign = 1
    if text[:1] in ("-", "+"):
        if text[0] == "-":
            sign = -1
        text = text[1:]

    if text == "0":
        return timedelta(0)
    if not text:
        raise ValueError(f"invalid duration {literal!r}")

    total = Fraction(0)
    pos = 0
    while pos < len(text):
        match = _COMPONENT.match(text, pos)
        if match is None:
            if text[pos] in "0123456789.":
                raise ValueError(f"missing unit in duration {literal!r}")
            raise ValueError(f"invalid duration {literal!r}")
        number, unit = match.groups()
        total += Fraction(number) * _UNITS[unit]
        pos = match.end()
        if total > _MAX_MICROS:
            raise ValueError(f"invalid duration {literal!r}: overflow")

    return timedelta(microseconds=sign * int(total))


def format_duration(value: timedelta) -> str:
    """Format a duration the way it would be written in the environment.

    ``timedelta(hours=2)`` becomes ``"2h0m0s"`` and ``timedelta(0)`` becomes
    ``"0s"``.  Sub-second durations use ``ms``/``us``.
    """
    micros = (
        value.days * 86_400_000_000
        + value.seconds * 1_000_000
        + value.microseconds
    )
    if micros == 0:
        return "0s"

    sign = "-" if micros < 0 else ""
    micros = abs(micros)

    if micros < 1_000_000:
        if micros % 1000 == 0:
            return f"{sign}{micros // 1000}ms"
        return f"{sign}{micros}us"

    hours, rest = divmod(micros, 3_600_000_000)
    minutes, rest = divmod(rest, 60_000_000)
    seconds, fraction = divmod(rest, 1_000_000)

    out = f"{seconds}"
    if fraction:
        out += f".{fraction:06d}".rstrip("0")
    out += "s"
    if hours or minutes:
        out = f"{minutes}m{out}"
    if hours:
        out = f"{hours}h{out}"
    return sign + out
