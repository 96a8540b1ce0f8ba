# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Decode environment values into configuration dataclasses.

``decode()`` walks the FieldSpec table of a configuration type.  For each
field it looks the key up, applies the default or required rule, runs the
raw string through every mutator in order and converts the result to the
field's type.  The first failure aborts the whole call; the structure is
only constructed once every field has decoded, so a failed decode never
yields a partially populated object.
"""

import logging
import re
from collections.abc import Callable
from typing import Any

from envconf.durations import parse_duration
from envconf.errors import (
    ConfigError,
    MissingRequiredFieldError,
    MutatorError,
    TypeConversionError,
)
from envconf.fields import FieldKind, FieldSpec, build, field_specs, zero_value
from envconf.lookuper import Lookuper, OsLookuper


logger = logging.getLogger(__name__)

#: Rewrites a raw value before type conversion.  Raises on failure.
type MutatorFunc = Callable[[FieldSpec, str], str]

_BOOL_TRUTHY = frozenset({"true", "1", "yes", "on", "t"})
_BOOL_FALSY = frozenset({"false", "0", "no", "off", "f"})
_INTEGER = re.compile(r"[+-]?[0-9]+")


def decode[T](cls: type[T], lookuper: Lookuper, *mutators: MutatorFunc) -> T:
    """Decode a configuration dataclass.

    Args:
        cls: Dataclass whose fields are declared with ``env()``/``nested()``.
        lookuper: Source of raw environment values.
        *mutators: Applied to every present or defaulted value, in order.

    Returns:
        A new instance of ``cls``.

    Raises:
        MissingRequiredFieldError: A required key is absent.
        TypeConversionError: A value cannot be converted.
        ConfigError: A mutator failed (``MutatorError`` for non-config
            exceptions).
    """
    values: dict[tuple[str, ...], Any] = {}
    for spec in field_specs(cls):
        values[spec.path] = _decode_field(spec, lookuper, mutators)
    return build(cls, values)


def process[T](cls: type[T], *mutators: MutatorFunc) -> T:
    """Decode ``cls`` from the process environment."""
    return decode(cls, OsLookuper(), *mutators)


def _decode_field(
    spec: FieldSpec, lookuper: Lookuper, mutators: tuple[MutatorFunc, ...]
) -> Any:
    raw = lookuper.lookup(spec.key)
    if raw:
        logger.debug("%s: from environment", spec.key)
    elif spec.default is not None:
        logger.debug("%s: using default", spec.key)
        raw = spec.default
    elif spec.required:
        raise MissingRequiredFieldError(spec.key)
    else:
        return zero_value(spec.kind)

    for mutator in mutators:
        try:
            raw = mutator(spec, raw)
        except ConfigError as e:
            e.add_note(f"while processing {spec.key} ({spec.name})")
            raise
        except Exception as e:
            raise MutatorError(spec.key, str(e)) from e

    return convert(spec, raw)


def convert(spec: FieldSpec, raw: str) -> Any:
    """Convert a raw string to the type named by ``spec.kind``.

    Raises:
        TypeConversionError: If the value is not valid for the kind.
    """
    try:
        return _CONVERTERS[spec.kind](raw)
    except ValueError as e:
        raise TypeConversionError(spec.key, spec.kind.value, raw, str(e)) from e


def _to_int(raw: str) -> int:
    s = raw.strip()
    if not _INTEGER.fullmatch(s):
        raise ValueError(f"invalid base-10 integer {raw!r}")
    return int(s)


def _to_uint(raw: str) -> int:
    value = _to_int(raw)
    if value < 0:
        raise ValueError("must not be negative")
    return value


def _to_bool(raw: str) -> bool:
    s = raw.lower().strip()
    if s in _BOOL_TRUTHY:
        return True
    if s in _BOOL_FALSY:
        return False
    raise ValueError(f"cannot convert {raw!r} to bool")


_CONVERTERS: dict[FieldKind, Callable[[str], Any]] = {
    FieldKind.STRING: str,
    FieldKind.INT: _to_int,
    FieldKind.UINT: _to_uint,
    FieldKind.BOOL: _to_bool,
    FieldKind.DURATION: parse_duration,
}
