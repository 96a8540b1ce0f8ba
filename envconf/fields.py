# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Declarative field metadata for environment-backed configuration.

Configuration structures are frozen dataclasses.  Each field is declared
exactly once with ``env()`` (a scalar read from one environment variable)
or ``nested()`` (another configuration structure, optionally with a key
prefix)::

    @dataclass(frozen=True)
    class DatabaseConfig:
        host: str = env("DB_HOST", default="localhost")
        port: int = env("DB_PORT", FieldKind.INT, default="5432")
        password: str = env("DB_PASSWORD", required=True)

``field_specs()`` flattens a structure into a table of ``FieldSpec`` values,
built once per type and iterated by the decoder.
"""

import dataclasses
import functools
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any

from envconf.errors import ConfigError


_ENV_KEY = "envconf.env"
_NESTED_KEY = "envconf.nested"


class FieldKind(Enum):
    """Semantic type an environment string is converted to."""

    STRING = "string"
    INT = "int"
    UINT = "uint"
    BOOL = "bool"
    DURATION = "duration"


_ZERO_VALUES: dict[FieldKind, Any] = {
    FieldKind.STRING: "",
    FieldKind.INT: 0,
    FieldKind.UINT: 0,
    FieldKind.BOOL: False,
    FieldKind.DURATION: timedelta(0),
}


def zero_value(kind: FieldKind) -> Any:
    """Return the value a field takes when unset and without a default."""
    return _ZERO_VALUES[kind]


@dataclass(frozen=True)
class _EnvDecl:
    key: str
    kind: FieldKind
    required: bool
    default: str | None


@dataclass(frozen=True)
class _NestedDecl:
    cls: type
    prefix: str


@dataclass(frozen=True)
class FieldSpec:
    """Description of one configuration field.

    Attributes:
        key: Environment variable name (including any nested prefix).
        kind: Target semantic type.
        required: Whether the variable must be set.
        default: Literal used when the variable is absent.  Converted
            exactly like a value read from the environment.
        path: Attribute path from the root structure to this field.
    """

    key: str
    kind: FieldKind
    required: bool = False
    default: str | None = None
    path: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.required and self.default is not None:
            raise ConfigError(
                f"Field '{self.key}' cannot be both required and have "
                f"a default"
            )

    @property
    def name(self) -> str:
        """Dotted attribute path, e.g. ``firebase.api_key``."""
        return ".".join(self.path)


def env(
    key: str,
    kind: FieldKind = FieldKind.STRING,
    *,
    default: str | None = None,
    required: bool = False,
) -> Any:
    """Declare a dataclass field read from environment variable ``key``.

    Args:
        key: Environment variable name.
        kind: Semantic type of the value.
        default: Literal used when the variable is absent.
        required: Fail decoding when the variable is absent.

    Returns:
        A ``dataclasses.field`` whose default is the kind's zero value.

    Raises:
        ConfigError: If both ``required`` and ``default`` are given.
    """
    if required and default is not None:
        raise ConfigError(
            f"Field '{key}' cannot be both required and have a default"
        )
    return dataclasses.field(
        default=zero_value(kind),
        metadata={_ENV_KEY: _EnvDecl(key, kind, required, default)},
    )


def nested(cls: type, prefix: str = "") -> Any:
    """Declare a dataclass field holding another configuration structure.

    Args:
        cls: The nested configuration dataclass.
        prefix: Prepended to every environment key inside ``cls``.
    """
    return dataclasses.field(
        default_factory=cls,
        metadata={_NESTED_KEY: _NestedDecl(cls, prefix)},
    )


@functools.cache
def field_specs(cls: type) -> tuple[FieldSpec, ...]:
    """Return the FieldSpec table for a configuration dataclass.

    Fields appear in declaration order; nested structures are expanded
    depth-first at the position they are declared.  Dataclass fields not
    declared with ``env()`` or ``nested()`` are ignored.

    Raises:
        TypeError: If ``cls`` is not a dataclass.
    """
    return tuple(_walk(cls, prefix="", path=()))


def _walk(cls: type, prefix: str, path: tuple[str, ...]) -> list[FieldSpec]:
    if not dataclasses.is_dataclass(cls):
        raise TypeError(f"{cls!r} is not a dataclass")

    specs: list[FieldSpec] = []
    for f in dataclasses.fields(cls):
        if _NESTED_KEY in f.metadata:
            decl: _NestedDecl = f.metadata[_NESTED_KEY]
            specs.extend(
                _walk(decl.cls, prefix + decl.prefix, (*path, f.name))
            )
        elif _ENV_KEY in f.metadata:
            env_decl: _EnvDecl = f.metadata[_ENV_KEY]
            specs.append(
                FieldSpec(
                    key=prefix + env_decl.key,
                    kind=env_decl.kind,
                    required=env_decl.required,
                    default=env_decl.default,
                    path=(*path, f.name),
                )
            )
    return specs


def build[T](cls: type[T], values: dict[tuple[str, ...], Any]) -> T:
    """Construct ``cls`` from decoded values keyed by ``FieldSpec.path``.

    Fields without an entry in ``values`` keep their dataclass default.
    """
    return _build(cls, values, ())


def _build(cls: Any, values: dict[tuple[str, ...], Any], path: tuple) -> Any:
    kwargs: dict[str, Any] = {}
    for f in dataclasses.fields(cls):
        field_path = (*path, f.name)
        if _NESTED_KEY in f.metadata:
            kwargs[f.name] = _build(
                f.metadata[_NESTED_KEY].cls, values, field_path
            )
        elif field_path in values:
            kwargs[f.name] = values[field_path]
    return cls(**kwargs)
