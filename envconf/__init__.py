# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Environment configuration with ``secret://`` reference resolution."""

from envconf.config import FirebaseConfig, ServerConfig, load
from envconf.decoder import MutatorFunc, decode, process
from envconf.errors import (
    ConfigError,
    MissingRequiredFieldError,
    MutatorError,
    SecretResolutionError,
    TypeConversionError,
    UnsupportedBackendError,
    ValidationError,
)
from envconf.fields import FieldKind, FieldSpec, env, field_specs, nested
from envconf.lookuper import (
    DotenvLookuper,
    Lookuper,
    MapLookuper,
    MultiLookuper,
    OsLookuper,
    PrefixLookuper,
)


__all__ = [
    "ConfigError",
    "DotenvLookuper",
    "FieldKind",
    "FieldSpec",
    "FirebaseConfig",
    "Lookuper",
    "MapLookuper",
    "MissingRequiredFieldError",
    "MultiLookuper",
    "MutatorError",
    "MutatorFunc",
    "OsLookuper",
    "PrefixLookuper",
    "SecretResolutionError",
    "ServerConfig",
    "TypeConversionError",
    "UnsupportedBackendError",
    "ValidationError",
    "decode",
    "env",
    "field_specs",
    "load",
    "nested",
    "process",
]
