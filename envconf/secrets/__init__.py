# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Secret managers and ``secret://`` reference resolution."""

from envconf.secrets.backends import (
    FilesystemSecretManager,
    InMemorySecretManager,
    VaultSecretManager,
)
from envconf.secrets.cache import CachedSecretManager, CacheEntry, wrap_cacher
from envconf.secrets.manager import (
    SECRET_MANAGER_FILESYSTEM,
    SECRET_MANAGER_HASHICORP_VAULT,
    SECRET_MANAGER_IN_MEMORY,
    SecretManager,
    SecretManagerRegistry,
    SecretsConfig,
    default_registry,
)
from envconf.secrets.resolver import (
    SECRET_PREFIX,
    SecretReference,
    parse_value,
    resolver,
)


__all__ = [
    "SECRET_MANAGER_FILESYSTEM",
    "SECRET_MANAGER_HASHICORP_VAULT",
    "SECRET_MANAGER_IN_MEMORY",
    "SECRET_PREFIX",
    "CacheEntry",
    "CachedSecretManager",
    "FilesystemSecretManager",
    "InMemorySecretManager",
    "SecretManager",
    "SecretManagerRegistry",
    "SecretReference",
    "SecretsConfig",
    "VaultSecretManager",
    "default_registry",
    "parse_value",
    "resolver",
    "wrap_cacher",
]
