# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Secret manager interface, meta-configuration and backend registry.

The secret manager configuration is itself decoded from the environment
before the main configuration, since resolving the main configuration
needs a secret manager.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import Protocol

from envconf.errors import UnsupportedBackendError
from envconf.fields import FieldKind, env


logger = logging.getLogger(__name__)

#: Type tags for the built-in backends.
SECRET_MANAGER_IN_MEMORY = "IN_MEMORY"
SECRET_MANAGER_FILESYSTEM = "FILESYSTEM"
SECRET_MANAGER_HASHICORP_VAULT = "HASHICORP_VAULT"


class SecretManager(Protocol):
    """Fetches plaintext secret values."""

    def resolve(self, locator: str) -> str:
        """Return the plaintext for ``locator``.

        Raises:
            Exception: Any backend failure; callers wrap it with context.
        """
        ...


@dataclass(frozen=True)
class SecretsConfig:
    """Configuration for the secret manager itself.

    Attributes:
        secret_manager_type: Type tag selecting the backend.
        secret_cache_ttl: How long resolved secrets are cached.  Zero or
            negative disables caching.
        secrets_dir: Directory for secrets resolved with
            ``?target=file``.
        filesystem_root: Root directory for the ``FILESYSTEM`` backend.
    """

    secret_manager_type: str = env(
        "SECRET_MANAGER", default=SECRET_MANAGER_FILESYSTEM
    )
    secret_cache_ttl: timedelta = env(
        "SECRET_CACHE_TTL", FieldKind.DURATION, default="5m"
    )
    secrets_dir: str = env("SECRETS_DIR", default="/var/run/secrets")
    filesystem_root: str = env(
        "SECRET_FILESYSTEM_ROOT", default="/var/run/secrets"
    )


type SecretManagerFactory = Callable[[SecretsConfig], SecretManager]


class SecretManagerRegistry:
    """Maps type tags to secret manager factories."""

    def __init__(self) -> None:
        self._factories: dict[str, SecretManagerFactory] = {}

    def register(self, tag: str, factory: SecretManagerFactory) -> None:
        """Register ``factory`` for ``tag``, replacing any previous one."""
        self._factories[tag] = factory

    def tags(self) -> list[str]:
        """Return registered tags, sorted."""
        return sorted(self._factories)

    def create(self, config: SecretsConfig) -> SecretManager:
        """Construct the backend selected by ``config``.

        Raises:
            UnsupportedBackendError: No factory is registered for the tag.
        """
        tag = config.secret_manager_type
        factory = self._factories.get(tag)
        if factory is None:
            raise UnsupportedBackendError(tag, self.tags())
        logger.debug("Creating secret manager %s", tag)
        return factory(config)


def default_registry() -> SecretManagerRegistry:
    """Return a registry holding the built-in backends."""
    from envconf.secrets.backends import (
        FilesystemSecretManager,
        InMemorySecretManager,
        VaultSecretManager,
    )

    registry = SecretManagerRegistry()
    registry.register(
        SECRET_MANAGER_IN_MEMORY, lambda config: InMemorySecretManager()
    )
    registry.register(
        SECRET_MANAGER_FILESYSTEM,
        lambda config: FilesystemSecretManager(config.filesystem_root),
    )
    registry.register(
        SECRET_MANAGER_HASHICORP_VAULT,
        lambda config: VaultSecretManager.from_env(),
    )
    return registry
