# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Built-in secret manager backends."""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    import hvac


logger = logging.getLogger(__name__)


class InMemorySecretManager:
    """Serves secrets from a dict.  Intended for tests and local runs."""

    def __init__(self, secrets: Mapping[str, str] | None = None) -> None:
        self._secrets = dict(secrets or {})

    def set(self, locator: str, value: str) -> None:
        """Store ``value`` under ``locator``."""
        self._secrets[locator] = value

    def resolve(self, locator: str) -> str:
        try:
            return self._secrets[locator]
        except KeyError:
            raise KeyError(f"secret {locator!r} does not exist") from None


class FilesystemSecretManager:
    """Reads each secret from a file below a root directory.

    The locator is a path relative to the root, e.g. ``db/password``.
    A single trailing newline is stripped.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def resolve(self, locator: str) -> str:
        root = self.root.resolve()
        path = (root / locator).resolve()
        if not path.is_relative_to(root):
            raise ValueError(f"secret path {locator!r} escapes {root}")
        value = path.read_text()
        return value.removesuffix("\n")


class VaultSecretManager:
    """Reads secrets from HashiCorp Vault's KV version 2 engine.

    Locators have the form ``path`` or ``path#field``; ``field`` defaults
    to ``value``.
    """

    DEFAULT_FIELD = "value"

    def __init__(self, client: "hvac.Client", mount_point: str = "secret"):
        self._client = client
        self._mount_point = mount_point

    @classmethod
    def from_env(cls) -> "VaultSecretManager":
        """Create a client configured from ``VAULT_ADDR``/``VAULT_TOKEN``.

        Requires the ``vault`` extra (``hvac``).
        """
        import hvac

        client = hvac.Client()
        if not client.is_authenticated():
            raise PermissionError("Vault client is not authenticated")
        logger.info("Connected to Vault at %s", client.url)
        return cls(client)

    def resolve(self, locator: str) -> str:
        path, _, field = locator.partition("#")
        field = field or self.DEFAULT_FIELD
        response: dict[str, Any] = (
            self._client.secrets.kv.v2.read_secret_version(
                path=path,
                mount_point=self._mount_point,
                raise_on_deleted_version=True,
            )
        )
        data = response["data"]["data"]
        if field not in data:
            raise KeyError(f"field {field!r} not found at {path!r}")
        return str(data[field])
