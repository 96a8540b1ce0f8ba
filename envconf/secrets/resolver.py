# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Resolve ``secret://`` references during decoding.

A configuration value is either a plain string or a reference to a secret
held by the secret manager::

    TOKEN_SIGNING_KEY=secret://projects/p/secrets/signing-key

``resolver()`` builds a mutator that replaces each reference with the
secret's plaintext.  Appending ``?target=file`` writes the plaintext to a
file under ``SECRETS_DIR`` and substitutes the file's path instead, for
consumers that expect a path (e.g. TLS key files).
"""

import hashlib
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import parse_qs

from envconf.decoder import MutatorFunc
from envconf.errors import SecretResolutionError
from envconf.fields import FieldSpec
from envconf.logging import SecretFilter
from envconf.secrets.manager import SecretManager, SecretsConfig


logger = logging.getLogger(__name__)

#: Prefix marking a value as a secret reference.
SECRET_PREFIX = "secret://"

_TARGET_FILE = "file"


@dataclass(frozen=True)
class SecretReference:
    """A value naming a secret instead of carrying it.

    Attributes:
        locator: Backend-specific secret name.
        to_file: Substitute a path to a file holding the plaintext.
    """

    locator: str
    to_file: bool = False


def parse_value(raw: str) -> str | SecretReference:
    """Classify a raw value as plain text or a secret reference.

    Raises:
        ValueError: The value has the secret prefix but is malformed.
    """
    if not raw.startswith(SECRET_PREFIX):
        return raw

    locator, _, query = raw[len(SECRET_PREFIX) :].partition("?")
    if not locator:
        raise ValueError(f"empty secret reference {raw!r}")

    target = parse_qs(query).get("target", [""])[-1]
    if target not in ("", _TARGET_FILE):
        raise ValueError(f"unknown secret target {target!r}")
    return SecretReference(locator, to_file=target == _TARGET_FILE)


def resolver(manager: SecretManager, config: SecretsConfig) -> MutatorFunc:
    """Return a mutator resolving secret references through ``manager``.

    Resolved plaintexts are registered with ``SecretFilter`` so they are
    redacted from log output.
    """

    def resolve(spec: FieldSpec, raw: str) -> str:
        try:
            value = parse_value(raw)
        except ValueError as e:
            raise SecretResolutionError(spec.key, raw, str(e)) from e
        if isinstance(value, str):
            return value

        try:
            plaintext = manager.resolve(value.locator)
        except Exception as e:
            raise SecretResolutionError(
                spec.key, value.locator, f"{type(e).__name__}: {e}"
            ) from e

        SecretFilter.register_secret(plaintext)
        logger.debug("Resolved secret %s for %s", value.locator, spec.key)

        if value.to_file:
            try:
                return str(
                    _write_secret_file(
                        Path(config.secrets_dir), value.locator, plaintext
                    )
                )
            except OSError as e:
                raise SecretResolutionError(
                    spec.key, value.locator, f"cannot write secret file: {e}"
                ) from e
        return plaintext

    return resolve


def _write_secret_file(secrets_dir: Path, locator: str, plaintext: str) -> Path:
    """Write ``plaintext`` to a file only the current user can read."""
    secrets_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
    path = secrets_dir / hashlib.sha1(locator.encode()).hexdigest()
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w") as f:
        os.fchmod(f.fileno(), 0o600)
        f.write(plaintext)
    return path
