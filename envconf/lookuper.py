# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Sources of raw environment values.

A lookuper maps an environment key to its raw string value, or ``None``
when the key is not present.  The decoder only ever talks to a lookuper,
so tests can substitute a plain mapping for the process environment.

The default lookuper reads, in order of precedence:

1. The process environment.
2. ``~/.config/envconf/.env`` (XDG config directory).
3. ``.env`` in the current working directory.

Earlier sources win, mirroring ``python-dotenv`` which never overwrites
variables that are already set.
"""

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol

from dotenv import dotenv_values
from platformdirs import user_config_path


logger = logging.getLogger(__name__)

#: Application name for XDG path resolution.
_APP_NAME = "envconf"


def get_dotenv_path() -> Path:
    """Return the default ``.env`` file path inside the XDG config directory.

    Uses XDG: ``$XDG_CONFIG_HOME/envconf/.env`` (typically
    ``~/.config/envconf/.env``).
    """
    return user_config_path(_APP_NAME) / ".env"


class Lookuper(Protocol):
    """Resolves an environment key to its raw value."""

    def lookup(self, key: str) -> str | None:
        """Return the value for ``key``, or None when it is not present."""
        ...


class OsLookuper:
    """Reads from ``os.environ`` at lookup time."""

    def lookup(self, key: str) -> str | None:
        return os.environ.get(key)


class MapLookuper:
    """Reads from a fixed mapping."""

    def __init__(self, values: Mapping[str, str]) -> None:
        self._values = dict(values)

    def lookup(self, key: str) -> str | None:
        return self._values.get(key)


class PrefixLookuper:
    """Prepends ``prefix`` to every key before delegating."""

    def __init__(self, prefix: str, inner: Lookuper) -> None:
        self._prefix = prefix
        self._inner = inner

    def lookup(self, key: str) -> str | None:
        return self._inner.lookup(self._prefix + key)


class MultiLookuper:
    """Returns the value from the first lookuper that has the key."""

    def __init__(self, *lookupers: Lookuper) -> None:
        self._lookupers = lookupers

    def lookup(self, key: str) -> str | None:
        for lookuper in self._lookupers:
            value = lookuper.lookup(key)
            if value is not None:
                return value
        return None


class DotenvLookuper:
    """Reads from a ``.env`` file.

    The file is parsed once, on construction.  A missing file behaves like
    an empty one.  Keys declared without a value (a bare ``KEY`` line) are
    treated as not present.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._values: dict[str, str] = {}
        if path.exists():
            self._values = {
                k: v for k, v in dotenv_values(path).items() if v is not None
            }
            logger.debug("Loaded .env from %s", path)

    def lookup(self, key: str) -> str | None:
        return self._values.get(key)


def default_lookuper() -> Lookuper:
    """Build the lookuper used when none is passed explicitly."""
    return MultiLookuper(
        OsLookuper(),
        DotenvLookuper(get_dotenv_path()),
        DotenvLookuper(Path.cwd() / ".env"),
    )
