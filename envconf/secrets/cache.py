# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Time-bounded memoization of secret lookups.

Thread Safety:
    The entry map is guarded by a lock, but the backend call happens
    outside it.  Two threads missing on the same locator at the same time
    both call the backend; the later write wins.  Callers that need a
    single in-flight request per locator must serialize externally.
"""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta

from envconf.errors import ConfigError
from envconf.secrets.manager import SecretManager


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """A cached plaintext and the monotonic time it expires at."""

    value: str
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class CachedSecretManager:
    """Wraps a secret manager and caches results for ``ttl``.

    Expired entries are replaced on the next lookup; there is no background
    eviction.  Failures are not cached.
    """

    def __init__(
        self,
        inner: SecretManager,
        ttl: timedelta,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._inner = inner
        self._ttl = ttl.total_seconds()
        self._clock = clock
        self._lock = threading.Lock()
        self._cache: dict[str, CacheEntry] = {}

    def resolve(self, locator: str) -> str:
        with self._lock:
            entry = self._cache.get(locator)
            if entry is not None and not entry.is_expired(self._clock()):
                logger.debug("Secret cache hit: %s", locator)
                return entry.value

        logger.debug("Secret cache miss: %s", locator)
        value = self._inner.resolve(locator)

        with self._lock:
            self._cache[locator] = CacheEntry(
                value=value, expires_at=self._clock() + self._ttl
            )
        return value


def wrap_cacher(manager: SecretManager, ttl: timedelta) -> CachedSecretManager:
    """Wrap ``manager`` in a cache with the given TTL.

    Raises:
        ConfigError: If ``ttl`` is not positive.
    """
    if ttl <= timedelta(0):
        raise ConfigError(f"Secret cache TTL must be positive, got {ttl}")
    return CachedSecretManager(manager, ttl)
