# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Environment-based configuration for the verification server.

Loading happens in two passes.  The secret manager settings
(``SecretsConfig``) are decoded first with no mutators, because the main
configuration may reference secrets::

    CSRF_AUTH_KEY=secret://projects/p/secrets/csrf-key

The secret manager is then constructed (and wrapped in a cache when
``SECRET_CACHE_TTL`` is positive), and the main configuration is decoded
with a mutator that resolves ``secret://`` references.  Finally a few
named fixups are applied and the result is validated.  The first error
aborts loading; a configuration that failed to load must not be used.
"""

import base64
import binascii
import dataclasses
import logging
from dataclasses import dataclass
from datetime import timedelta

from envconf.decoder import decode
from envconf.durations import format_duration
from envconf.errors import ConfigError, ValidationError
from envconf.fields import FieldKind, env, nested
from envconf.lookuper import Lookuper, default_lookuper
from envconf.secrets.cache import wrap_cacher
from envconf.secrets.manager import (
    SecretManager,
    SecretManagerRegistry,
    SecretsConfig,
    default_registry,
)
from envconf.secrets.resolver import resolver


logger = logging.getLogger(__name__)

#: Required length of the decoded CSRF key.
CSRF_KEY_LENGTH = 32


@dataclass(frozen=True)
class FirebaseConfig:
    """Firebase web client settings.  All fields are required."""

    api_key: str = env("FIREBASE_API_KEY", required=True)
    auth_domain: str = env("FIREBASE_AUTH_DOMAIN", required=True)
    database_url: str = env("FIREBASE_DATABASE_URL", required=True)
    project_id: str = env("FIREBASE_PROJECT_ID", required=True)
    storage_bucket: str = env("FIREBASE_STORAGE_BUCKET", required=True)
    message_sender_id: str = env("FIREBASE_MESSAGE_SENDER_ID", required=True)
    app_id: str = env("FIREBASE_APP_ID", required=True)
    measurement_id: str = env("FIREBASE_MEASUREMENT_ID", required=True)


@dataclass(frozen=True)
class ServerConfig:
    """Complete server configuration.

    Secret-valued fields (``csrf_auth_key``, ``token_signing_key``,
    ``certificate_signing_key``) accept ``secret://`` references.

    Attributes:
        csrf_auth_key: Base64-encoded 32-byte key.  Use ``csrf_key()`` for
            the raw bytes.
        dev_mode: When true, cookies are not restricted to secure channels.
            Must be false in production.
    """

    firebase: FirebaseConfig = nested(FirebaseConfig)

    port: int = env("PORT", FieldKind.INT, default="8080")

    # Login
    session_cookie_duration: timedelta = env(
        "SESSION_DURATION", FieldKind.DURATION, default="24h"
    )
    revoke_check_period: timedelta = env(
        "REVOKE_CHECK_DURATION", FieldKind.DURATION, default="5m"
    )
    csrf_auth_key: str = env("CSRF_AUTH_KEY", required=True)

    # Application
    server_name: str = env(
        "SERVER_NAME", default="Diagnosis Verification Server"
    )
    code_duration: timedelta = env(
        "CODE_DURATION", FieldKind.DURATION, default="1h"
    )
    code_digits: int = env("CODE_DIGITS", FieldKind.UINT, default="8")
    collision_retry_count: int = env(
        "COLLISION_RETRY_COUNT", FieldKind.UINT, default="6"
    )
    allowed_test_age: timedelta = env(
        "ALLOWED_PAST_TEST_DAYS", FieldKind.DURATION, default="336h"
    )
    api_key_cache_duration: timedelta = env(
        "API_KEY_CACHE_DURATION", FieldKind.DURATION, default="5m"
    )
    rate_limit: int = env("RATE_LIMIT", FieldKind.UINT, default="60")

    # Verification tokens
    verification_token_duration: timedelta = env(
        "VERIFICATION_TOKEN_DURATION", FieldKind.DURATION, default="24h"
    )
    token_signing_key: str = env("TOKEN_SIGNING_KEY", required=True)
    token_signing_key_id: str = env("TOKEN_SIGNING_KEY_ID", default="v1")
    token_issuer: str = env(
        "TOKEN_ISSUER", default="diagnosis-verification-example"
    )

    # Verification certificates
    public_key_cache_duration: timedelta = env(
        "PUBLIC_KEY_CACHE_DURATION", FieldKind.DURATION, default="15m"
    )
    certificate_signing_key: str = env(
        "CERTIFICATE_SIGNING_KEY", required=True
    )
    certificate_signing_key_id: str = env(
        "CERTIFICATE_SIGNING_KEY_ID", default="v1"
    )
    certificate_issuer: str = env(
        "CERTIFICATE_ISSUER", default="diagnosis-verification-example"
    )
    certificate_audience: str = env(
        "CERTIFICATE_AUDIENCE", default="exposure-notifications-server"
    )
    certificate_duration: timedelta = env(
        "CERTIFICATE_DURATION", FieldKind.DURATION, default="15m"
    )

    # Cleanup
    cleanup_period: timedelta = env(
        "CLEANUP_PERIOD", FieldKind.DURATION, default="15m"
    )
    disabled_user_max_age: timedelta = env(
        "DISABLED_USER_MAX_AGE", FieldKind.DURATION, default="336h"
    )
    verification_code_max_age: timedelta = env(
        "VERIFICATION_CODE_MAX_AGE", FieldKind.DURATION, default="24h"
    )
    verification_token_max_age: timedelta = env(
        "VERIFICATION_TOKEN_MAX_AGE", FieldKind.DURATION, default="24h"
    )

    assets_path: str = env("ASSETS_PATH", default="./cmd/server/assets")
    dev_mode: bool = env("DEV_MODE", FieldKind.BOOL)

    def durations(self) -> list[tuple[str, timedelta]]:
        """Return every duration setting with its environment name."""
        return [
            ("SESSION_DURATION", self.session_cookie_duration),
            ("REVOKE_CHECK_DURATION", self.revoke_check_period),
            ("CODE_DURATION", self.code_duration),
            ("ALLOWED_PAST_TEST_DAYS", self.allowed_test_age),
            ("API_KEY_CACHE_DURATION", self.api_key_cache_duration),
            ("VERIFICATION_TOKEN_DURATION", self.verification_token_duration),
            ("PUBLIC_KEY_CACHE_DURATION", self.public_key_cache_duration),
            ("CERTIFICATE_DURATION", self.certificate_duration),
            ("CLEANUP_PERIOD", self.cleanup_period),
            ("DISABLED_USER_MAX_AGE", self.disabled_user_max_age),
            ("VERIFICATION_CODE_MAX_AGE", self.verification_code_max_age),
            ("VERIFICATION_TOKEN_MAX_AGE", self.verification_token_max_age),
        ]

    def csrf_key(self) -> bytes:
        """Return the decoded CSRF key.

        Raises:
            ValidationError: If the key is not base64 or not 32 bytes.
        """
        try:
            key = decode_base64(self.csrf_auth_key)
        except ValueError as e:
            raise ValidationError(
                "CSRF_AUTH_KEY", f"error decoding CSRF_AUTH_KEY: {e}"
            ) from e
        if len(key) != CSRF_KEY_LENGTH:
            raise ValidationError(
                "CSRF_AUTH_KEY",
                f"CSRF_AUTH_KEY is not {CSRF_KEY_LENGTH} bytes, "
                f"got: {len(key)}",
            )
        return key

    def validate(self) -> None:
        """Check semantic invariants.  Stops at the first violation.

        Raises:
            ValidationError: Naming the offending setting.
        """
        for name, value in self.durations():
            if value < timedelta(0):
                raise ValidationError(
                    name,
                    f"{name} must be a positive duration, "
                    f"got: {format_duration(value)}",
                )
        self.csrf_key()


def decode_base64(value: str) -> bytes:
    """Decode standard or URL-safe base64, with or without padding.

    The standard alphabet is tried first, then the URL-safe one.  A value
    mixing characters from both alphabets is rejected.

    Raises:
        ValueError: If ``value`` is not valid base64.
    """
    value = value.strip()
    padded = value + "=" * (-len(value) % 4)
    try:
        return base64.b64decode(padded, validate=True)
    except binascii.Error:
        if "+" in value or "/" in value:
            raise ValueError("invalid base64 value") from None
    try:
        return base64.b64decode(padded, altchars=b"-_", validate=True)
    except binascii.Error as e:
        raise ValueError(str(e)) from e


def strip_url_scheme(url: str, scheme: str = "https://") -> str:
    """Remove a leading URL scheme.

    The Firebase database URL is embedded in generated JavaScript, where
    the scheme gets escaped and becomes unusable.
    """
    return url.removeprefix(scheme)


def postprocess(config: ServerConfig) -> ServerConfig:
    """Apply named post-decode fixups, returning a new configuration."""
    firebase = dataclasses.replace(
        config.firebase,
        database_url=strip_url_scheme(config.firebase.database_url),
    )
    return dataclasses.replace(config, firebase=firebase)


def build_secret_manager(
    config: SecretsConfig, registry: SecretManagerRegistry
) -> SecretManager:
    """Construct the configured secret manager, cached when TTL > 0.

    Raises:
        UnsupportedBackendError: The type tag is not registered.
        ConfigError: The backend could not be constructed.
    """
    try:
        manager = registry.create(config)
    except ConfigError:
        raise
    except Exception as e:
        raise ConfigError(f"unable to connect to secret manager: {e}") from e

    if config.secret_cache_ttl > timedelta(0):
        logger.debug(
            "Caching secrets for %s", format_duration(config.secret_cache_ttl)
        )
        return wrap_cacher(manager, config.secret_cache_ttl)
    return manager


def load(
    lookuper: Lookuper | None = None,
    *,
    registry: SecretManagerRegistry | None = None,
) -> ServerConfig:
    """Load, resolve and validate the server configuration.

    Args:
        lookuper: Source of environment values.  Defaults to the process
            environment plus ``.env`` files (see ``default_lookuper``).
        registry: Secret manager backends.  Defaults to the built-ins.

    Returns:
        The validated configuration.

    Raises:
        ConfigError: On the first failure at any stage.
    """
    if lookuper is None:
        lookuper = default_lookuper()
    if registry is None:
        registry = default_registry()

    try:
        secrets_config = decode(SecretsConfig, lookuper)
    except ConfigError as e:
        e.add_note("while processing secret manager configuration")
        raise
    logger.debug(
        "Secret manager configuration: type=%s",
        secrets_config.secret_manager_type,
    )

    manager = build_secret_manager(secrets_config, registry)
    config = decode(ServerConfig, lookuper, resolver(manager, secrets_config))
    config = postprocess(config)
    config.validate()

    logger.info(
        "Configuration loaded: server=%r, port=%d, secret manager=%s",
        config.server_name,
        config.port,
        secrets_config.secret_manager_type,
    )
    return config
