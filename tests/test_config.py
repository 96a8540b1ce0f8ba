# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Tests for envconf/config.py."""

import base64
import dataclasses
import os
from datetime import timedelta
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from envconf.config import (
    CSRF_KEY_LENGTH,
    ServerConfig,
    build_secret_manager,
    decode_base64,
    load,
    postprocess,
    strip_url_scheme,
)
from envconf.errors import (
    ConfigError,
    MissingRequiredFieldError,
    SecretResolutionError,
    TypeConversionError,
    UnsupportedBackendError,
    ValidationError,
)
from envconf.lookuper import MapLookuper
from envconf.secrets.cache import CachedSecretManager
from envconf.secrets.manager import SecretManagerRegistry, SecretsConfig


_DURATION_NAMES = [
    "SESSION_DURATION",
    "REVOKE_CHECK_DURATION",
    "CODE_DURATION",
    "ALLOWED_PAST_TEST_DAYS",
    "API_KEY_CACHE_DURATION",
    "VERIFICATION_TOKEN_DURATION",
    "PUBLIC_KEY_CACHE_DURATION",
    "CERTIFICATE_DURATION",
    "CLEANUP_PERIOD",
    "DISABLED_USER_MAX_AGE",
    "VERIFICATION_CODE_MAX_AGE",
    "VERIFICATION_TOKEN_MAX_AGE",
]


@pytest.fixture
def config(base_env: dict[str, str]) -> ServerConfig:
    """A loaded, valid configuration."""
    return load(MapLookuper(base_env))


class TestLoad:
    """Tests for the two-phase load."""

    def test_end_to_end_secret_resolution(
        self,
        base_env: dict[str, str],
        stub_registry: SecretManagerRegistry,
    ) -> None:
        """Durations decode and secret references resolve."""
        base_env.update(
            {
                "SECRET_MANAGER": "STUB",
                "CODE_DURATION": "2h",
                "TOKEN_SIGNING_KEY": "secret://projects/p/secrets/s",
            }
        )
        config = load(MapLookuper(base_env), registry=stub_registry)
        assert config.code_duration == timedelta(hours=2)
        assert config.token_signing_key == "abc123"

    def test_missing_required_fails_before_validation(
        self,
        base_env: dict[str, str],
        stub_registry: SecretManagerRegistry,
    ) -> None:
        """A missing required key fails decoding; validate never runs."""
        base_env["SECRET_MANAGER"] = "STUB"
        del base_env["TOKEN_SIGNING_KEY"]
        with (
            patch.object(ServerConfig, "validate") as mock_validate,
            pytest.raises(MissingRequiredFieldError) as exc_info,
        ):
            load(MapLookuper(base_env), registry=stub_registry)
        assert exc_info.value.key == "TOKEN_SIGNING_KEY"
        mock_validate.assert_not_called()

    def test_defaults(self, config: ServerConfig) -> None:
        """Unset settings take their defaults."""
        assert config.port == 8080
        assert config.server_name == "Diagnosis Verification Server"
        assert config.session_cookie_duration == timedelta(hours=24)
        assert config.revoke_check_period == timedelta(minutes=5)
        assert config.code_digits == 8
        assert config.collision_retry_count == 6
        assert config.allowed_test_age == timedelta(days=14)
        assert config.rate_limit == 60
        assert config.token_signing_key_id == "v1"
        assert config.certificate_audience == "exposure-notifications-server"
        assert config.assets_path == "./cmd/server/assets"
        assert config.dev_mode is False

    def test_plain_values_unchanged(self, config: ServerConfig) -> None:
        """Values without a secret reference are used literally."""
        assert config.token_signing_key == "token-key"
        assert config.certificate_signing_key == "cert-key"
        assert config.firebase.api_key == "api-key"

    def test_firebase_url_scheme_stripped(self, config: ServerConfig) -> None:
        """The database URL is stored without its scheme."""
        assert config.firebase.database_url == "example.firebaseio.com"

    def test_result_is_immutable(self, config: ServerConfig) -> None:
        """The loaded configuration cannot be modified."""
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.port = 1  # type: ignore[misc]

    def test_unsupported_backend(self, base_env: dict[str, str]) -> None:
        """An unknown SECRET_MANAGER fails before the main decode."""
        base_env["SECRET_MANAGER"] = "GOOGLE_SECRET_MANAGER"
        with pytest.raises(UnsupportedBackendError) as exc_info:
            load(MapLookuper(base_env))
        assert exc_info.value.tag == "GOOGLE_SECRET_MANAGER"

    def test_bad_meta_config(self, base_env: dict[str, str]) -> None:
        """Errors in the secret manager settings name that stage."""
        base_env["SECRET_CACHE_TTL"] = "soon"
        with pytest.raises(TypeConversionError) as exc_info:
            load(MapLookuper(base_env))
        assert exc_info.value.key == "SECRET_CACHE_TTL"
        assert "while processing secret manager configuration" in (
            exc_info.value.__notes__
        )

    def test_unresolvable_secret(
        self,
        base_env: dict[str, str],
        stub_registry: SecretManagerRegistry,
    ) -> None:
        """A reference the backend cannot resolve fails the load."""
        base_env["SECRET_MANAGER"] = "STUB"
        base_env["CERTIFICATE_SIGNING_KEY"] = "secret://nope"
        with pytest.raises(SecretResolutionError) as exc_info:
            load(MapLookuper(base_env), registry=stub_registry)
        assert exc_info.value.key == "CERTIFICATE_SIGNING_KEY"
        assert exc_info.value.locator == "nope"

    def test_cache_deduplicates_backend_calls(
        self,
        base_env: dict[str, str],
        stub_registry: SecretManagerRegistry,
        stub_manager: MagicMock,
    ) -> None:
        """With a TTL, a reference used twice is fetched once."""
        base_env.update(
            {
                "SECRET_MANAGER": "STUB",
                "TOKEN_SIGNING_KEY": "secret://projects/p/secrets/s",
                "CERTIFICATE_SIGNING_KEY": "secret://projects/p/secrets/s",
            }
        )
        config = load(MapLookuper(base_env), registry=stub_registry)
        assert config.certificate_signing_key == "abc123"
        assert stub_manager.resolve.call_count == 1

    def test_no_cache_when_ttl_zero(
        self,
        base_env: dict[str, str],
        stub_registry: SecretManagerRegistry,
        stub_manager: MagicMock,
    ) -> None:
        """Without a TTL every reference goes to the backend."""
        base_env.update(
            {
                "SECRET_MANAGER": "STUB",
                "SECRET_CACHE_TTL": "0",
                "TOKEN_SIGNING_KEY": "secret://projects/p/secrets/s",
                "CERTIFICATE_SIGNING_KEY": "secret://projects/p/secrets/s",
            }
        )
        load(MapLookuper(base_env), registry=stub_registry)
        assert stub_manager.resolve.call_count == 2

    def test_default_lookuper(
        self,
        base_env: dict[str, str],
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Without a lookuper, the environment and .env files are read."""
        monkeypatch.chdir(tmp_path)
        (tmp_path / ".env").write_text("SERVER_NAME=From Dotenv\nPORT=9000\n")
        monkeypatch.delenv("SERVER_NAME", raising=False)
        monkeypatch.setenv("PORT", "7000")
        with patch.dict(os.environ, base_env):
            config = load()
        assert config.server_name == "From Dotenv"
        assert config.port == 7000


class TestBuildSecretManager:
    """Tests for build_secret_manager."""

    def test_cached_when_ttl_positive(
        self, stub_registry: SecretManagerRegistry
    ) -> None:
        """A positive TTL wraps the backend in a cache."""
        config = SecretsConfig(
            secret_manager_type="STUB", secret_cache_ttl=timedelta(minutes=1)
        )
        manager = build_secret_manager(config, stub_registry)
        assert isinstance(manager, CachedSecretManager)

    def test_uncached_when_ttl_not_positive(
        self,
        stub_registry: SecretManagerRegistry,
        stub_manager: MagicMock,
    ) -> None:
        """Zero or negative TTL uses the backend directly."""
        for ttl in (timedelta(0), timedelta(seconds=-1)):
            config = SecretsConfig(
                secret_manager_type="STUB", secret_cache_ttl=ttl
            )
            assert build_secret_manager(config, stub_registry) is stub_manager

    def test_backend_construction_failure(self) -> None:
        """Backend errors are wrapped in ConfigError."""
        registry = SecretManagerRegistry()
        registry.register(
            "BROKEN", MagicMock(side_effect=RuntimeError("no credentials"))
        )
        with pytest.raises(ConfigError, match="unable to connect") as exc_info:
            build_secret_manager(
                SecretsConfig(secret_manager_type="BROKEN"), registry
            )
        assert isinstance(exc_info.value.__cause__, RuntimeError)


class TestValidate:
    """Tests for ServerConfig.validate."""

    def test_valid(self, config: ServerConfig) -> None:
        """A default configuration validates."""
        config.validate()

    def test_durations_cover_every_duration_field(
        self, config: ServerConfig
    ) -> None:
        """Every timedelta field is checked by name."""
        duration_fields = [
            f.name
            for f in dataclasses.fields(ServerConfig)
            if isinstance(getattr(config, f.name), timedelta)
        ]
        assert len(config.durations()) == len(duration_fields)
        assert [name for name, _ in config.durations()] == _DURATION_NAMES

    @pytest.mark.parametrize("name", _DURATION_NAMES)
    def test_negative_duration_rejected(
        self, base_env: dict[str, str], name: str
    ) -> None:
        """A negative duration fails naming its environment variable."""
        base_env[name] = "-1s"
        with pytest.raises(ValidationError) as exc_info:
            load(MapLookuper(base_env))
        assert exc_info.value.name == name
        assert f"{name} must be a positive duration, got: -1s" in str(
            exc_info.value
        )

    @pytest.mark.parametrize("value", ["0", "0s", "1ns", "48h"])
    def test_zero_and_positive_accepted(
        self, base_env: dict[str, str], value: str
    ) -> None:
        """Zero and positive durations pass."""
        for name in _DURATION_NAMES:
            base_env[name] = value
        load(MapLookuper(base_env))

    def test_first_violation_reported(self, config: ServerConfig) -> None:
        """Only the first violated invariant is reported."""
        bad = dataclasses.replace(
            config,
            code_duration=timedelta(seconds=-1),
            cleanup_period=timedelta(seconds=-1),
            csrf_auth_key="short",
        )
        with pytest.raises(ValidationError) as exc_info:
            bad.validate()
        assert exc_info.value.name == "CODE_DURATION"

    def test_csrf_key_wrong_length(self, config: ServerConfig) -> None:
        """The CSRF key must decode to 32 bytes."""
        bad = dataclasses.replace(
            config, csrf_auth_key=base64.b64encode(b"x" * 16).decode()
        )
        with pytest.raises(ValidationError, match="not 32 bytes, got: 16"):
            bad.validate()

    def test_csrf_key_not_base64(self, config: ServerConfig) -> None:
        """A non-base64 CSRF key is rejected."""
        bad = dataclasses.replace(config, csrf_auth_key="not base64!")
        with pytest.raises(ValidationError) as exc_info:
            bad.validate()
        assert exc_info.value.name == "CSRF_AUTH_KEY"

    def test_csrf_key_bytes(self, config: ServerConfig) -> None:
        """csrf_key() returns the decoded bytes."""
        assert config.csrf_key() == bytes(CSRF_KEY_LENGTH)

    def test_csrf_key_from_secret(
        self,
        base_env: dict[str, str],
        stub_registry: SecretManagerRegistry,
        stub_manager: MagicMock,
    ) -> None:
        """The CSRF key is checked after secret resolution."""
        key = base64.urlsafe_b64encode(b"\xfb" * 32).decode().rstrip("=")
        stub_manager.resolve.return_value = key
        base_env.update(
            {"SECRET_MANAGER": "STUB", "CSRF_AUTH_KEY": "secret://csrf"}
        )
        config = load(MapLookuper(base_env), registry=stub_registry)
        assert config.csrf_key() == b"\xfb" * 32


class TestDecodeBase64:
    """Tests for decode_base64."""

    @pytest.mark.parametrize(
        "encoded",
        [
            base64.b64encode(b"\xfb\xff\x00hello").decode(),
            base64.b64encode(b"\xfb\xff\x00hello").decode().rstrip("="),
            base64.urlsafe_b64encode(b"\xfb\xff\x00hello").decode(),
            base64.urlsafe_b64encode(b"\xfb\xff\x00hello")
            .decode()
            .rstrip("="),
        ],
    )
    def test_variants(self, encoded: str) -> None:
        """Standard and URL-safe, padded and unpadded, all decode."""
        assert decode_base64(encoded) == b"\xfb\xff\x00hello"

    def test_invalid(self) -> None:
        """Invalid input raises ValueError."""
        with pytest.raises(ValueError):
            decode_base64("a")

    @pytest.mark.parametrize("encoded", ["-/+/", "+_+/", "-_+/"])
    def test_mixed_alphabets_rejected(self, encoded: str) -> None:
        """Standard and URL-safe characters cannot be combined."""
        with pytest.raises(ValueError):
            decode_base64(encoded)

    def test_url_safe_only(self) -> None:
        """A purely URL-safe value decodes."""
        assert decode_base64("-_-_") == b"\xfb\xff\xbf"


class TestPostprocess:
    """Tests for the post-decode fixups."""

    def test_strip_url_scheme(self) -> None:
        """Only a leading https:// is removed."""
        assert strip_url_scheme("https://x.firebaseio.com") == (
            "x.firebaseio.com"
        )
        assert strip_url_scheme("x.firebaseio.com") == "x.firebaseio.com"

    def test_postprocess_returns_new_config(
        self, config: ServerConfig
    ) -> None:
        """postprocess() does not modify its input."""
        original = dataclasses.replace(
            config,
            firebase=dataclasses.replace(
                config.firebase, database_url="https://db.example"
            ),
        )
        fixed = postprocess(original)
        assert fixed.firebase.database_url == "db.example"
        assert original.firebase.database_url == "https://db.example"
