# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Shared pytest fixtures used across multiple test packages."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from envconf.logging import SecretFilter
from envconf.secrets.backends import InMemorySecretManager
from envconf.secrets.manager import SecretManagerRegistry


#: 32 zero bytes, standard base64.
VALID_CSRF_KEY = "A" * 43 + "="


@pytest.fixture(autouse=True)
def _isolate(tmp_path: Path):
    """Redirect the XDG config dir and reset the secret registry.

    Keeps tests from reading a developer's real ``~/.config/envconf/.env``
    and from leaking redaction state between tests.
    """
    SecretFilter.clear_secrets()
    with patch(
        "envconf.lookuper.user_config_path",
        return_value=tmp_path / "xdg-config",
    ):
        yield
    SecretFilter.clear_secrets()


@pytest.fixture
def base_env() -> dict[str, str]:
    """Minimal environment that loads and validates."""
    return {
        "SECRET_MANAGER": "IN_MEMORY",
        "FIREBASE_API_KEY": "api-key",
        "FIREBASE_AUTH_DOMAIN": "example.firebaseapp.com",
        "FIREBASE_DATABASE_URL": "https://example.firebaseio.com",
        "FIREBASE_PROJECT_ID": "example",
        "FIREBASE_STORAGE_BUCKET": "example.appspot.com",
        "FIREBASE_MESSAGE_SENDER_ID": "1234",
        "FIREBASE_APP_ID": "1:1234:web:abcd",
        "FIREBASE_MEASUREMENT_ID": "G-XYZ",
        "CSRF_AUTH_KEY": VALID_CSRF_KEY,
        "TOKEN_SIGNING_KEY": "token-key",
        "CERTIFICATE_SIGNING_KEY": "cert-key",
    }


@pytest.fixture
def stub_manager() -> MagicMock:
    """In-memory secret manager with one secret, wrapped to record calls."""
    return MagicMock(
        wraps=InMemorySecretManager({"projects/p/secrets/s": "abc123"})
    )


@pytest.fixture
def stub_registry(stub_manager: MagicMock) -> SecretManagerRegistry:
    """Registry whose ``STUB`` tag returns ``stub_manager``."""
    registry = SecretManagerRegistry()
    registry.register("STUB", lambda config: stub_manager)
    return registry
