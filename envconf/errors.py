# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Exceptions raised while loading configuration.

Every error derives from ``ConfigError`` so startup code can catch a single
type, log it and abort.  Subclasses carry the structured context (key,
locator, backend tag) alongside a readable message.
"""


class ConfigError(Exception):
    """Base exception for configuration errors."""


class MissingRequiredFieldError(ConfigError):
    """A required environment variable is not set."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Required environment variable '{key}' is not set")
        self.key = key


class TypeConversionError(ConfigError):
    """An environment value cannot be converted to the field's type."""

    def __init__(self, key: str, kind: str, value: str, reason: str) -> None:
        super().__init__(
            f"Cannot convert {key}={value!r} to {kind}: {reason}"
        )
        self.key = key
        self.kind = kind
        self.value = value


class UnsupportedBackendError(ConfigError):
    """No secret manager is registered for the requested type tag."""

    def __init__(self, tag: str, known: list[str]) -> None:
        super().__init__(
            f"Unsupported secret manager type {tag!r} "
            f"(known: {', '.join(known) or 'none'})"
        )
        self.tag = tag


class SecretResolutionError(ConfigError):
    """A secret reference could not be resolved.

    The message names the locator only; the plaintext is never included.
    """

    def __init__(self, key: str, locator: str, reason: str) -> None:
        super().__init__(
            f"Failed to resolve secret {locator!r} for {key}: {reason}"
        )
        self.key = key
        self.locator = locator


class ValidationError(ConfigError):
    """A decoded configuration violates a semantic invariant."""

    def __init__(self, name: str, message: str) -> None:
        super().__init__(message)
        self.name = name


class MutatorError(ConfigError):
    """A value mutator failed with an unexpected exception."""

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"Failed to process {key}: {reason}")
        self.key = key
