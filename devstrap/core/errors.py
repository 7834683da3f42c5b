"""
Error taxonomy — every failure the core can raise.

Core services raise these; the config installer catches them per entry,
and CLI commands turn them into a red message plus exit code 1.
"""

from __future__ import annotations


class DevstrapError(Exception):
    """Base class for all devstrap errors."""


class ConfigError(DevstrapError):
    """Raised when devstrap.yml is invalid or unreadable."""


class NotFoundError(DevstrapError):
    """A registry, environment or key does not exist."""


class KeyNotFoundError(NotFoundError):
    """A credential key is absent from its environment."""

    def __init__(self, key: str, environment: str):
        super().__init__(f"Key '{key}' not found in '{environment}' environment")
        self.key = key
        self.environment = environment


class SourceMissingError(DevstrapError):
    """A config entry's source file or directory does not exist."""


class AlreadyExistsError(DevstrapError):
    """An environment (or the reserved 'main' credential environment) exists."""


class InvalidNameError(DevstrapError):
    """An environment name fails ``^[A-Za-z0-9_-]+$``."""


class BackupError(DevstrapError):
    """Copying a path aside failed; the destructive step must not run."""


class DecryptionError(DevstrapError):
    """Ciphertext could not be decrypted (wrong password or corrupt file)."""


class UnresolvedVariableError(DevstrapError):
    """A target path still references an undefined variable (strict mode)."""


class NestedActivationError(DevstrapError):
    """An environment is already active in this process."""
