"""
Scoped credential store — encrypted key/value maps, one per environment.

Layout (under ``credentials_dir``, mode 0700)::

    api_keys.enc             ← environment "main" (always exists implicitly)
    api_keys_ai-tools.enc    ← environment "ai-tools"

Every mutation is decrypt → change → encrypt → atomic replace, so a
ciphertext file is either the old or the new version.  Plaintext only
lives in memory; nothing unencrypted is written except by an explicit
``export_to_file``.

No file locking: two processes editing the same environment at once can
lose one of the edits.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping, MutableMapping
from pathlib import Path
from typing import Optional

from devstrap.core.errors import (
    AlreadyExistsError,
    DevstrapError,
    InvalidNameError,
    KeyNotFoundError,
    NotFoundError,
)
from devstrap.core.models.environment import ENV_NAME_RE
from devstrap.core.persistence.atomic_file import atomic_write_bytes, atomic_write_text
from devstrap.core.services.audit_helpers import make_auditor
from devstrap.core.services.credential_crypto import decrypt_mapping, encrypt_mapping
from devstrap.core.services.password import KeychainPasswordSource, PasswordProvider

logger = logging.getLogger(__name__)

_audit = make_auditor("credentials")

MAIN_ENV = "main"
FILE_STEM = "api_keys"
FILE_SUFFIX = ".enc"

DIR_MODE = 0o700
FILE_MODE = 0o600

MASK_THRESHOLD = 20
MASK_KEEP = 10


def mask_value(value: str) -> str:
    """``sk-abcdefghijklmnopqrstuvwxyz`` → ``sk-abcdefg...qrstuvwxyz``."""
    if len(value) > MASK_THRESHOLD:
        return f"{value[:MASK_KEEP]}...{value[-MASK_KEEP:]}"
    return value


def filter_keys(mapping: Mapping[str, str], substring: Optional[str]) -> dict[str, str]:
    """Entries whose key contains *substring* (all when empty), sorted by key."""
    return {
        k: mapping[k] for k in sorted(mapping)
        if not substring or substring in k
    }


class CredentialStore:
    """Encrypted credential environments in one directory.

    Args:
        credentials_dir:   Where ciphertext files live.  Defaults to the
                           current settings.
        password_provider: ``environment → password``.  Defaults to a
                           keychain lookup without any prompt.
        keychain_prefix:   Service prefix for the default provider.
    """

    def __init__(
        self,
        credentials_dir: Optional[Path] = None,
        password_provider: Optional[PasswordProvider] = None,
        keychain_prefix: Optional[str] = None,
    ):
        if credentials_dir is None or (password_provider is None and keychain_prefix is None):
            from devstrap.core.context import get_settings

            settings = get_settings()
            credentials_dir = credentials_dir or settings.credentials_dir
            keychain_prefix = keychain_prefix or settings.keychain_prefix

        self.credentials_dir = credentials_dir
        self._password = password_provider or KeychainPasswordSource(keychain_prefix)

    # ── Files ────────────────────────────────────────────────────────

    def env_file(self, environment: str = MAIN_ENV) -> Path:
        """Ciphertext path for *environment*."""
        if environment == MAIN_ENV:
            return self.credentials_dir / f"{FILE_STEM}{FILE_SUFFIX}"
        return self.credentials_dir / f"{FILE_STEM}_{environment}{FILE_SUFFIX}"

    def ensure_dir(self) -> Path:
        self.credentials_dir.mkdir(parents=True, exist_ok=True)
        os.chmod(self.credentials_dir, DIR_MODE)
        return self.credentials_dir

    def exists(self, environment: str) -> bool:
        return self.env_file(environment).is_file()

    def environments(self) -> list[str]:
        """Names of all environments that have a ciphertext file."""
        if not self.credentials_dir.is_dir():
            return []
        names = []
        for path in self.credentials_dir.glob(f"{FILE_STEM}*{FILE_SUFFIX}"):
            if not path.is_file():
                continue
            stem = path.name[len(FILE_STEM):-len(FILE_SUFFIX)]
            if not stem:
                names.append(MAIN_ENV)
            elif stem.startswith("_") and len(stem) > 1:
                names.append(stem[1:])
        return sorted(names)

    @staticmethod
    def _validate(environment: str) -> None:
        if not ENV_NAME_RE.match(environment):
            raise InvalidNameError(
                f"Invalid environment name '{environment}'. "
                "Use only letters, numbers, hyphens, and underscores."
            )

    # ── Crypto boundary ──────────────────────────────────────────────

    def get_password(self, environment: str = MAIN_ENV) -> str:
        return self._password(environment)

    def decrypt(self, environment: str = MAIN_ENV) -> dict[str, str]:
        """Plaintext mapping of *environment*.

        A missing ciphertext file is an empty mapping, not an error.

        Raises:
            DecryptionError: Wrong password or corrupt file.
        """
        self._validate(environment)
        path = self.env_file(environment)
        if not path.is_file():
            logger.debug("No credentials file for '%s' yet", environment)
            return {}

        blob = path.read_bytes()
        mapping = decrypt_mapping(blob, self.get_password(environment))
        logger.debug("Decrypted %d key(s) from '%s'", len(mapping), environment)
        return mapping

    def encrypt(self, environment: str, mapping: Mapping[str, str]) -> Path:
        """Encrypt *mapping* and atomically replace the environment's file."""
        self._validate(environment)
        self.ensure_dir()
        path = self.env_file(environment)
        blob = encrypt_mapping(mapping, self.get_password(environment))
        atomic_write_bytes(path, blob, mode=FILE_MODE)
        logger.info("Credentials for '%s' environment encrypted and saved", environment)
        return path

    # ── Environments ─────────────────────────────────────────────────

    def create(self, environment: str) -> Path:
        """Create an empty environment.

        Raises:
            AlreadyExistsError: *environment* is ``main`` or already exists.
            InvalidNameError: Bad name.
        """
        if environment == MAIN_ENV:
            raise AlreadyExistsError("Cannot create environment named 'main' (it already exists)")
        self._validate(environment)
        if self.exists(environment):
            raise AlreadyExistsError(f"Environment '{environment}' already exists")

        path = self.encrypt(environment, {})
        _audit("create_env", environment, f"Created credential environment '{environment}'")
        return path

    # ── Keys ─────────────────────────────────────────────────────────

    def add_key(self, key: str, value: str, environment: str = MAIN_ENV) -> None:
        """Insert or overwrite *key*."""
        if not key or not value:
            raise DevstrapError("Both key name and value are required")

        mapping = self.decrypt(environment)
        existed = key in mapping
        mapping[key] = value
        self.encrypt(environment, mapping)

        _audit(
            "add_key", environment,
            f"Key {key} {'updated' if existed else 'added'}",
            detail={"key": key},
        )

    def remove_key(self, key: str, environment: str = MAIN_ENV) -> None:
        """Delete *key*.

        Raises:
            KeyNotFoundError: *key* is not in the environment.
        """
        mapping = self.decrypt(environment)
        if key not in mapping:
            raise KeyNotFoundError(key, environment)
        del mapping[key]
        self.encrypt(environment, mapping)
        _audit("remove_key", environment, f"Key {key} removed", detail={"key": key})

    def get_key(self, key: str, environment: str = MAIN_ENV) -> str:
        """Value of *key*.

        Raises:
            KeyNotFoundError: *key* is not in the environment.
        """
        mapping = self.decrypt(environment)
        if key not in mapping:
            raise KeyNotFoundError(key, environment)
        return mapping[key]

    def list_keys(self, environment: str = MAIN_ENV) -> dict[str, str]:
        """All keys with masked values, sorted by key."""
        return {k: mask_value(v) for k, v in filter_keys(self.decrypt(environment), None).items()}

    # ── Bulk operations ──────────────────────────────────────────────

    def load_into_environment(
        self,
        substring: Optional[str] = None,
        environment: str = MAIN_ENV,
        environ: Optional[MutableMapping[str, str]] = None,
    ) -> dict[str, str]:
        """Set matching keys in *environ* (default ``os.environ``).

        Only this process and its children see the values.

        Returns:
            The keys and values that were set.
        """
        target = os.environ if environ is None else environ
        selected = filter_keys(self.decrypt(environment), substring)
        if not selected:
            logger.info("No keys matching '%s' in '%s' environment", substring or "*", environment)
            return {}

        target.update(selected)
        logger.debug("Set %d key(s) from '%s' environment: %s", len(selected), environment, ", ".join(selected))
        return selected

    def export_to_file(
        self,
        path: Path = Path(".env"),
        substring: Optional[str] = None,
        environment: str = MAIN_ENV,
        *,
        overwrite: bool = False,
    ) -> list[str]:
        """Write matching keys as ``KEY=VALUE`` lines (mode 0600).

        Nothing is written when no key matches.

        Returns:
            The exported key names, sorted.

        Raises:
            AlreadyExistsError: *path* exists and *overwrite* is False.
        """
        if path.exists() and not overwrite:
            raise AlreadyExistsError(f"File {path} already exists")

        selected = filter_keys(self.decrypt(environment), substring)
        if not selected:
            logger.info("No keys to export from '%s' environment", environment)
            return []

        text = "".join(f"{k}={v}\n" for k, v in selected.items())
        atomic_write_text(path, text, mode=FILE_MODE)

        names = list(selected)
        logger.info("Created %s with %d key(s) from '%s' environment", path, len(names), environment)
        _audit(
            "export", environment,
            f"Exported {len(names)} key(s) to {path}",
            detail={"keys": names, "path": str(path)},
        )
        return names

    def copy_keys(self, source: str, target: str, substring: Optional[str] = None) -> list[str]:
        """Merge matching keys of *source* into *target*; source wins.

        Returns:
            The copied key names, sorted.

        Raises:
            NotFoundError: *source* has no keys, or none match *substring*.
        """
        source_keys = self.decrypt(source)
        if not source_keys:
            raise NotFoundError(f"Source environment '{source}' has no keys")

        selected = filter_keys(source_keys, substring)
        if not selected:
            raise NotFoundError(f"No keys matching '{substring}' in '{source}' environment")

        merged = {**self.decrypt(target), **selected}
        self.encrypt(target, merged)

        names = list(selected)
        logger.info("Copied %d key(s) from '%s' to '%s'", len(names), source, target)
        _audit(
            "copy", target,
            f"Copied {len(names)} key(s) from '{source}'",
            detail={"source": source, "keys": names},
        )
        return names
