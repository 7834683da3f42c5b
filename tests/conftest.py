"""
Shared test fixtures and configuration.

Every test runs against a throwaway HOME (XDG dirs unset, so the
fallbacks apply), a registered Settings object pointing into tmp_path,
and an in-memory keyring so the real keychain is never touched.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import keyring
import pytest
from keyring.backend import KeyringBackend

PASSWORD = "test-password"


class MemoryKeyring(KeyringBackend):
    """Keyring backend holding passwords in a dict."""

    priority = 1

    def __init__(self) -> None:
        super().__init__()
        self.passwords: dict[tuple[str, str], str] = {}

    def get_password(self, service: str, username: str) -> str | None:
        return self.passwords.get((service, username))

    def set_password(self, service: str, username: str, password: str) -> None:
        self.passwords[(service, username)] = password

    def delete_password(self, service: str, username: str) -> None:
        self.passwords.pop((service, username), None)


@pytest.fixture(autouse=True)
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolated HOME; cwd is tmp_path."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for var in (
        "XDG_CONFIG_HOME", "XDG_CACHE_HOME", "XDG_DATA_HOME", "XDG_STATE_HOME",
        "DEVSTRAP_CREDENTIALS_DIR", "DEVSTRAP_ENVIRONMENTS_DIR",
        "DEVSTRAP_LOG_LEVEL", "DEVSTRAP_LOG_FILE", "DEVSTRAP_LOG_FILE_LEVEL",
        "DEV_ENV_NAME",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("DEVSTRAP_CONFIGS_DIR", str(tmp_path / "repo" / "configs"))
    monkeypatch.chdir(tmp_path)
    return home


@pytest.fixture(autouse=True)
def settings(home: Path):
    """Settings resolved from the isolated environment, registered in context."""
    from devstrap.core.config.loader import load_settings
    from devstrap.core.context import set_settings

    resolved = load_settings(search=False)
    set_settings(resolved)
    yield resolved
    set_settings(None)


@pytest.fixture(autouse=True)
def memory_keyring():
    previous = keyring.get_keyring()
    backend = MemoryKeyring()
    keyring.set_keyring(backend)
    yield backend
    keyring.set_keyring(previous)


@pytest.fixture(autouse=True)
def _reset_activation_stack():
    from devstrap.core.services import activation

    activation._stack.clear()
    yield
    activation._stack.clear()


@pytest.fixture(autouse=True)
def _restore_root_logger():
    """The CLI reconfigures the root logger; put pytest's handlers back."""
    import logging

    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)


@pytest.fixture
def configs_dir(settings) -> Path:
    settings.configs_dir.mkdir(parents=True, exist_ok=True)
    return settings.configs_dir


@pytest.fixture
def registry_dir(settings) -> Path:
    settings.registry_dir.mkdir(parents=True, exist_ok=True)
    return settings.registry_dir


@pytest.fixture
def write_registry(registry_dir: Path) -> Callable[..., Path]:
    """Write ``registry/<name>.json`` with the given config entries."""

    def _write(name: str, configs: list[dict[str, Any]], **extra: Any) -> Path:
        path = registry_dir / f"{name}.json"
        path.write_text(json.dumps({"name": name, "configs": configs, **extra}), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def store(settings):
    """Credential store with a fixed password for every environment."""
    from devstrap.core.services.credentials import CredentialStore

    return CredentialStore(settings.credentials_dir, password_provider=lambda env: PASSWORD)


@pytest.fixture
def keychain_password(memory_keyring: MemoryKeyring, settings) -> Callable[[str, str], None]:
    """Store a password in the in-memory keychain for an environment."""
    from devstrap.core.services.password import current_user, keychain_service

    def _put(environment: str, password: str = PASSWORD) -> None:
        memory_keyring.set_password(
            keychain_service(environment, settings.keychain_prefix), current_user(), password,
        )

    return _put
