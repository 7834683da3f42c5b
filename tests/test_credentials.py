"""
Tests for devstrap.core.services.credentials — the scoped credential store.

Covers:
  - File naming and environment discovery
  - Empty-store default, wrong password as a hard error
  - ai-tools scenario (create / add / get / remove)
  - Masked listing
  - load / export / copy with substring filters
  - Permissions and audit (key names only)
"""

from __future__ import annotations

import stat
from pathlib import Path

import pytest


def _mode(path: Path) -> int:
    return stat.S_IMODE(path.stat().st_mode)


# ═══════════════════════════════════════════════════════════════════
#  Files
# ═══════════════════════════════════════════════════════════════════


class TestFiles:
    def test_file_names(self, store) -> None:
        assert store.env_file("main").name == "api_keys.enc"
        assert store.env_file("ai-tools").name == "api_keys_ai-tools.enc"

    def test_environments_from_file_names(self, store) -> None:
        store.add_key("A", "1")
        store.create("ai-tools")
        store.create("work_2")

        assert store.environments() == ["ai-tools", "main", "work_2"]

    def test_no_environments_yet(self, store) -> None:
        assert store.environments() == []

    def test_permissions(self, store) -> None:
        store.add_key("A", "1")

        assert _mode(store.credentials_dir) == 0o700
        assert _mode(store.env_file("main")) == 0o600

    def test_no_plaintext_on_disk(self, store) -> None:
        store.add_key("OPENAI_API_KEY", "sk-very-secret-value")

        files = list(store.credentials_dir.iterdir())
        assert [f.name for f in files] == ["api_keys.enc"]
        assert b"sk-very-secret-value" not in files[0].read_bytes()


# ═══════════════════════════════════════════════════════════════════
#  Decrypt / encrypt
# ═══════════════════════════════════════════════════════════════════


class TestDecrypt:
    def test_missing_file_is_empty(self, store) -> None:
        assert store.decrypt("main") == {}
        assert store.decrypt("never-created") == {}

    def test_wrong_password_is_error(self, settings, store) -> None:
        from devstrap.core.errors import DecryptionError
        from devstrap.core.services.credentials import CredentialStore

        store.add_key("A", "1")
        other = CredentialStore(settings.credentials_dir, password_provider=lambda env: "wrong")

        with pytest.raises(DecryptionError):
            other.decrypt("main")

    def test_invalid_environment_name(self, store) -> None:
        from devstrap.core.errors import InvalidNameError

        with pytest.raises(InvalidNameError):
            store.decrypt("../escape")

    def test_roundtrip(self, store) -> None:
        mapping = {"A": "1", "B": "two"}
        store.encrypt("ai-tools", mapping)

        assert store.decrypt("ai-tools") == mapping


# ═══════════════════════════════════════════════════════════════════
#  Environments and keys
# ═══════════════════════════════════════════════════════════════════


class TestCreate:
    def test_create_empty(self, store) -> None:
        path = store.create("ai-tools")

        assert path.is_file()
        assert store.decrypt("ai-tools") == {}

    def test_main_is_reserved(self, store) -> None:
        from devstrap.core.errors import AlreadyExistsError

        with pytest.raises(AlreadyExistsError, match="main"):
            store.create("main")

    def test_duplicate(self, store) -> None:
        from devstrap.core.errors import AlreadyExistsError

        store.create("ai-tools")
        with pytest.raises(AlreadyExistsError, match="already exists"):
            store.create("ai-tools")


class TestKeys:
    def test_ai_tools_scenario(self, store) -> None:
        from devstrap.core.errors import KeyNotFoundError

        store.create("ai-tools")
        store.add_key("OPENAI_API_KEY", "sk-test", "ai-tools")

        assert store.get_key("OPENAI_API_KEY", "ai-tools") == "sk-test"

        store.remove_key("OPENAI_API_KEY", "ai-tools")
        with pytest.raises(KeyNotFoundError, match="Key 'OPENAI_API_KEY' not found in 'ai-tools'"):
            store.get_key("OPENAI_API_KEY", "ai-tools")

    def test_add_overwrites(self, store) -> None:
        store.add_key("A", "1")
        store.add_key("A", "2")

        assert store.decrypt() == {"A": "2"}

    def test_add_requires_name_and_value(self, store) -> None:
        from devstrap.core.errors import DevstrapError

        with pytest.raises(DevstrapError, match="required"):
            store.add_key("A", "")

    def test_remove_missing(self, store) -> None:
        from devstrap.core.errors import KeyNotFoundError

        store.add_key("A", "1")
        with pytest.raises(KeyNotFoundError):
            store.remove_key("B")
        assert store.decrypt() == {"A": "1"}

    def test_list_masks_long_values(self, store) -> None:
        store.add_key("SHORT", "abc")
        store.add_key("LONG", "sk-abcdefghijklmnopqrstuvwxyz")

        listed = store.list_keys()

        assert list(listed) == ["LONG", "SHORT"]
        assert listed["SHORT"] == "abc"
        assert listed["LONG"] == "sk-abcdefg...qrstuvwxyz"

    def test_mask_threshold(self) -> None:
        from devstrap.core.services.credentials import mask_value

        assert mask_value("x" * 20) == "x" * 20
        assert mask_value("0123456789" + "X" + "abcdefghij") == "0123456789...abcdefghij"


# ═══════════════════════════════════════════════════════════════════
#  Bulk operations
# ═══════════════════════════════════════════════════════════════════


class TestLoad:
    def test_load_with_filter(self, store) -> None:
        store.encrypt("main", {"OPENAI_API_KEY": "x", "OPENAI_ORG": "o", "GITHUB_TOKEN": "y"})
        environ: dict[str, str] = {}

        loaded = store.load_into_environment("OPENAI", "main", environ=environ)

        assert environ == {"OPENAI_API_KEY": "x", "OPENAI_ORG": "o"}
        assert loaded == environ

    def test_load_into_os_environ(self, store, monkeypatch: pytest.MonkeyPatch) -> None:
        import os

        monkeypatch.delenv("DEVSTRAP_TEST_KEY", raising=False)
        store.add_key("DEVSTRAP_TEST_KEY", "v")

        store.load_into_environment()

        assert os.environ["DEVSTRAP_TEST_KEY"] == "v"
        monkeypatch.delenv("DEVSTRAP_TEST_KEY")

    def test_load_is_quiet_at_info(self, store, caplog: pytest.LogCaptureFixture) -> None:
        import logging

        store.encrypt("main", {"OPENAI_API_KEY": "x"})
        caplog.set_level(logging.INFO, logger="devstrap.core.services.credentials")

        store.load_into_environment("OPENAI", environ={})

        assert not [r for r in caplog.records if r.levelno >= logging.INFO and "OPENAI_API_KEY" in r.getMessage()]

    def test_load_nothing_matching(self, store) -> None:
        store.add_key("A", "1")
        environ: dict[str, str] = {}

        assert store.load_into_environment("ZZZ", environ=environ) == {}
        assert environ == {}


class TestExport:
    def test_export_filtered(self, store, tmp_path: Path) -> None:
        store.encrypt("ai-tools", {"OPENAI_API_KEY": "x", "GITHUB_TOKEN": "y"})
        out = tmp_path / ".env.ai"

        names = store.export_to_file(out, "OPENAI", "ai-tools")

        assert names == ["OPENAI_API_KEY"]
        assert out.read_text() == "OPENAI_API_KEY=x\n"
        assert _mode(out) == 0o600

    def test_default_path_is_dotenv(self, store, tmp_path: Path) -> None:
        store.add_key("A", "1")

        store.export_to_file()

        assert (tmp_path / ".env").read_text() == "A=1\n"

    def test_existing_file_needs_overwrite(self, store, tmp_path: Path) -> None:
        from devstrap.core.errors import AlreadyExistsError

        out = tmp_path / ".env"
        out.write_text("OLD=1\n")
        store.add_key("A", "1")

        with pytest.raises(AlreadyExistsError):
            store.export_to_file(out)
        assert out.read_text() == "OLD=1\n"

        store.export_to_file(out, overwrite=True)
        assert out.read_text() == "A=1\n"

    def test_no_match_writes_nothing(self, store, tmp_path: Path) -> None:
        store.add_key("A", "1")
        out = tmp_path / "out.env"

        assert store.export_to_file(out, "NOPE") == []
        assert not out.exists()


class TestCopy:
    def test_copy_with_filter(self, store) -> None:
        store.encrypt("main", {"OPENAI_API_KEY": "x", "GITHUB_TOKEN": "y"})
        store.create("ai-tools")

        copied = store.copy_keys("main", "ai-tools", "OPENAI")

        assert copied == ["OPENAI_API_KEY"]
        assert store.decrypt("ai-tools") == {"OPENAI_API_KEY": "x"}

    def test_source_wins(self, store) -> None:
        store.encrypt("main", {"A": "from-source"})
        store.encrypt("work", {"A": "from-target", "B": "kept"})

        store.copy_keys("main", "work")

        assert store.decrypt("work") == {"A": "from-source", "B": "kept"}

    def test_empty_source_fails(self, store) -> None:
        from devstrap.core.errors import NotFoundError

        with pytest.raises(NotFoundError, match="has no keys"):
            store.copy_keys("main", "work")

    def test_filter_without_match_fails(self, store) -> None:
        from devstrap.core.errors import NotFoundError

        store.add_key("A", "1")
        with pytest.raises(NotFoundError, match="No keys matching 'ZZZ'"):
            store.copy_keys("main", "work", "ZZZ")
        assert not store.exists("work")


class TestAudit:
    def test_values_never_audited(self, settings, store) -> None:
        store.add_key("OPENAI_API_KEY", "sk-super-secret")
        store.remove_key("OPENAI_API_KEY")

        ledger = settings.audit_file.read_text()
        assert "OPENAI_API_KEY" in ledger
        assert "sk-super-secret" not in ledger


# ═══════════════════════════════════════════════════════════════════
#  Keychain password source
# ═══════════════════════════════════════════════════════════════════


class TestKeychainPasswordSource:
    def test_keychain_hit(self, keychain_password) -> None:
        from devstrap.core.services.password import KeychainPasswordSource

        keychain_password("main", "from-keychain")

        def _never(message: str) -> str:
            raise AssertionError("should not prompt")

        assert KeychainPasswordSource(prompt=_never)("main") == "from-keychain"

    def test_miss_prompts_and_saves(self, memory_keyring) -> None:
        from devstrap.core.services.password import KeychainPasswordSource, current_user

        prompts: list[str] = []

        def _prompt(message: str) -> str:
            prompts.append(message)
            return "typed"

        source = KeychainPasswordSource(prompt=_prompt, confirm=lambda q: True)

        assert source("ai-tools") == "typed"
        assert source("ai-tools") == "typed"
        assert prompts == ["Enter encryption password for 'ai-tools' environment"]
        assert memory_keyring.passwords[("dev_env_credentials_ai-tools", current_user())] == "typed"

    def test_miss_declined_not_saved(self, memory_keyring) -> None:
        from devstrap.core.services.password import KeychainPasswordSource

        source = KeychainPasswordSource(prompt=lambda m: "typed", confirm=lambda q: False)

        assert source("main") == "typed"
        assert memory_keyring.passwords == {}

    def test_miss_without_prompt(self) -> None:
        from devstrap.core.errors import DevstrapError
        from devstrap.core.services.password import KeychainPasswordSource

        with pytest.raises(DevstrapError, match="no prompt available"):
            KeychainPasswordSource()("main")

    def test_store_uses_keychain_by_default(self, settings, keychain_password) -> None:
        from devstrap.core.services.credentials import CredentialStore

        keychain_password("main", "kc")
        store = CredentialStore(settings.credentials_dir, keychain_prefix=settings.keychain_prefix)

        store.add_key("A", "1")

        assert store.get_key("A") == "1"
