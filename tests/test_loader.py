"""
Tests for devstrap.core.config.loader — settings resolution order.
"""

from __future__ import annotations

from pathlib import Path

import pytest


class TestDefaults:
    def test_defaults_without_file(self, home: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        from devstrap.core.config.loader import load_settings

        monkeypatch.delenv("DEVSTRAP_CONFIGS_DIR")
        s = load_settings(search=False)

        assert s.repo_root == tmp_path.resolve()
        assert s.configs_dir == tmp_path.resolve() / "configs"
        assert s.registry_dir == s.configs_dir / "registry"
        assert s.credentials_dir == home / ".config" / "credentials"
        assert s.environments_dir == home / ".dev_environments"
        assert s.audit_file == home / ".local" / "state" / "devstrap" / "audit.ndjson"
        assert s.keychain_prefix == "dev_env_credentials"
        assert s.python_version == "3.13"

    def test_xdg_config_home_moves_credentials(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        from devstrap.core.config.loader import load_settings

        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
        s = load_settings(search=False)

        assert s.credentials_dir == tmp_path / "xdg" / "credentials"


class TestSettingsFile:
    def test_file_found_by_search(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        from devstrap.core.config.loader import load_settings

        monkeypatch.delenv("DEVSTRAP_CONFIGS_DIR")
        repo = tmp_path / "dotfiles"
        (repo / "sub").mkdir(parents=True)
        (repo / "devstrap.yml").write_text('configs_dir: cfg\npython_version: "3.12"\n')
        monkeypatch.chdir(repo / "sub")

        s = load_settings()

        assert s.repo_root == repo.resolve()
        assert s.configs_dir == repo.resolve() / "cfg"
        assert s.registry_dir == repo.resolve() / "cfg" / "registry"
        assert s.python_version == "3.12"

    def test_variables_expanded_in_file(self, home: Path, tmp_path: Path) -> None:
        from devstrap.core.config.loader import load_settings

        path = tmp_path / "devstrap.yml"
        path.write_text("environments_dir: $HOME/envs\n")

        s = load_settings(path)

        assert s.environments_dir == home / "envs"

    def test_env_override_beats_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        from devstrap.core.config.loader import load_settings

        path = tmp_path / "devstrap.yml"
        path.write_text("credentials_dir: /from/file\n")
        monkeypatch.setenv("DEVSTRAP_CREDENTIALS_DIR", str(tmp_path / "from-env"))

        s = load_settings(path)

        assert s.credentials_dir == tmp_path / "from-env"

    def test_missing_explicit_file(self, tmp_path: Path) -> None:
        from devstrap.core.config.loader import load_settings
        from devstrap.core.errors import ConfigError

        with pytest.raises(ConfigError, match="not found"):
            load_settings(tmp_path / "missing.yml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        from devstrap.core.config.loader import load_settings
        from devstrap.core.errors import ConfigError

        path = tmp_path / "devstrap.yml"
        path.write_text("configs_dir: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_settings(path)

    def test_non_mapping(self, tmp_path: Path) -> None:
        from devstrap.core.config.loader import load_settings
        from devstrap.core.errors import ConfigError

        path = tmp_path / "devstrap.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_settings(path)

    def test_empty_file_is_defaults(self, tmp_path: Path) -> None:
        from devstrap.core.config.loader import load_settings

        path = tmp_path / "devstrap.yml"
        path.write_text("")

        s = load_settings(path)

        assert s.keychain_prefix == "dev_env_credentials"


class TestContext:
    def test_get_settings_returns_registered(self, settings) -> None:
        from devstrap.core.context import get_settings

        assert get_settings() is settings

    def test_lazy_default_load(self) -> None:
        from devstrap.core.context import get_settings, set_settings

        set_settings(None)
        loaded = get_settings()

        assert loaded.keychain_prefix == "dev_env_credentials"
        assert get_settings() is loaded
