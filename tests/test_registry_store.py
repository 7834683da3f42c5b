"""
Tests for devstrap.core.services.registry_store — loading registry documents.
"""

from __future__ import annotations

from pathlib import Path

import pytest


class TestLoadRegistry:
    def test_json_document(self, write_registry) -> None:
        from devstrap.core.services.registry_store import load_registry

        write_registry("shell", [
            {"name": "zshrc", "source": "shell/.zshrc", "target": "$HOME/.zshrc", "type": "symlink"},
            {"name": "aliases", "source": "shell/aliases.zsh", "target": "$HOME/.aliases.zsh"},
        ], description="Zsh configuration")

        reg = load_registry("shell")

        assert reg.key == "shell"
        assert reg.description == "Zsh configuration"
        assert [e.name for e in reg.entries] == ["zshrc", "aliases"]

    def test_type_defaults_to_symlink(self, write_registry) -> None:
        from devstrap.core.models.registry import Strategy
        from devstrap.core.services.registry_store import load_registry

        write_registry("shell", [{"name": "a", "source": "a", "target": "b"}])

        (entry,) = load_registry("shell").entries

        assert entry.known_strategy is Strategy.SYMLINK

    def test_yaml_document(self, registry_dir: Path) -> None:
        from devstrap.core.services.registry_store import load_registry

        (registry_dir / "git.yml").write_text(
            "name: Git\n"
            "configs:\n"
            "  - name: gitconfig\n"
            "    source: git/.gitconfig\n"
            "    target: ~/.gitconfig\n"
            "    type: copy\n"
        )

        reg = load_registry("git")

        assert reg.title == "Git"
        assert reg.entries[0].strategy == "copy"

    def test_unknown_strategy_still_loads(self, write_registry) -> None:
        from devstrap.core.services.registry_store import load_registry

        write_registry("odd", [{"name": "x", "source": "x", "target": "y", "type": "hardlink"}])

        entry = load_registry("odd").entries[0]

        assert entry.strategy == "hardlink"
        assert entry.known_strategy is None

    def test_missing_registry(self, registry_dir: Path) -> None:
        from devstrap.core.errors import NotFoundError
        from devstrap.core.services.registry_store import load_registry

        with pytest.raises(NotFoundError, match="Registry not found: nope"):
            load_registry("nope")

    def test_invalid_entry(self, write_registry) -> None:
        from devstrap.core.errors import ConfigError
        from devstrap.core.services.registry_store import load_registry

        write_registry("bad", [{"name": "no-source", "target": "x"}])

        with pytest.raises(ConfigError, match="Invalid registry bad"):
            load_registry("bad")

    def test_not_a_mapping(self, registry_dir: Path) -> None:
        from devstrap.core.errors import ConfigError
        from devstrap.core.services.registry_store import load_registry

        (registry_dir / "list.json").write_text("[1, 2]")

        with pytest.raises(ConfigError, match="Expected a mapping"):
            load_registry("list")


class TestListRegistries:
    def test_sorted_stems(self, registry_dir: Path, write_registry) -> None:
        from devstrap.core.services.registry_store import list_registries

        write_registry("vim", [])
        write_registry("shell", [])
        (registry_dir / "git.yaml").write_text("configs: []\n")
        (registry_dir / "README.md").write_text("not a registry")

        assert list_registries() == ["git", "shell", "vim"]

    def test_missing_dir(self, tmp_path: Path) -> None:
        from devstrap.core.services.registry_store import list_registries

        assert list_registries(tmp_path / "absent") == []

    def test_describe_includes_errors(self, registry_dir: Path, write_registry) -> None:
        from devstrap.core.services.registry_store import describe_registries

        write_registry("shell", [{"name": "a", "source": "a", "target": "b"}], description="Zsh")
        (registry_dir / "broken.json").write_text("{not json")

        described = {d["name"]: d for d in describe_registries()}

        assert described["shell"]["entries"] == 1
        assert described["shell"]["description"] == "Zsh"
        assert "error" in described["broken"]
