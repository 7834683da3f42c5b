"""
Registry store — load registry documents by name from the registry dir.

Lookup is by file stem: ``shell`` → ``registry/shell.json`` (or ``.yml`` /
``.yaml``).  JSON documents go through the YAML loader too, so both
formats share one parser.  Nothing is cached; every call reads disk.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from devstrap.core.errors import ConfigError, NotFoundError
from devstrap.core.models.registry import Registry

logger = logging.getLogger(__name__)

REGISTRY_SUFFIXES = (".json", ".yml", ".yaml")


def _registry_dir(registry_dir: Path | None) -> Path:
    if registry_dir is not None:
        return registry_dir
    from devstrap.core.context import get_settings

    return get_settings().registry_dir


def registry_file(name: str, registry_dir: Path | None = None) -> Path | None:
    """Path of the document for registry *name*, or None."""
    base = _registry_dir(registry_dir)
    for suffix in REGISTRY_SUFFIXES:
        candidate = base / f"{name}{suffix}"
        if candidate.is_file():
            return candidate
    return None


def load_registry(name: str, registry_dir: Path | None = None) -> Registry:
    """Load and validate registry *name*.

    Raises:
        NotFoundError: No document with that stem.
        ConfigError: The document is not a valid registry.
    """
    path = registry_file(name, registry_dir)
    if path is None:
        raise NotFoundError(
            f"Registry not found: {name} (looked in {_registry_dir(registry_dir)})"
        )

    logger.debug("Loading registry %s from %s", name, path)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid registry document {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping in {path}, got {type(data).__name__}")

    data = {**data, "key": name}
    data.setdefault("configs", [])
    try:
        registry = Registry.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid registry {name}: {e}") from e

    logger.info("Loaded registry '%s' with %d entries", name, len(registry.entries))
    return registry


def list_registries(registry_dir: Path | None = None) -> list[str]:
    """Sorted names of all registry documents."""
    base = _registry_dir(registry_dir)
    if not base.is_dir():
        return []
    names = {
        p.stem for p in base.iterdir()
        if p.is_file() and p.suffix in REGISTRY_SUFFIXES
    }
    return sorted(names)


def describe_registries(registry_dir: Path | None = None) -> list[dict]:
    """Name, title, description and entry count for every registry.

    Documents that fail to load are listed with an ``error`` field.
    """
    described = []
    for name in list_registries(registry_dir):
        try:
            reg = load_registry(name, registry_dir)
        except (ConfigError, NotFoundError) as e:
            described.append({"name": name, "error": str(e)})
            continue
        described.append({
            "name": name,
            "title": reg.title,
            "description": reg.description,
            "entries": len(reg.entries),
        })
    return described
