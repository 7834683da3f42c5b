"""
Registry models — named, ordered collections of config entries.

A registry document looks like::

    {
      "name": "Shell Configuration",
      "description": "Zsh shell configuration files",
      "configs": [
        {"name": "zshrc", "source": "shell/.zshrc",
         "target": "$HOME/.zshrc", "type": "symlink"}
      ]
    }

Registries are authored by hand and never mutated by devstrap.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Strategy(str, Enum):
    """How an entry's source becomes its target."""

    SYMLINK = "symlink"
    COPY = "copy"
    TEMPLATE = "template"


class ConfigEntry(BaseModel):
    """One source → target mapping.

    ``strategy`` is kept as a plain string so a registry with a typo in
    one entry still loads; the installer reports that entry as failed.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    description: str = ""
    source: str
    target: str
    strategy: str = Field(default=Strategy.SYMLINK.value, alias="type")

    @property
    def known_strategy(self) -> Strategy | None:
        """The strategy as an enum member, or None if unrecognised."""
        try:
            return Strategy(self.strategy)
        except ValueError:
            return None


class Registry(BaseModel):
    """A registry document, identified by its file stem (``key``)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    key: str = ""
    name: str = ""
    description: str = ""
    entries: list[ConfigEntry] = Field(default_factory=list, alias="configs")

    @property
    def title(self) -> str:
        return self.name or self.key
