"""
Process context — the settings every core service falls back to.

Set ONCE by whichever entry point starts the process:

    - CLI:    main.py   → context.set_settings(load_settings(...))
    - Tests:  conftest  → context.set_settings(<tmp settings>)

Services accept explicit paths; they only consult this module when the
caller passes none.  Module-level singleton, not a class.
"""

from __future__ import annotations

from typing import Optional

from devstrap.core.models.settings import Settings

_settings: Optional[Settings] = None


def set_settings(settings: Optional[Settings]) -> None:
    """Register (or clear, with None) the settings for this process."""
    global _settings
    _settings = settings


def get_settings() -> Settings:
    """Return the registered settings, loading defaults on first use."""
    global _settings
    if _settings is None:
        from devstrap.core.config.loader import load_settings

        _settings = load_settings()
    return _settings

