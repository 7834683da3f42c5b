"""devstrap — workstation bootstrap: config registries, credentials, dev environments."""

__version__ = "0.1.0"
