# src/__init__.py — v1
"""clawup: manifest resolution and secret provisioning for agent fleets."""

from clawup.version import __version__

__all__ = ["__version__"]
