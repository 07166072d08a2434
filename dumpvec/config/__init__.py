"""Configuration: settings, dialect registry and exclusion rules."""

from .settings import Settings, get_settings, load_settings

__all__ = ["Settings", "get_settings", "load_settings"]
