"""
Configuration module for the discovery engine.

Usage:
    from config import get_settings

    settings = get_settings()
    ttl = settings.category_index_ttl_seconds
"""

from config.settings import Settings, get_settings, get_settings_for_testing

__all__ = ["Settings", "get_settings", "get_settings_for_testing"]
