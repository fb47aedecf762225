"""Configuration management for SOS Ksar.

Provides infrastructure settings from environment variables (AppSettings).
"""

from .app_settings import AppSettings, get_settings

__all__ = [
    "AppSettings",
    "get_settings",
]
