"""
Configuration and environment setup.

This module contains:
- Settings loaded from environment variables / .env
- Names of the remote collections
"""

from .settings import Settings, get_settings
from .collections import Collections

__all__ = ["Settings", "get_settings", "Collections"]
