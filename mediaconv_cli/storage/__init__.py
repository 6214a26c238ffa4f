"""
Storage Layer.

This package manages the on-disk INI configuration.
"""

from .config_manager import ConfigManager

__all__ = ["ConfigManager"]
