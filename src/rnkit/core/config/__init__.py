"""Layered YAML configuration for rnkit."""
from .cache import clear_all_caches, get_cached_config
from .manager import ConfigManager

__all__ = ["ConfigManager", "get_cached_config", "clear_all_caches"]
