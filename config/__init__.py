"""
Configuration package for the extraction cache.
"""

from .config import DEFAULT_STORAGE_KEY, Config, StorageBackend

__all__ = ["DEFAULT_STORAGE_KEY", "Config", "StorageBackend"]
