"""Local settings storage backends."""

from .base import SettingsStore
from .memory import InMemorySettingsStore
from .redis import RedisSettingsStore

__all__ = [
    "SettingsStore",
    "InMemorySettingsStore",
    "RedisSettingsStore",
]
