"""Redis-backed settings store."""

import json
from typing import Any, Optional

from bandweather.settings_store.base import SettingsStore
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="settings_store/redis_settings_store")


class RedisSettingsStore(SettingsStore):
    """Settings persisted as JSON strings under a key prefix, without expiry."""

    def __init__(self, client, prefix: str = "bandweather:") -> None:
        """Initialize with a Redis client and a key prefix."""
        logger.debug("Initializing RedisSettingsStore")
        self.client = client
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        """Return the decoded value; `default` when missing or unreadable."""
        try:
            raw = self.client.get(self._key(key))
        except Exception as exc:  # pragma: no cover - defensive
            logger.error("Failed to read setting %s from Redis: %s", key, exc)
            return default
        if raw is None:
            return default
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        try:
            return json.loads(raw)
        except ValueError as exc:
            logger.error("Failed to decode setting %s: %s", key, exc)
            return default

    def set(self, key: str, value: Any) -> None:
        """Encode and write a value; Redis errors propagate."""
        self.client.set(self._key(key), json.dumps(value))

    def delete(self, key: str) -> None:
        try:
            self.client.delete(self._key(key))
        except Exception as exc:  # pragma: no cover - defensive
            logger.error("Failed to delete setting %s from Redis: %s", key, exc)

    def clear(self) -> None:
        """Best-effort clear of every key under the prefix."""
        try:
            for key in self.client.scan_iter(f"{self.prefix}*"):
                self.client.delete(key)
        except Exception as exc:  # pragma: no cover - defensive
            logger.error("Failed to clear settings from Redis: %s", exc)
