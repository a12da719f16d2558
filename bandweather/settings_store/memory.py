"""In-memory settings store, intended for development and tests."""

import threading
from typing import Any, Optional

from bandweather.settings_store.base import SettingsStore
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="settings_store/in_memory_settings_store")


class InMemorySettingsStore(SettingsStore):
    """Thread-safe dict-backed store. Values are lost when the process exits."""

    def __init__(self) -> None:
        logger.debug("Initializing InMemorySettingsStore")
        self._values: dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        with self._lock:
            return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._values[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._values.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._values.clear()
