"""Local settings facade over pluggable backends.

Two values live here: the last sync status message and the "use alternate
source" flag. Writes are not coordinated between processes; the last writer
wins.
"""
from typing import Optional

try:
    import redis  # type: ignore
except ImportError:  # pragma: no cover - optional dependency
    redis = None

from bandweather import constants
from bandweather.config import settings
from bandweather.settings_store import InMemorySettingsStore, RedisSettingsStore, SettingsStore
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="local_settings")


def _init_store() -> SettingsStore:
    """Initialize the backing store based on configuration."""
    logger.debug(f"Initializing settings store: redis_url='{settings.settings_redis_url or 'None'}', redis package present: {'yes' if redis else 'no'}")
    if settings.settings_redis_url and redis:
        try:
            client = redis.Redis.from_url(settings.settings_redis_url)
            client.ping()
            logger.info("Using RedisSettingsStore", extra={"redis_url": settings.settings_redis_url})
            return RedisSettingsStore(client, prefix=settings.settings_redis_prefix)
        except Exception as exc:  # pragma: no cover - defensive
            logger.warning("Falling back to InMemorySettingsStore (Redis unavailable)", extra={"error": str(exc)})
    return InMemorySettingsStore()


_store: SettingsStore = _init_store()


def use_in_memory_store_for_tests() -> SettingsStore:
    """Swap in a fresh in-memory store for test isolation and return it."""
    global _store
    _store = InMemorySettingsStore()
    return _store


def get_store() -> SettingsStore:
    return _store


def get_last_sync(store: Optional[SettingsStore] = None) -> Optional[str]:
    """Return the last persisted sync status message, if any."""
    return (store or _store).get(constants.LAST_SYNC_KEY)


def set_last_sync(message: str, store: Optional[SettingsStore] = None) -> None:
    """Overwrite the persisted sync status message."""
    (store or _store).set(constants.LAST_SYNC_KEY, message)


def get_use_alternate_source(store: Optional[SettingsStore] = None) -> bool:
    """True when the user picked the alternate weather endpoint."""
    return bool((store or _store).get(constants.USE_ALTERNATE_SOURCE_KEY, False))


def set_use_alternate_source(value: bool, store: Optional[SettingsStore] = None) -> None:
    (store or _store).set(constants.USE_ALTERNATE_SOURCE_KEY, bool(value))
