"""Shared protocol for local settings backends."""

from typing import Any, Optional, Protocol


class SettingsStore(Protocol):
    """Key/value store for the few values that outlive a sync run."""
    def get(self, key: str, default: Optional[Any] = None) -> Any:
        """Return the stored value, or `default` if the key is absent."""

    def set(self, key: str, value: Any) -> None:
        """Store a JSON-compatible value, overwriting any previous one."""

    def delete(self, key: str) -> None:
        """Delete a key without raising if it is absent."""

    def clear(self) -> None:
        """Remove every stored key."""
