"""Band SDK protocols, the in-memory SDK, and session helpers."""

from .base import BandClient, BandClientManager, BandInfo, TileManager
from .memory import InMemoryBandClientManager
from .session import TileWriteGuard, connect, discover_bands, has_tile

__all__ = [
    "BandClient",
    "BandClientManager",
    "BandInfo",
    "TileManager",
    "InMemoryBandClientManager",
    "TileWriteGuard",
    "connect",
    "discover_bands",
    "has_tile",
]
