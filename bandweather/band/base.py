"""Protocols for the band vendor SDK.

Only the calls the sync workflow needs are modelled. Real hardware sits behind
an implementation of BandClientManager; InMemoryBandClientManager stands in for
development and tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Protocol, Sequence
from uuid import UUID

from bandweather.band.pages import BandTile, PageData
from bandweather.errors import BandIOError

__all__ = [
    "BandClient",
    "BandClientManager",
    "BandInfo",
    "BandIOError",
    "TileManager",
]


@dataclass(frozen=True)
class BandInfo:
    """A paired band as reported by the SDK."""
    name: str
    address: str
    connected: bool = True


class TileManager(Protocol):
    async def get_tiles(self) -> Sequence[BandTile]:
        """Return the tiles this application has installed."""

    async def add_tile(self, tile: BandTile) -> bool:
        """Install a tile; True when the band accepted it."""

    async def remove_tile(self, tile_id: UUID) -> bool:
        """Remove a tile; True when something was removed."""

    async def remove_pages(self, tile_id: UUID) -> None:
        """Drop every page currently shown on the tile."""

    async def set_pages(self, tile_id: UUID, pages: Iterable[PageData]) -> None:
        """Push an ordered page sequence to the tile."""


class BandClient(Protocol):
    """An open connection to one band. Must be closed on every exit path."""

    tile_manager: TileManager

    async def close(self) -> None:
        """Release the connection."""

    async def __aenter__(self) -> "BandClient":
        ...

    async def __aexit__(self, exc_type, exc, tb) -> None:
        ...


class BandClientManager(Protocol):
    async def get_bands(self, *, background: bool = False, connected_only: bool = False) -> Sequence[BandInfo]:
        """List paired bands.

        `connected_only` restricts the list to bands currently reachable;
        otherwise every known pairing is returned. `background` tells the SDK
        the call comes from an unattended task.
        """

    async def connect(self, band: BandInfo) -> BandClient:
        """Open a connection to `band`; raises BandIOError on failure."""
