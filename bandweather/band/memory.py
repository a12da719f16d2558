"""In-memory band SDK, intended for development and tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional
from uuid import UUID

from bandweather.band.base import BandInfo
from bandweather.band.pages import BandTile, PageData
from bandweather.errors import BandIOError
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="band/in_memory")


@dataclass
class _BandState:
    """What one simulated band has installed."""
    tiles: dict[UUID, BandTile] = field(default_factory=dict)
    pages: dict[UUID, list[PageData]] = field(default_factory=dict)


class InMemoryTileManager:
    """Tile operations against a _BandState, validating pages against layouts."""

    def __init__(self, client: "InMemoryBandClient") -> None:
        self._client = client

    @property
    def _state(self) -> _BandState:
        self._client._ensure_open()
        return self._client._state

    def _record(self, name: str, *args) -> None:
        self._client._manager.calls.append((name, *args))

    async def get_tiles(self) -> list[BandTile]:
        self._record("get_tiles")
        return list(self._state.tiles.values())

    async def add_tile(self, tile: BandTile) -> bool:
        self._record("add_tile", tile.tile_id)
        state = self._state
        if tile.tile_id in state.tiles:
            return False
        if not tile.page_layouts:
            raise BandIOError("A tile must declare at least one page layout")
        state.tiles[tile.tile_id] = tile
        state.pages[tile.tile_id] = []
        error = self._client._manager.add_tile_error
        if error is not None:
            raise error
        return True

    async def remove_tile(self, tile_id: UUID) -> bool:
        self._record("remove_tile", tile_id)
        state = self._state
        state.pages.pop(tile_id, None)
        return state.tiles.pop(tile_id, None) is not None

    async def remove_pages(self, tile_id: UUID) -> None:
        self._record("remove_pages", tile_id)
        state = self._state
        if tile_id not in state.tiles:
            raise BandIOError(f"Tile {tile_id} is not installed")
        state.pages[tile_id] = []

    async def set_pages(self, tile_id: UUID, pages: Iterable[PageData]) -> None:
        pages = list(pages)
        self._record("set_pages", tile_id, len(pages))
        state = self._state
        tile = state.tiles.get(tile_id)
        if tile is None:
            raise BandIOError(f"Tile {tile_id} is not installed")
        for page in pages:
            if not 0 <= page.layout_index < len(tile.page_layouts):
                raise BandIOError(f"Page {page.page_id} uses unknown layout {page.layout_index}")
            if not tile.page_layouts[page.layout_index].accepts(page):
                raise BandIOError(f"Page {page.page_id} does not match layout {page.layout_index}")
        state.pages[tile_id] = pages


class InMemoryBandClient:
    """A simulated connection. Operations after close() raise BandIOError."""

    def __init__(self, manager: "InMemoryBandClientManager", band: BandInfo, state: _BandState) -> None:
        self._manager = manager
        self.band = band
        self._state = state
        self.closed = False
        self.tile_manager = InMemoryTileManager(self)

    def _ensure_open(self) -> None:
        if self.closed:
            raise BandIOError("Band connection is closed")

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._manager.calls.append(("close", self.band.address))

    async def __aenter__(self) -> "InMemoryBandClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


class InMemoryBandClientManager:
    """Simulated SDK entry point holding any number of paired bands.

    `connect_failures` makes the next N connect() calls raise BandIOError,
    which is how a band that is out of radio range behaves. `add_tile_error`
    is raised after a tile has been stored, mirroring SDK builds that report
    an error for a tile add that succeeded.
    """

    def __init__(self, bands: Optional[Iterable[BandInfo]] = None, *, connect_failures: int = 0) -> None:
        logger.debug("Initializing InMemoryBandClientManager")
        self.bands: list[BandInfo] = list(bands or [])
        self.connect_failures = connect_failures
        self.add_tile_error: Optional[BandIOError] = None
        self.calls: list[tuple] = []
        self.clients: list[InMemoryBandClient] = []
        self._states: dict[str, _BandState] = {}

    def state_for(self, band: BandInfo) -> _BandState:
        return self._states.setdefault(band.address, _BandState())

    def install_tile(self, band: BandInfo, tile: BandTile) -> None:
        """Pre-install a tile, as if the user had added it earlier."""
        state = self.state_for(band)
        state.tiles[tile.tile_id] = tile
        state.pages.setdefault(tile.tile_id, [])

    def pages_for(self, band: BandInfo, tile_id: UUID) -> list[PageData]:
        return list(self.state_for(band).pages.get(tile_id, []))

    async def get_bands(self, *, background: bool = False, connected_only: bool = False) -> list[BandInfo]:
        self.calls.append(("get_bands", background, connected_only))
        if connected_only:
            return [b for b in self.bands if b.connected]
        return list(self.bands)

    async def connect(self, band: BandInfo) -> InMemoryBandClient:
        self.calls.append(("connect", band.address))
        if self.connect_failures > 0:
            self.connect_failures -= 1
            raise BandIOError(f"Unable to connect to {band.name}")
        client = InMemoryBandClient(self, band, self.state_for(band))
        self.clients.append(client)
        return client
