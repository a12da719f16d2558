"""Wearable session helpers: discover, connect (with bounded retry), write pages.

All tile writes go through TileWriteGuard so a periodic run, a time-zone run
and a user-initiated sync never interleave remove_pages/set_pages on the same
tile.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Sequence
from uuid import UUID

from bandweather.band.base import BandClient, BandClientManager, BandInfo
from bandweather.band.pages import BandTile
from bandweather.errors import BandIOError, NotPairedError
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="band/session")


class TileWriteGuard:
    """Single-slot lock shared by every writer of the tile."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    async def __aenter__(self) -> "TileWriteGuard":
        if self._lock.locked():
            logger.info("Waiting for another tile write to finish")
        await self._lock.acquire()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self._lock.release()


async def discover_bands(
    manager: BandClientManager,
    *,
    connected_only: bool = False,
    background: bool = False,
) -> Sequence[BandInfo]:
    """Return paired bands; NotPairedError if there are none."""
    bands = await manager.get_bands(background=background, connected_only=connected_only)
    logger.debug("Found %d paired band(s) (connected_only=%s)", len(bands), connected_only)
    if not bands:
        raise NotPairedError()
    return bands


@asynccontextmanager
async def connect(
    manager: BandClientManager,
    band: BandInfo,
    *,
    attempts: int = 1,
    delay_seconds: float = 0.0,
) -> AsyncIterator[BandClient]:
    """Open a connection to `band`, closing it on every exit path.

    Connect failures (BandIOError) are retried up to `attempts` times with a
    fixed delay; the last failure propagates.
    """
    attempts = max(1, attempts)
    client = None
    for attempt in range(1, attempts + 1):
        try:
            client = await manager.connect(band)
            break
        except BandIOError as exc:
            if attempt >= attempts:
                logger.warning("Connect to %s failed after %d attempt(s): %s", band.name, attempt, exc)
                raise
            logger.info(
                "Connect to %s failed (attempt %d/%d), retrying in %.1fs: %s",
                band.name, attempt, attempts, delay_seconds, exc,
            )
            await asyncio.sleep(delay_seconds)

    logger.debug("Connected to %s", band.name)
    try:
        yield client
    finally:
        await client.close()
        logger.debug("Closed connection to %s", band.name)


async def has_tile(client: BandClient, tile_id: UUID) -> bool:
    """True if the tile is installed on the connected band."""
    tiles = await client.tile_manager.get_tiles()
    return any(t.tile_id == tile_id for t in tiles)


async def add_tile(client: BandClient, tile: BandTile) -> bool:
    """Install `tile`.

    Some SDK builds raise a MissingManifestResource BandIOError even though the
    tile was added; that case is reported as success.
    """
    try:
        return await client.tile_manager.add_tile(tile)
    except BandIOError as exc:
        if exc.is_missing_manifest_resource:
            logger.info("Ignoring MissingManifestResource error after tile add")
            return True
        raise


async def remove_tile(client: BandClient, tile_id: UUID) -> bool:
    """Remove the tile if it is installed; False if there was nothing to remove."""
    if not await has_tile(client, tile_id):
        return False
    return await client.tile_manager.remove_tile(tile_id)
