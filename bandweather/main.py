"""FastAPI application setup for Band Weather."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from . import constants, local_settings
from .api import router as api_router
from .band import BandClientManager, InMemoryBandClientManager, TileWriteGuard
from .config import Settings, settings as default_settings
from .controller import ForegroundController
from .errors import BandWeatherError
from .location import LocationProvider, build_location_provider
from .tasks import BackgroundSyncTask, TaskRegistry
from utils.logging_utils import get_tagged_logger, setup_logging

logger = get_tagged_logger(__name__, tag="bandweather/main")


def create_app(
    band_manager: Optional[BandClientManager] = None,
    location_provider: Optional[LocationProvider] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """Build the app. The lifespan owns the task registry and the controller."""
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(level=settings.log_level, job_name="bandweather")
        manager = band_manager or InMemoryBandClientManager()
        provider = location_provider or build_location_provider(settings)
        store = local_settings.get_store()
        guard = TileWriteGuard()

        entry_point = BackgroundSyncTask(manager, provider, store=store, guard=guard, settings=settings)
        registry = TaskRegistry(entry_point, settings=settings)
        controller = ForegroundController(manager, provider, registry, store=store, guard=guard, settings=settings)
        app.state.registry = registry
        app.state.controller = controller

        try:
            await controller.refresh()
        except BandWeatherError as exc:
            logger.warning("Initial band check failed: %s", exc)
        if controller.is_tile_added:
            registry.register()
        logger.info("Band Weather started", extra={"paired": controller.is_paired, "tile": controller.is_tile_added})
        try:
            yield
        finally:
            await registry.unregister(cancel_running=True)
            app.state.controller = None
            logger.info("Band Weather stopped")

    app = FastAPI(title=constants.TITLE, version=constants.VERSION, lifespan=lifespan)

    # API routes
    app.include_router(api_router, prefix="/v1")
    return app


app = create_app()
