"""HTTP API exposing the foreground controller."""

import hmac
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from pydantic import BaseModel

from .config import settings
from .controller import ForegroundController
from .errors import SyncInProgressError, SyncOutcome
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="bandweather/api")


def require_api_key(x_api_key: str | None = Header(default=None)):
    """
    Validate the X-API-Key header against the configured api_key setting.
    """
    # No key configured: allow requests (dev/default mode).
    if not settings.api_key:
        logger.debug("No API key configured; allowing all requests")
        return

    if not x_api_key:
        logger.debug("No API key provided")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing API key")

    if hmac.compare_digest(str(x_api_key), str(settings.api_key)):
        return

    logger.debug("Invalid API key provided")
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")


router = APIRouter(dependencies=[Depends(require_api_key)])


def get_controller(request: Request) -> ForegroundController:
    """The controller created by the application lifespan."""
    controller = getattr(request.app.state, "controller", None)
    if controller is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Controller not ready")
    return controller


class StatusResponse(BaseModel):
    """Controller flags plus the persisted last-sync message."""
    is_paired: bool
    is_tile_added: bool
    is_syncing: bool
    can_sync: bool
    can_add_tile: bool
    can_remove_tile: bool
    use_alternate_source: bool
    site_description: str
    background_registered: bool
    last_sync: Optional[str] = None


class OutcomeResponse(BaseModel):
    """Result of a sync, add-tile or remove-tile action."""
    status: str
    message: str
    succeeded: bool


class AlternateSourceRequest(BaseModel):
    use_alternate_source: bool


class AlternateSourceResponse(BaseModel):
    use_alternate_source: bool
    site_description: str


def _outcome_response(outcome: SyncOutcome) -> OutcomeResponse:
    return OutcomeResponse(status=outcome.status.value, message=outcome.message, succeeded=outcome.succeeded)


async def _run_action(action, name: str) -> OutcomeResponse:
    try:
        outcome = await action()
    except SyncInProgressError as exc:
        logger.info("%s rejected: %s", name, exc)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    logger.info("%s finished: %s", name, outcome.status.value)
    return _outcome_response(outcome)


@router.get("/status", response_model=StatusResponse)
async def get_status(controller: ForegroundController = Depends(get_controller)):
    """Return the controller flags and the last sync message."""
    return StatusResponse(**controller.snapshot())


@router.post("/sync", response_model=OutcomeResponse)
async def post_sync(controller: ForegroundController = Depends(get_controller)):
    """Run an interactive sync now."""
    return await _run_action(controller.run_sync, "sync")


@router.post("/tile", response_model=OutcomeResponse)
async def post_tile(controller: ForegroundController = Depends(get_controller)):
    """Register background triggers and install the tile."""
    return await _run_action(controller.add_tile, "add tile")


@router.delete("/tile", response_model=OutcomeResponse)
async def delete_tile(controller: ForegroundController = Depends(get_controller)):
    """Unregister background triggers and remove the tile."""
    return await _run_action(controller.remove_tile, "remove tile")


@router.get("/settings/alternate-source", response_model=AlternateSourceResponse)
async def get_alternate_source(controller: ForegroundController = Depends(get_controller)):
    return AlternateSourceResponse(
        use_alternate_source=controller.use_alternate_source,
        site_description=controller.site_description,
    )


@router.put("/settings/alternate-source", response_model=AlternateSourceResponse)
async def put_alternate_source(
    payload: AlternateSourceRequest,
    controller: ForegroundController = Depends(get_controller),
):
    """Switch between the primary and the alternate weather endpoint."""
    controller.use_alternate_source = payload.use_alternate_source
    logger.info("Alternate source set to %s", payload.use_alternate_source)
    return AlternateSourceResponse(
        use_alternate_source=controller.use_alternate_source,
        site_description=controller.site_description,
    )
