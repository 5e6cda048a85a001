"""Events service - FastAPI app with the background sweep scheduler."""

from __future__ import annotations

import asyncio

import structlog
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from modules.events.context import EventsContext, build_context, close_context
from modules.events.errors import InvalidTimeError, StoreUnavailableError, UnknownStudioError
from modules.events.orchestrator import (
    create_event,
    delete_event,
    list_all_events,
    list_studio_events,
)
from modules.events.schemas import CreateEventRequest, DeleteEventRequest, EventListing
from modules.events.worker import scheduler_loop
from shared.config import get_settings
from shared.log import configure_logging
from shared.schemas.common import HealthResponse, MessageResponse

logger = structlog.get_logger()
app = FastAPI(title="Studio Events", version="1.0.0")

_context: EventsContext | None = None
_scheduler_task: asyncio.Task | None = None


@app.on_event("startup")
async def startup():
    global _context, _scheduler_task
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_json)
    _context = await build_context(settings)

    if settings.sweeps_enabled:
        _scheduler_task = asyncio.create_task(scheduler_loop(_context))
    else:
        logger.warning("sweeps_disabled")
    logger.info("events_service_ready")


@app.on_event("shutdown")
async def shutdown():
    global _context, _scheduler_task
    if _scheduler_task and not _scheduler_task.done():
        _scheduler_task.cancel()
        try:
            await _scheduler_task
        except asyncio.CancelledError:
            pass
    _scheduler_task = None
    if _context is not None:
        await close_context(_context)
        _context = None
    logger.info("events_service_shutdown")


def get_context() -> EventsContext:
    """Request dependency returning the process-wide context."""
    if _context is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    return _context


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    errors = [
        f"{'.'.join(str(p) for p in err.get('loc', ()) if p != 'body')}: {err.get('msg')}"
        for err in exc.errors()
    ]
    logger.info("request_invalid", path=request.url.path, errors=errors)
    return JSONResponse(status_code=400, content={"detail": "; ".join(errors)})


@app.get("/health", response_model=HealthResponse)
async def health():
    return HealthResponse(status="ok")


@app.post("/create-event", response_model=MessageResponse)
async def create_event_endpoint(
    request: CreateEventRequest, ctx: EventsContext = Depends(get_context)
):
    """Create an event in every listed studio and announce it in their chats."""
    try:
        result = await create_event(ctx, request)
    except (UnknownStudioError, InvalidTimeError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception:
        logger.exception("create_event_error", event_name=request.name)
        raise HTTPException(status_code=500, detail="Failed to create event")

    message = f"Event {request.name!r} created"
    if result.write_failures:
        message += f" ({result.write_failures} writes failed)"
    return MessageResponse(message=message)


@app.delete("/delete-event", response_model=MessageResponse)
async def delete_event_endpoint(
    request: DeleteEventRequest, ctx: EventsContext = Depends(get_context)
):
    """Remove an event from every category it is stored in."""
    try:
        found = await delete_event(ctx, request.studio_name, request.event_name)
    except StoreUnavailableError:
        logger.exception("delete_event_error", event_name=request.event_name)
        raise HTTPException(status_code=500, detail="Failed to delete event")
    if not found:
        raise HTTPException(status_code=404, detail="Event not found")
    return MessageResponse(message=f"Event {request.event_name!r} deleted")


@app.get(
    "/events",
    response_model=list[EventListing],
    response_model_by_alias=True,
    response_model_exclude_none=True,
)
async def studio_events(
    studioName: str | None = None, ctx: EventsContext = Depends(get_context)
):
    """Events of one studio, sorted by displayed time."""
    if not studioName or not studioName.strip():
        raise HTTPException(status_code=400, detail="studioName is required")
    try:
        return await list_studio_events(ctx, studioName)
    except UnknownStudioError as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.get(
    "/all-events",
    response_model=list[EventListing],
    response_model_by_alias=True,
    response_model_exclude_none=True,
)
async def all_events(ctx: EventsContext = Depends(get_context)):
    """Events of every studio, sorted by displayed time."""
    return await list_all_events(ctx)
