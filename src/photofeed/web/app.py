"""FastAPI application serving the PhotoFeed index and viewer."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import BaseModel

from photofeed.errors import NotFoundError, PermissionGrantError
from photofeed.index.store import IndexStore
from photofeed.models import IndexEntry
from photofeed.triggers import PeriodicTrigger, on_upload
from photofeed.web.deps import Services, get_services
from photofeed.web.frontend import router as frontend_router

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="PhotoFeed", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)
app.include_router(frontend_router)

_periodic: Optional[PeriodicTrigger] = None


class UploadEvent(BaseModel):
    """Notification that an object landed in the storage folder.

    The fields are informational; every event triggers a full pass.
    """

    object_id: str | None = None
    name: str | None = None


@app.on_event("startup")
async def startup_event() -> None:
    global _periodic
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
    services = get_services()
    if services.config.sync_interval > 0:
        _periodic = PeriodicTrigger(services.reconciler, services.config.sync_interval)
        _periodic.start()


@app.on_event("shutdown")
async def shutdown_event() -> None:
    global _periodic
    if _periodic is not None:
        _periodic.stop(timeout=5)
        _periodic = None


@app.post("/events/upload")
async def upload_event(
    event: UploadEvent | None = None,
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    if event is not None and (event.object_id or event.name):
        LOGGER.info("Upload event for %s", event.object_id or event.name)
    stats = await asyncio.to_thread(on_upload, services.reconciler)
    return stats.to_dict()


def _find_entry(store: IndexStore, object_id: str) -> Optional[IndexEntry]:
    return next((entry for entry in store.load() if entry.id == object_id), None)


@app.get("/objects/{object_id}")
async def get_object(object_id: str, services: Services = Depends(get_services)) -> Response:
    """Serve the bytes of an indexed, link-readable object."""
    entry = await asyncio.to_thread(_find_entry, services.store, object_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Object not indexed")

    try:
        shared = await asyncio.to_thread(services.backend.is_publicly_readable, object_id)
        if not shared:
            raise HTTPException(status_code=404, detail="Object not shared")
        content = await asyncio.to_thread(services.backend.read_content, object_id)
    except (NotFoundError, PermissionGrantError) as exc:
        LOGGER.warning("Unable to serve %s: %s", object_id, exc)
        raise HTTPException(status_code=404, detail="Object not available") from exc
    return Response(content=content, media_type=entry.mime_type)
