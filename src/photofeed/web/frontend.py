"""Read endpoint: the JSON feed and the static HTML viewer."""

from __future__ import annotations

from importlib.resources import files

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse, JSONResponse, Response

from photofeed.web.deps import Services, get_services

router = APIRouter()

INDEX_ACTION = "index"


def _load_template() -> str:
    template = files("photofeed.web").joinpath("templates", "index.html")
    return template.read_text(encoding="utf-8")


@router.get("/")
async def index(
    action: str | None = None,
    services: Services = Depends(get_services),
) -> Response:
    if action == INDEX_ACTION:
        entries = services.store.load()
        return JSONResponse(content=[entry.to_dict() for entry in entries])
    return HTMLResponse(content=_load_template())
