# src/gateway/spa_routes.py

"""Static front-end serving with single-page-app fallback."""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, FastAPI
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException
from starlette.responses import Response
from starlette.types import Scope

from common.logging_utils import log_event


def spa_index_response(static_dir: Path) -> FileResponse | JSONResponse:
    """index.html for client-side routing, or 503 when the front-end is absent."""
    index_path = static_dir / "index.html"
    if index_path.is_file():
        return FileResponse(index_path, media_type="text/html")
    return JSONResponse(
        status_code=503,
        content={"error": "frontend not built", "static_dir": str(static_dir)},
    )


class SpaStaticFiles(StaticFiles):
    """StaticFiles that answers any unmatched GET with index.html."""

    def __init__(self, directory: Path):
        super().__init__(directory=directory, html=True)
        self.static_dir = Path(directory)

    async def get_response(self, path: str, scope: Scope) -> Response:
        try:
            return await super().get_response(path, scope)
        except HTTPException as exc:
            if exc.status_code != 404:
                raise
        except (ValueError, OSError):
            # Embedded NUL bytes and over-long names never name a file
            pass
        return spa_index_response(self.static_dir)


def create_missing_frontend_router(static_dir: Path) -> APIRouter:
    router = APIRouter()

    @router.get("/{_full_path:path}", include_in_schema=False, response_model=None)
    async def frontend_not_built(_full_path: str) -> FileResponse | JSONResponse:
        return spa_index_response(static_dir)

    return router


def mount_frontend(app: FastAPI, static_dir: Path) -> None:
    """Serve static_dir at "/"; must run after every API route is registered."""
    if static_dir.is_dir():
        app.mount("/", SpaStaticFiles(static_dir), name="frontend")
        log_event("frontend_mounted", extra={"static_dir": static_dir})
    else:
        log_event("frontend_missing", extra={"static_dir": static_dir}, level="warning")
        app.include_router(create_missing_frontend_router(static_dir))
