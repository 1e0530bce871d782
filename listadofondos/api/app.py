"""
HTTP layer for listadofondos (FastAPI).

Routes (mounted under ``base_path``, default ``/listadofondos/api``):

- ``GET  /data``     current payload, rebuilt first when stale or missing
- ``POST /refresh``  forced rebuild, returns the new payload
- ``GET  /health``   liveness probe

Every response, errors included, carries ``Cache-Control: no-store``; the
front-end must never see a browser-cached snapshot. Unknown routes and wrong
methods answer 404 ``{"message": "Not found"}``; anything unexpected answers
500 ``{"message": "Internal server error"}`` and is logged, never echoed.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from listadofondos.common.caching import SnapshotCache

DEFAULT_BASE_PATH = "/listadofondos/api"
NO_STORE = {"Cache-Control": "no-store"}

OnShutdown = Callable[[], Awaitable[None]]


def _json(content: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(content=content, status_code=status_code, headers=NO_STORE)


def _normalize_base_path(base_path: str) -> str:
    cleaned = "/" + base_path.strip().strip("/")
    return "" if cleaned == "/" else cleaned


def create_app(
    cache: SnapshotCache,
    *,
    base_path: str = DEFAULT_BASE_PATH,
    on_shutdown: Optional[OnShutdown] = None,
) -> FastAPI:
    """
    Build the FastAPI application over an existing `SnapshotCache`.

    Args:
        cache: Cache serving (and rebuilding) the payload.
        base_path: Prefix for every route.
        on_shutdown: Awaited once when the app stops (e.g. ``adapter.aclose``).
    """

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        try:
            yield
        finally:
            if on_shutdown is not None:
                await on_shutdown()

    app = FastAPI(
        title="listadofondos API",
        description="Daily Morningstar snapshot of the listed funds and pension plans",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )
    app.state.cache = cache

    router = APIRouter(prefix=_normalize_base_path(base_path))

    @router.get("/data")
    async def get_data() -> JSONResponse:
        return _json(await cache.get())

    @router.post("/refresh")
    async def post_refresh() -> JSONResponse:
        return _json(await cache.refresh())

    @router.get("/health")
    async def get_health() -> JSONResponse:
        return _json({"status": "ok"})

    app.include_router(router)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code in (404, 405):
            return _json({"message": "Not found"}, 404)
        return _json({"message": str(exc.detail)}, exc.status_code)

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.opt(exception=exc).error(
            "Unhandled error on {} {}", request.method, request.url.path
        )
        return _json({"message": "Internal server error"}, 500)

    return app


__all__ = ["DEFAULT_BASE_PATH", "NO_STORE", "create_app"]
