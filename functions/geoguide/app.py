"""
FastAPI application entry point for the GeoGuide backend.

Run with ``uvicorn geoguide.app:create_app --factory``.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from geoguide import __version__
from geoguide.config import Settings, get_settings
from geoguide.errors import StoreError, UploadFailure
from geoguide.providers import Providers, select_providers
from geoguide.routes import describe_validation_errors, router, status_router

logger = logging.getLogger(__name__)


async def _http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"message": describe_validation_errors(exc.errors())},
    )


async def _store_error_handler(request: Request, exc: StoreError):
    logger.error(
        "%s %s failed: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=exc,
    )
    message = "Upload failed" if isinstance(exc, UploadFailure) else str(exc)
    return JSONResponse(status_code=500, content={"message": message})


async def _unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(
        "%s %s raised an unhandled error",
        request.method,
        request.url.path,
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


async def _log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d - %.0fms",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )
    return response


def create_app(
    providers: Optional[Providers] = None, settings: Optional[Settings] = None
) -> FastAPI:
    """
    Build the app around explicitly constructed providers.

    When ``providers`` is omitted they are selected from ``settings``
    (itself read from the environment when omitted).
    """
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    if providers is None:
        providers = select_providers(settings)

    app = FastAPI(title="GeoGuide Backend", version=__version__)
    app.state.providers = providers
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(_log_requests)

    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(StoreError, _store_error_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)

    providers.blobs.mount(app)
    app.include_router(status_router)
    app.include_router(router, prefix=settings.api_prefix)
    return app
