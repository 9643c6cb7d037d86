from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
import uvicorn

from app.api import router
from app.web import router as web_router
from logging_config import configure_logging
from services.errors import QueryError, StoreError
from services.measurements import build_default_service
from settings import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    service = build_default_service()
    app.state.measurements = service
    try:
        yield
    finally:
        service.close()
        build_default_service.cache_clear()


async def query_error_handler(_request: Request, exc: QueryError) -> JSONResponse:
    content = {"error": exc.message}
    if isinstance(exc, StoreError):
        content["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=content)


async def unhandled_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error while serving request", exc_info=exc, extra={"reason": repr(exc)})
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Server error", "details": str(exc)},
    )


async def request_validation_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        name = first.get("loc", ("query",))[-1]
        message = f"Invalid value for {name}: {first.get('msg', 'invalid input')}."
    else:
        message = "Invalid request parameters."
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Measurement API",
        description="Read-only time-series and summary statistics over sensor measurements.",
        version="0.1.0",
        lifespan=lifespan,
    )
    static_dir = Path(__file__).resolve().parent.parent / "static"
    app.mount("/static", StaticFiles(directory=static_dir), name="static")
    app.add_exception_handler(QueryError, query_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
    app.include_router(router)
    app.include_router(web_router)
    return app


app = create_app()


def run() -> None:
    """Serve the API with uvicorn on the configured host and port."""
    settings = get_settings()
    logger.info("Starting measurement API on %s:%s", settings.api_host, settings.api_port)
    # Logging is already configured; keep uvicorn from installing its own.
    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_config=None)
