"""FastAPI application: router, error mapping, startup."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from scholar.api.routes import router
from scholar.core.database import ScholarDatabase
from scholar.core.errors import (
    BatchLimitError,
    ConfigurationError,
    InvalidSearchError,
    ParseError,
    RecordValidationError,
    ScholarError,
    StorageError,
    TransportError,
)
from scholar.core.settings import get_settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)

# Checked in order; subclasses before their bases.
ERROR_STATUS: tuple[tuple[type[ScholarError], int], ...] = (
    (ConfigurationError, 500),
    (TransportError, 503),
    (ParseError, 400),
    (InvalidSearchError, 400),
    (RecordValidationError, 400),
    (BatchLimitError, 400),
    (StorageError, 500),
)


def status_for(exc: ScholarError) -> int:
    for cls, status in ERROR_STATUS:
        if isinstance(exc, cls):
            return status
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = app.dependency_overrides.get(get_settings, get_settings)()
    logger.info(
        "Starting scholar search API (database %s, API key configured: %s)",
        settings.database_path,
        settings.has_api_key,
    )
    ScholarDatabase(settings.database_path).create_tables()
    yield
    logger.info("Shutting down scholar search API")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Scholar Search API",
        description="Scholarly search proxy with article and researcher persistence",
        version="1.0.0",
        lifespan=lifespan,
    )

    @app.exception_handler(ScholarError)
    async def scholar_error_handler(request: Request, exc: ScholarError):
        status = status_for(exc)
        if status >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        else:
            logger.warning("%s %s rejected: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=status, content=exc.to_dict())

    app.include_router(router)
    return app


app = create_app()
