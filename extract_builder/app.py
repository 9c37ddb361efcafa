"""FastAPI application entry point for the extract builder."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError, ResponseValidationError
from fastapi.middleware.cors import CORSMiddleware

from extract_builder.catalog.cache import CatalogCache
from extract_builder.core.config import Settings, get_settings
from extract_builder.core.database import Database
from extract_builder.core.exceptions import ExtractBuilderError
from extract_builder.core.router import register_routes
from extract_builder.logging.exception_handlers import (
    extract_builder_error_handler,
    general_exception_handler,
    http_exception_handler,
    request_validation_exception_handler,
    response_validation_exception_handler,
)
from extract_builder.logging.middleware import LoggingMiddleware

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: create tables on the config store
    app.state.database.init()
    yield
    # Shutdown: release pooled connections of both engines
    app.state.database.shutdown()


def create_app(database: Optional[Database] = None, settings: Optional[Settings] = None) -> FastAPI:
    """Build the application around an explicitly constructed database handle."""
    settings = settings or get_settings()

    app = FastAPI(
        title="Extract Builder",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = database or Database.from_settings(settings)
    app.state.catalog_cache = CatalogCache(settings.catalog_cache_ttl_seconds)

    # Add request logger middleware
    app.add_middleware(LoggingMiddleware, application_id=settings.application_id)

    app.add_exception_handler(ExtractBuilderError, extract_builder_error_handler)
    app.add_exception_handler(ResponseValidationError, response_validation_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, replace with specific origins
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routes(app)
    return app
