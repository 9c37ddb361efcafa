# extract_builder/core/router.py
"""Module for registering routes in the FastAPI application."""

from fastapi import FastAPI

from extract_builder.catalog.router import router as catalog_router
from extract_builder.extracts.router import criteria_router
from extract_builder.extracts.router import router as extract_router
from extract_builder.logging.router import health_router
from extract_builder.logging.router import router as log_router


def register_routes(app: FastAPI) -> None:
    """
    Registers all the routes for the FastAPI application.

    Args:
        app (FastAPI): The FastAPI application instance.
    """
    app.include_router(catalog_router, prefix="/api")
    app.include_router(extract_router, prefix="/api")
    app.include_router(criteria_router, prefix="/api")
    app.include_router(log_router, prefix="/api")
    app.include_router(health_router, prefix="/api")
