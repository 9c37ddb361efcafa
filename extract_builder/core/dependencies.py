# extract_builder/core/dependencies.py
"""Shared FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from extract_builder.catalog.cache import CatalogCache
from extract_builder.core.config import Settings
from extract_builder.core.database import Database, get_database, get_db
from extract_builder.extracts.executor import SqlAlchemyStatementRunner


def get_app_settings(request: Request) -> Settings:
    """Get the settings the application was built with."""
    return request.app.state.settings


# Core dependencies
SessionDep = Annotated[Session, Depends(get_db)]
DatabaseDep = Annotated[Database, Depends(get_database)]
SettingsDep = Annotated[Settings, Depends(get_app_settings)]


def get_current_user(settings: SettingsDep) -> str:
    """The single configured requester; this is not an authentication layer."""
    return settings.current_user_id


CurrentUserDep = Annotated[str, Depends(get_current_user)]


def get_catalog_cache(request: Request) -> CatalogCache:
    """Get the process catalog cache from the application state."""
    return request.app.state.catalog_cache


def get_statement_runner(database: DatabaseDep, settings: SettingsDep) -> SqlAlchemyStatementRunner:
    """Get a runner bound to the membership warehouse engine, with the query deadline applied."""
    return SqlAlchemyStatementRunner(database.membership_engine, timeout_seconds=settings.query_timeout_seconds)
