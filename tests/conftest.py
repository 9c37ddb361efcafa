"""
Test configuration and shared fixtures for the extract builder test suite.
Provides in-memory databases, seeded catalog data and an in-memory warehouse runner.
"""

from typing import Any, Dict, List

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from extract_builder.app import create_app
from extract_builder.catalog.seed import seed_catalog
from extract_builder.core.config import Settings
from extract_builder.core.database import Database
from extract_builder.core.dependencies import get_statement_runner
from tests.support import InMemoryStatementRunner, make_member_rows


@pytest.fixture
def member_rows() -> List[Dict[str, Any]]:
    """60 warehouse rows, more than the 50-row ceiling."""
    return make_member_rows(60)


@pytest.fixture
def runner(member_rows) -> InMemoryStatementRunner:
    return InMemoryStatementRunner(member_rows)


# ===== DATABASE SETUP =====


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        database_url="sqlite://",
        membership_database_url="sqlite://",
        query_timeout_seconds=5.0,
        store_retry_attempts=2,
    )


@pytest.fixture
def database():
    """Config store on an in-memory SQLite engine shared across threads."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    db = Database(engine)
    db.init()
    yield db
    db.shutdown()


@pytest.fixture
def db_session(database):
    session = database.SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def catalog_ids(db_session) -> Dict[str, int]:
    """Seed one line of business with its catalog.

    Select fields: 1 Member ID, 2 Member Name, 3 Date of Birth, 4 Plan Code, 5 Effective Date.
    Criteria fields: 1 MC.STATUS (VARCHAR), 2 M.LAST_NAME (VARCHAR), 3 MC.EFF_DATE (DATE), 4 M.AGE (NUMBER).
    Operators: VARCHAR 1 '=', 2 '!=', 3 'LIKE'; DATE 4 '=', 5 '>', ...; NUMBER 9 '=', ...
    Delimiters: 1 Comma, 2 Pipe, 3 Tab. File formats: 1 CSV, 2 TXT, 3 XLSX.
    """
    return seed_catalog(db_session)


@pytest.fixture
def client(database, catalog_ids, runner, test_settings):
    """Create FastAPI test client around the in-memory stores."""
    app = create_app(database=database, settings=test_settings)
    app.dependency_overrides[get_statement_runner] = lambda: runner

    with TestClient(app) as test_client:
        yield test_client

    # Clean up overrides
    app.dependency_overrides.clear()


# ===== UTILITY FIXTURES =====


@pytest.fixture
def extract_payload(catalog_ids) -> Dict[str, Any]:
    """A new extract selecting Member Name and Effective Date, filtered on active coverage."""
    return {
        "name": "Active Commercial Members",
        "description": "Sample of active large group members",
        "lob_id": catalog_ids["lob_id"],
        "sub_lob_id": catalog_ids["sub_lob_id"],
        "is_public": False,
        "selected_fields": [2, 5],
        "criteria_rows": [{"field_id": 1, "operator_id": 1, "value": "ACTIVE", "connector": None}],
    }
