# extract_builder/logging/router.py
"""API routers for request logs and service health."""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from extract_builder.core.dependencies import DatabaseDep, SessionDep
from extract_builder.logging.dao import LogDAO
from extract_builder.logging.schemas import HealthRead, LogRead
from extract_builder.logging.service import LogService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/logs", tags=["logs"])
health_router = APIRouter(tags=["health"])


# ===== DEPENDENCY INJECTION =====

def get_log_dao(session: SessionDep) -> LogDAO:
    """Get LogDAO instance."""
    return LogDAO(session)


def get_log_service(log_dao: LogDAO = Depends(get_log_dao)) -> LogService:
    """Get LogService instance."""
    return LogService(log_dao)


# ===== LOG RETRIEVAL ENDPOINTS =====

@router.get("", response_model=List[LogRead])
def get_logs(
    response: Response,
    limit: int = Query(50, ge=1, le=1000, description="Maximum number of logs to return"),
    offset: int = Query(0, ge=0, description="Number of logs to skip"),
    hours: int = Query(24, ge=1, le=168, description="Time window in hours"),
    status_min: Optional[int] = Query(None, ge=100, le=599, description="Minimum status code"),
    status_max: Optional[int] = Query(None, ge=100, le=599, description="Maximum status code"),
    search: Optional[str] = Query(None, description="Search term for filtering logs"),
    log_service: LogService = Depends(get_log_service),
) -> List[LogRead]:
    """Get logs with pagination and filtering."""
    if status_min is not None and status_max is not None and status_min > status_max:
        raise HTTPException(status_code=400, detail="status_min cannot be greater than status_max")

    logs = log_service.get_logs_with_filters(
        limit=limit, offset=offset, hours=hours, status_min=status_min, status_max=status_max, search=search
    )
    total_count = log_service.get_logs_count_with_filters(
        hours=hours, status_min=status_min, status_max=status_max, search=search
    )

    # Set pagination headers
    response.headers["X-Total-Count"] = str(total_count)
    response.headers["X-Page-Size"] = str(limit)
    response.headers["X-Page-Offset"] = str(offset)
    return logs


@router.get("/errors", response_model=List[LogRead])
def get_error_logs(
    hours: int = Query(24, ge=1, le=168, description="Time window in hours"),
    limit: int = Query(100, ge=1, le=500, description="Maximum number of error logs"),
    log_service: LogService = Depends(get_log_service),
) -> List[LogRead]:
    """Get error logs (4xx and 5xx status codes)."""
    return log_service.get_error_logs(hours=hours, limit=limit)


@router.get("/{log_id}", response_model=LogRead)
def get_log_by_id(log_id: int, log_service: LogService = Depends(get_log_service)) -> LogRead:
    log = log_service.get_by_id(log_id)
    if not log:
        raise HTTPException(status_code=404, detail="Log not found")
    return log


# ===== HEALTH CHECK ENDPOINT =====

@health_router.get("/health", response_model=HealthRead)
def health_check(database: DatabaseDep):
    """Report whether the config store answers queries."""
    timestamp = datetime.now()
    try:
        database.ping()
    except SQLAlchemyError as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "timestamp": timestamp.isoformat(),
                "database": {"connected": False, "error": str(e)},
            },
        )
    return HealthRead(status="healthy", timestamp=timestamp, database={"connected": True})
