# extract_builder/logging/exception_handlers.py
"""Exception handlers that persist errors to the ``log`` table and return JSON bodies."""

import json
import logging
import traceback
from datetime import datetime
from typing import Any, Optional

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError, ResponseValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from extract_builder.core.exceptions import ExtractBuilderError
from extract_builder.logging.middleware import current_hostname, current_username
from extract_builder.logging.models import Log

logger = logging.getLogger(__name__)

USERNAME = current_username()
HOSTNAME = current_hostname()


def safe_json_dumps(obj: Any) -> str:
    return json.dumps(obj, indent=2, default=str)


def _write_log(request: Request, status_code: int, response_body: str, error_kind: Optional[str] = None) -> None:
    """Persist an error entry; a failing log write is reported but never masks the original error."""
    database = getattr(request.app.state, "database", None)
    if database is None:
        return
    try:
        with database.session() as session:
            session.add(
                Log(
                    timestamp=datetime.now(),
                    method=request.method,
                    path=str(request.url.path),
                    status_code=status_code,
                    error_kind=error_kind,
                    client_ip=request.client.host if request.client else None,
                    request_headers=json.dumps(dict(request.headers)),
                    request_body=getattr(request.state, "body", None),
                    response_body=response_body,
                    processing_time=None,
                    user_agent=request.headers.get("user-agent"),
                    username=USERNAME,
                    hostname=HOSTNAME,
                    application_id=request.app.state.settings.application_id,
                )
            )
            session.commit()
    except SQLAlchemyError as log_error:
        logger.error(f"Error logging exception: {log_error}")


async def extract_builder_error_handler(request: Request, exc: ExtractBuilderError):
    """Domain errors: stable kind plus message, never a traceback."""
    if exc.status_code >= 500:
        logger.warning(f"{exc.kind} on {request.method} {request.url.path}: {exc.message}", exc_info=exc.__cause__)
    _write_log(request, exc.status_code, safe_json_dumps(exc.to_dict()), error_kind=exc.kind)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def general_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions and log them to database."""
    error_traceback = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}\n{error_traceback}")
    _write_log(
        request,
        500,
        safe_json_dumps({"error": str(exc), "type": type(exc).__name__, "traceback": error_traceback}),
        error_kind="INTERNAL_ERROR",
    )
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error", "kind": "INTERNAL_ERROR"})


async def response_validation_exception_handler(request: Request, exc: ResponseValidationError):
    _write_log(request, 500, safe_json_dumps(exc.errors()), error_kind="RESPONSE_VALIDATION")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error: Response validation failed.", "kind": "INTERNAL_ERROR"},
    )


async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors."""
    _write_log(request, 422, safe_json_dumps(exc.errors()), error_kind="VALIDATION_FAILURE")

    # Convert errors to a safe format for JSON response
    def convert_error(error):
        if isinstance(error, dict):
            return {k: convert_error(v) for k, v in error.items()}
        if isinstance(error, list):
            return [convert_error(item) for item in error]
        return str(error)

    return JSONResponse(status_code=422, content={"detail": convert_error(exc.errors()), "kind": "VALIDATION_FAILURE"})


async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions and log 4xx/5xx errors."""
    if exc.status_code >= 400:
        _write_log(
            request,
            exc.status_code,
            safe_json_dumps({"detail": exc.detail, "headers": getattr(exc, "headers", None)}),
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )
