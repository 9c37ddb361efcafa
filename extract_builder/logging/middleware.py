# extract_builder/logging/middleware.py
"""Request logging middleware writing each API call to the ``log`` table."""

import getpass
import json
import logging
import os
import platform
import socket
import time
from datetime import datetime
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.background import BackgroundTask, BackgroundTasks
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from extract_builder.core.config import get_settings
from extract_builder.logging.models import Log

logger = logging.getLogger(__name__)

# Paths that should never be logged
EXCLUDED_PATHS = ("/api/logs", "/api/health", "/api/docs", "/api/openapi.json")


def chain_background(existing: Optional[BackgroundTask], task: BackgroundTask) -> BackgroundTask:
    """Run ``task`` after whatever background work the response already carries."""
    if existing is None:
        return task
    return BackgroundTasks(tasks=[existing, task])


def current_username() -> str:
    try:
        return os.environ.get("USER") or os.environ.get("USERNAME") or getpass.getuser() or "unknown_user"
    except (KeyError, OSError):
        return "unknown_user"


def current_hostname() -> str:
    try:
        return socket.gethostname() or platform.node() or "unknown_host"
    except OSError:
        return "unknown_host"


class LoggingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, application_id: str = None):
        super().__init__(app)
        self.username = current_username()
        self.hostname = current_hostname()
        self.application_id = application_id or get_settings().application_id
        logger.info(
            f"Logging middleware initialized with username: {self.username} on host: {self.hostname}, "
            f"App ID: {self.application_id}"
        )

    async def dispatch(self, request: Request, call_next: Callable):
        if any(request.url.path.startswith(path) for path in EXCLUDED_PATHS):
            return await call_next(request)

        start_time = time.time()

        body_bytes = await request.body()
        request_body = body_bytes.decode("utf-8", errors="ignore")

        # Reconstruct stream
        async def receive() -> dict:
            return {"type": "http.request", "body": body_bytes}

        request = Request(request.scope, receive=receive)
        request.state.body = request_body
        response = await call_next(request)
        duration_ms = (time.time() - start_time) * 1000
        status_code = response.status_code

        response_body = b""
        if isinstance(response, Response) and hasattr(response, "body"):
            response_body = response.body
        elif hasattr(response, "body_iterator"):
            # Streaming response: buffer chunks as they are sent
            original_iterator = response.body_iterator
            chunks = []

            async def buffer_iterator():
                nonlocal response_body
                async for chunk in original_iterator:
                    chunks.append(chunk)
                    yield chunk
                response_body = b"".join(chunks)

            response.body_iterator = buffer_iterator()

        content_type = response.headers.get("content-type", "")
        is_binary = "spreadsheetml" in content_type
        database = request.app.state.database

        def log_to_db():
            if is_binary:
                body_to_log = "[Binary export not logged]"
            elif response_body:
                body_to_log = response_body.decode("utf-8", errors="ignore")
            else:
                body_to_log = "[Response body not available]"

            with database.session() as session:
                session.add(
                    Log(
                        timestamp=datetime.now(),
                        method=request.method,
                        path=str(request.url.path),
                        status_code=status_code,
                        client_ip=request.client.host if request.client else None,
                        request_headers=json.dumps(dict(request.headers)),
                        request_body=request_body,
                        response_body=body_to_log,
                        processing_time=duration_ms,
                        user_agent=request.headers.get("user-agent"),
                        username=self.username,
                        hostname=self.hostname,
                        application_id=self.application_id,
                    )
                )
                session.commit()

        response.background = chain_background(getattr(response, "background", None), BackgroundTask(log_to_db))
        return response
