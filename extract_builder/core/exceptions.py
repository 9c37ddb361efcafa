# extract_builder/core/exceptions.py
"""Error taxonomy surfaced to API callers with a stable machine-readable kind."""

from typing import Optional


class ExtractBuilderError(Exception):
    """Base error: carries a kind, a human message and the HTTP status it maps to."""

    kind = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, kind: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind

    def to_dict(self) -> dict:
        return {"detail": self.message, "kind": self.kind}


class AccessDenied(ExtractBuilderError):
    """Extract missing or not visible to the requester. Both causes look the same."""

    kind = "ACCESS_DENIED"
    status_code = 404

    def __init__(self, message: str = "Extract not found or access denied"):
        super().__init__(message)


class ValidationFailure(ExtractBuilderError):
    kind = "VALIDATION_FAILURE"
    status_code = 422


class CompileFailure(ExtractBuilderError):
    """A selected field or criteria row points at catalog data that no longer exists."""

    kind = "COMPILE_FAILURE"
    status_code = 422


class ExecutionFailure(ExtractBuilderError):
    """The warehouse rejected the generated statement."""

    kind = "EXECUTION_FAILURE"
    status_code = 400


class TransientStoreFailure(ExtractBuilderError):
    """Connection or pool exhaustion; safe to retry later."""

    kind = "TRANSIENT_STORE_FAILURE"
    status_code = 503


class QueryTimeout(TransientStoreFailure):
    kind = "QUERY_TIMEOUT"
    status_code = 504


class VersionConflict(ExtractBuilderError):
    """The extract changed since the caller last read it."""

    kind = "VERSION_CONFLICT"
    status_code = 409
