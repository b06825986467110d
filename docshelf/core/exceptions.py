"""
Custom exceptions for DocShelf API

Services raise the typed errors below; the handlers registered in
docshelf.utils.error_handlers turn them into JSON responses.
"""

from fastapi import HTTPException, status


class DocShelfException(Exception):
    """Base exception for DocShelf"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "internal_error"

    def __init__(self, message: str = "", details=None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(DocShelfException):
    """Malformed or missing input; operation not attempted"""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "validation_error"


class NotFoundError(DocShelfException):
    """Referenced resource absent or not owned by the caller"""

    status_code = status.HTTP_404_NOT_FOUND
    error_code = "not_found"


class ConflictError(DocShelfException):
    """Request conflicts with current state (cycles, non-empty collections, duplicates)"""

    status_code = status.HTTP_409_CONFLICT
    error_code = "conflict"


class StorageError(DocShelfException):
    """Object storage collaborator failed on a primary write path"""

    status_code = status.HTTP_502_BAD_GATEWAY
    error_code = "storage_error"


class LLMServiceError(DocShelfException):
    """LLM collaborator failed"""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "llm_unavailable"


# HTTP exception helpers
def http_401_unauthorized(detail: str = "Invalid authentication credentials"):
    """Raise 401 Unauthorized"""
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )
