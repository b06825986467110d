"""
Centralized Error Handling

Maps typed domain exceptions and database errors to consistent JSON
responses: {"error": <code>, "message": <text>, "details": {...}}.
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError, DBAPIError
from typing import Dict, Any
import logging
import traceback

from docshelf.core.exceptions import DocShelfException

logger = logging.getLogger(__name__)

# (exception type, error code, client message, log level), most specific first
DATABASE_ERRORS = (
    (IntegrityError, "integrity_error", "Data integrity violation. Duplicate entry or constraint failed.",
     logging.WARNING),
    (OperationalError, "database_error", "Database connection or operational error.", logging.ERROR),
    (DBAPIError, "database_error", "Database error occurred.", logging.ERROR),
)


class ErrorHandler:
    """Centralized error handling"""

    @staticmethod
    def handle_domain_error(error: DocShelfException) -> Dict[str, Any]:
        """
        Handle typed DocShelf errors

        Client errors are logged at WARNING, collaborator failures at ERROR.
        """
        if error.status_code >= 500:
            logger.error(f"{type(error).__name__}: {error.message}")
        else:
            logger.warning(f"{type(error).__name__}: {error.message}")

        body = {"error": error.error_code, "message": error.message}
        if error.details:
            body["details"] = error.details
        return body

    @staticmethod
    def handle_database_error(error: Exception) -> Dict[str, Any]:
        """
        Handle database errors

        The first matching entry of DATABASE_ERRORS wins; driver details are
        logged but never returned to the client.
        """
        for error_type, code, message, level in DATABASE_ERRORS:
            if isinstance(error, error_type):
                logger.log(level, f"{type(error).__name__}: {error}")
                return {"error": code, "message": message}

        logger.error(f"Unknown database error: {error}")
        return {"error": "unknown", "message": "An unexpected database error occurred."}

    @staticmethod
    def handle_generic_error(error: Exception) -> Dict[str, Any]:
        logger.error(f"Unexpected error: {error}\n{traceback.format_exc()}")
        return {
            "error": "internal_error",
            "message": "An unexpected error occurred. Please try again.",
            "type": type(error).__name__
        }



# Global exception handlers for FastAPI

async def domain_error_handler(request: Request, exc: DocShelfException):
    """FastAPI exception handler for DocShelf errors"""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorHandler.handle_domain_error(exc)
    )


async def integrity_error_handler(request: Request, exc: IntegrityError):
    """Constraint violations are conflicts with existing data"""
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=ErrorHandler.handle_database_error(exc)
    )


async def database_error_handler(request: Request, exc: DBAPIError):
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorHandler.handle_database_error(exc)
    )


async def generic_error_handler(request: Request, exc: Exception):
    """FastAPI exception handler for generic errors"""
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorHandler.handle_generic_error(exc)
    )


def setup_error_handlers(app):
    """
    Setup global error handlers for FastAPI app

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(DocShelfException, domain_error_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(DBAPIError, database_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    logger.info("Error handlers registered")
