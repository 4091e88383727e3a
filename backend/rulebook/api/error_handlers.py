"""Error Handlers — global exception handlers for the Rulebook API.

Invariants:
    - RulebookError → its to_response() envelope at its http_status
    - RequestValidationError → 400 with the same {error_id, errors[]} envelope
    - Exception (catch-all) → never leaks internal details

Design Decisions:
    - Three-layer handler: domain (RulebookError), validation (Pydantic), catch-all (Exception)
    - Extracted from main.py to keep the app module small
    - Rejections log at warning (client error), store failures at error
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from rulebook.core.errors import RulebookError

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_rulebook_error_handler(app)
    _register_validation_error_handler(app)
    _register_generic_error_handler(app)


def _register_rulebook_error_handler(app: FastAPI) -> None:
    """Register Rulebook domain/infrastructure error handler."""

    @app.exception_handler(RulebookError)
    async def rulebook_error_handler(request: Request, exc: RulebookError):
        """Handle all Rulebook domain/infrastructure errors."""
        level = logging.ERROR if exc.http_status >= 500 else logging.WARNING
        logger.log(
            level,
            f"RulebookError: {exc.message}",
            extra={
                "error_code": exc.code,
                "path": request.url.path,
                "resource_kind": exc.context.resource_kind,
                "resource_id": exc.context.resource_id,
                "operation": exc.context.operation,
            },
        )
        return JSONResponse(
            status_code=exc.http_status, content=exc.to_response(),
        )


def _register_validation_error_handler(app: FastAPI) -> None:
    """Register Pydantic validation error handler."""

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError,
    ):
        """Handle Pydantic validation errors."""
        logger.warning(
            f"Validation error on {request.url.path}: {exc.errors()}",
            extra={"error_code": "INVALID_REQUEST", "path": request.url.path},
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_build_validation_error_response(exc),
        )


def _register_generic_error_handler(app: FastAPI) -> None:
    """Register catch-all error handler."""

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all: never leaks internal details."""
        logger.error(
            f"Unhandled exception on {request.url.path}: {exc}",
            exc_info=True,
            extra={"error_code": "INTERNAL_ERROR", "path": request.url.path},
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error_id": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
            },
        )


def _build_validation_error_response(exc: RequestValidationError) -> dict:
    """Build the multi-error envelope from pydantic errors."""
    return {
        "error_id": "INVALID_REQUEST",
        "errors": [
            {
                "id": e["type"],
                "field": ".".join(str(loc) for loc in e["loc"] if loc != "body"),
                "message": e["msg"],
            }
            for e in exc.errors()
        ],
    }
