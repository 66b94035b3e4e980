"""
Errors and global error handlers.

Every failure a client can see is rendered as the same envelope:
{"success": false, "error": "<message>"}. Handlers raise the typed errors
below; anything else is turned into a generic 500 by the catch-all handler.
"""

import logging
from contextlib import contextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class RideBiteError(Exception):
    """Base class for errors that map to an HTTP response."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_response(self) -> dict:
        return {"success": False, "error": self.message}


class BadRequestError(RideBiteError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(RideBiteError):
    status_code = status.HTTP_404_NOT_FOUND


class ServerError(RideBiteError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


@contextmanager
def handle_store_errors(message: str):
    """Convert unexpected failures inside a handler into a ServerError."""
    try:
        yield
    except RideBiteError:
        raise
    except Exception as exc:
        logger.exception(message)
        raise ServerError(message) from exc


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""

    @app.exception_handler(RideBiteError)
    async def ridebite_error_handler(request: Request, exc: RideBiteError):
        if exc.status_code >= 500:
            logger.error(f"{exc.message} on {request.url.path}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_response())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "success": False,
                "error": "Invalid request data",
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in e["loc"]),
                        "message": e["msg"],
                    }
                    for e in exc.errors()
                ],
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            content = {"success": False, "error": "Route not found", "path": request.url.path}
        else:
            content = {"success": False, "error": str(exc.detail)}
        return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all, never leaks internal details."""
        logger.error(f"Server error on {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": "Internal server error"},
        )
