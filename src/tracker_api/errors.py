"""API-side errors and the handlers that render every error as {success: false, error}."""

import logging
from typing import Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from database.exceptions import TrackerError

logger = logging.getLogger(__name__)


class PeerUnavailable(TrackerError):
    """The peer API could not be reached or answered with a non-2xx status.

    Carries the peer's status code when one was received.
    """

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, status_code)
        self.peer_status_code = status_code


class ConfigurationError(TrackerError):
    """Invalid startup configuration. The process exits before serving."""


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


async def handle_tracker_errors(request: Request, exc: TrackerError) -> JSONResponse:
    """Render store and peer errors with their own status code."""
    logger.error(f"{request.method} {request.url.path} failed ({exc.status_code}): {exc.message}")
    return error_response(exc.status_code, exc.message)


async def handle_request_validation_errors(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies are caller-correctable: 400, not 422."""
    details = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'] if part != 'body')}: {error['msg']}"
        for error in exc.errors()
    )
    logger.warning(f"Invalid request to {request.url.path}: {details}")
    return error_response(status.HTTP_400_BAD_REQUEST, f"Invalid request: {details}")


async def handle_broad_exceptions(request: Request, call_next):
    """Handle any exception that propagates during the request/response cycle."""
    try:
        return await call_next(request)
    except Exception as exc:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")
