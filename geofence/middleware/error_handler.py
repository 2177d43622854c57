"""
Global error handling middleware.
"""
import logging
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from typing import Callable

from geofence.domain.errors import (
    DuplicateTerritory,
    GeofenceError,
    InsufficientVertices,
    InvalidSessionState,
    NotFound,
    SelfIntersecting,
    TooFewVertices,
    VertexIndexError,
)
from geofence.infrastructure.plan_client import ExternalAPIError


logger = logging.getLogger(__name__)

# Geometry and lifecycle conflicts: the client is expected to keep editing
CONFLICT_ERRORS = (
    InsufficientVertices,
    SelfIntersecting,
    TooFewVertices,
    InvalidSessionState,
    DuplicateTerritory,
)


def _error_response(status_code: int, error: str, detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "detail": detail,
        }
    )


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware.

    Catches unhandled exceptions and returns consistent error responses.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        """
        Process the request and handle any exceptions.

        Args:
            request: The incoming request
            call_next: The next middleware or route handler

        Returns:
            Response object
        """
        extra = {
            "path": request.url.path,
            "method": request.method,
        }
        try:
            response = await call_next(request)
            return response

        except NotFound as e:
            # Ids handed out by this service should always resolve
            logger.error(f"Lookup failed: {e.message}", extra=extra)
            return _error_response(status.HTTP_404_NOT_FOUND, "Not found", e.message)

        except CONFLICT_ERRORS as e:
            logger.info(f"Rejected edit: {e.message}", extra=extra)
            return _error_response(
                status.HTTP_409_CONFLICT, type(e).__name__, e.message
            )

        except VertexIndexError as e:
            logger.warning(f"Bad vertex index: {e.message}", extra=extra)
            return _error_response(
                status.HTTP_400_BAD_REQUEST, "Invalid vertex index", e.message
            )

        except GeofenceError as e:
            logger.warning(f"Domain error: {e.message}", extra=extra)
            return _error_response(status.HTTP_400_BAD_REQUEST, "Invalid request", e.message)

        except ExternalAPIError as e:
            logger.error(
                f"External API error: {str(e)}",
                extra={**extra, "status_code": e.status_code},
            )
            # Pass through the original status code from the external API
            return _error_response(e.status_code, "External API error", e.message)

        except ValueError as e:
            # Log validation errors
            logger.warning(f"Validation error: {str(e)}", extra=extra)
            return _error_response(status.HTTP_400_BAD_REQUEST, "Invalid request", str(e))

        except Exception as e:
            # Log unexpected errors
            logger.exception(f"Unhandled exception: {str(e)}", extra=extra)
            return _error_response(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "Internal server error",
                "An unexpected error occurred",
            )
