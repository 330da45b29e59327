"""Middleware configuration for dashboard API.

This module sets up middleware for request logging and for translating
engine errors into HTTP responses.
"""

import logging
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from fastapi.responses import JSONResponse

from src.domain.ports import InvalidArgumentError, SnapshotError

logger = logging.getLogger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for request/response logging."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Log request and response details.

        Parameters:
            request: Incoming HTTP request
            call_next: Next middleware or route handler

        Returns:
            Response: HTTP response with X-Process-Time header
        """
        start_time = time.time()

        logger.info(
            f"{request.method} {request.url.path} - "
            f"Client: {request.client.host if request.client else 'unknown'}"
        )

        try:
            response = await call_next(request)
            process_time = time.time() - start_time

            response.headers["X-Process-Time"] = f"{process_time:.3f}"

            logger.info(
                f"{request.method} {request.url.path} - "
                f"Status: {response.status_code} - "
                f"Time: {process_time:.3f}s"
            )

            return response

        except Exception as e:
            process_time = time.time() - start_time
            logger.error(
                f"{request.method} {request.url.path} - "
                f"Error: {str(e)} - "
                f"Time: {process_time:.3f}s",
                exc_info=True
            )

            return JSONResponse(
                status_code=500,
                content={
                    "error": "Internal server error",
                    "detail": "An unexpected error occurred"
                }
            )


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Middleware for global error handling.

    Error mapping:
        - InvalidArgumentError (unknown unit, period, dimension, ...): 422
        - SnapshotError (export missing or unreadable): 503
        - Other ValueError: 400
        - Anything else: 500, details only in the logs
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Handle errors globally.

        Parameters:
            request: Incoming HTTP request
            call_next: Next middleware or route handler

        Returns:
            Response: HTTP response with error details if exception occurred
        """
        try:
            return await call_next(request)
        except InvalidArgumentError as e:
            logger.warning(f"Invalid argument: {str(e)}")
            return JSONResponse(
                status_code=422,
                content={"error": "Invalid argument", "detail": str(e)}
            )
        except SnapshotError as e:
            logger.error(f"Snapshot unavailable: {str(e)}")
            return JSONResponse(
                status_code=503,
                content={"error": "Snapshot unavailable", "detail": str(e)}
            )
        except ValueError as e:
            logger.warning(f"Validation error: {str(e)}")
            return JSONResponse(
                status_code=400,
                content={"error": "Bad Request", "detail": str(e)}
            )
        except Exception as e:
            logger.error(f"Unexpected error: {str(e)}", exc_info=True)
            return JSONResponse(
                status_code=500,
                content={
                    "error": "Internal server error",
                    "detail": "An unexpected error occurred. Please check logs for details."
                }
            )


def setup_middleware(app) -> None:
    """Setup application middleware.

    Parameters:
        app: FastAPI application instance

    Middleware Order (important):
        1. ErrorHandlingMiddleware - Handles errors
        2. LoggingMiddleware - Logs requests/responses
    """
    # Error handling (before logging to catch errors)
    app.add_middleware(ErrorHandlingMiddleware)

    # Logging (last, to log everything including errors)
    app.add_middleware(LoggingMiddleware)
