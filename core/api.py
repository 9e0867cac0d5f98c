"""API utilities for FastAPI route handling."""

import functools
import logging
from collections.abc import Callable

from fastapi import HTTPException, status

from core.exceptions import (
    AuthenticationException,
    BikeshareException,
    DuplicateResourceException,
    ExternalServiceException,
    RateLimitException,
    ResourceNotFoundException,
    ValidationException,
)

# Checked in order; subclasses must precede their bases.
ERROR_STATUS_MAP: tuple[tuple[type[BikeshareException], int, int], ...] = (
    (ValidationException, status.HTTP_400_BAD_REQUEST, logging.WARNING),
    (ResourceNotFoundException, status.HTTP_404_NOT_FOUND, logging.INFO),
    (DuplicateResourceException, status.HTTP_409_CONFLICT, logging.WARNING),
    (AuthenticationException, status.HTTP_401_UNAUTHORIZED, logging.WARNING),
    (RateLimitException, status.HTTP_429_TOO_MANY_REQUESTS, logging.WARNING),
    (ExternalServiceException, status.HTTP_502_BAD_GATEWAY, logging.ERROR),
)


def status_for_exception(exc: BikeshareException) -> tuple[int, int]:
    """Return the (HTTP status, log level) for an application error."""
    for exc_type, status_code, level in ERROR_STATUS_MAP:
        if isinstance(exc, exc_type):
            return status_code, level
    return status.HTTP_500_INTERNAL_SERVER_ERROR, logging.ERROR


def api_route(logger: logging.Logger):
    """
    Decorator for FastAPI endpoints that provides standardized error handling.

    HTTPException passes through untouched. Application errors are mapped to
    a status code via ``ERROR_STATUS_MAP``; anything else becomes a 500.

    Usage:
        @router.get("/api/example")
        @api_route(logger)
        async def my_endpoint():
            return result
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except HTTPException:
                raise
            except BikeshareException as e:
                status_code, level = status_for_exception(e)
                logger.log(
                    level,
                    "%s in %s: %s",
                    type(e).__name__,
                    func.__name__,
                    e.message,
                    exc_info=level >= logging.ERROR,
                )
                detail = e.message
                if isinstance(e, ExternalServiceException) and not isinstance(
                    e, RateLimitException
                ):
                    detail = f"External service error: {e.message}"
                raise HTTPException(status_code=status_code, detail=detail) from e
            except Exception as e:
                logger.exception("Unexpected error in %s", func.__name__)
                raise HTTPException(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    detail=str(e),
                ) from e

        return wrapper

    return decorator
