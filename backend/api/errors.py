"""
Translation of domain errors into HTTP errors.
"""
import logging

from fastapi import HTTPException

from domain.errors import PlacePulseError

logger = logging.getLogger(__name__)

UNEXPECTED_ERROR_DETAIL = "Unexpected server error"


def to_http_exception(exc: Exception) -> HTTPException:
    """Map a caught exception to an HTTPException without leaking internals."""
    if isinstance(exc, HTTPException):
        return exc
    if isinstance(exc, PlacePulseError):
        return HTTPException(status_code=exc.status_code, detail=exc.message)
    logger.error("Unhandled error: %r", exc, exc_info=exc)
    return HTTPException(status_code=500, detail=UNEXPECTED_ERROR_DETAIL)
