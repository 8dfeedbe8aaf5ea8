# backend/core/errors.py
"""
Error types shared by the store, the generative client and the routers.

Validation problems are not errors here: they are returned to the caller as
field messages / notifications and never logged as failures.
"""
import logging
from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse

log = logging.getLogger(__name__)

RATE_LIMIT_STATUS = 429


class AppError(Exception):
    """Base exception for all application errors."""
    status_code = 500

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class GenerationError(AppError):
    """Transport failure talking to the generative model."""
    status_code = 502

    def __init__(self, message: str, status: Optional[int] = None, details: Optional[dict] = None):
        super().__init__(message, details)
        self.status = status

    @property
    def is_rate_limited(self) -> bool:
        return self.status == RATE_LIMIT_STATUS or str(RATE_LIMIT_STATUS) in self.message


class StoreError(AppError):
    """Transport / integrity failure talking to the document store."""
    status_code = 503


class NotFoundError(AppError):
    status_code = 404


# ---------------------------
# FastAPI exception handlers
# ---------------------------

async def app_error_handler(request: Request, exc: AppError):
    log.warning("app error on %s: %s", request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, **({"details": exc.details} if exc.details else {})},
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    log.error("unhandled exception on %s: %s", request.url.path, exc, exc_info=True)
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})
