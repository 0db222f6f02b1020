# storefront/core/errors.py
"""
Error types shared by services and routers.

Services raise these instead of HTTPException so the same code paths can be
driven from tests without FastAPI. `register_exception_handlers` renders them
as `{"detail": "..."}` responses, the same body shape HTTPException produces.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class StorefrontError(Exception):
    """Base class: one human-readable message plus an HTTP status."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_body(self) -> dict:
        return {"detail": self.message}


class InvalidInput(StorefrontError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(StorefrontError):
    status_code = status.HTTP_404_NOT_FOUND


class PayloadTooLarge(StorefrontError):
    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE


class ProductValidationError(StorefrontError):
    """First violated product rule; aborts the submit, keeps the draft."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field

    def to_body(self) -> dict:
        return {"detail": self.message, "field": self.field}


class ServiceError(StorefrontError):
    """A Supabase data/storage/auth call failed (network, permission, conflict)."""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, message: str, code: str | None = None, status_code: int | None = None):
        super().__init__(message, status_code)
        self.code = code

    def to_body(self) -> dict:
        body = {"detail": self.message}
        if self.code:
            body["code"] = self.code
        return body


class AccessDenied(StorefrontError):
    """Wrong front-door access password."""

    status_code = status.HTTP_401_UNAUTHORIZED


class AccessLocked(StorefrontError):
    """Admin panel reached before the access password was accepted."""

    status_code = status.HTTP_423_LOCKED


class AuthenticationRequired(StorefrontError):
    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationDenied(StorefrontError):
    """Valid account session, but no admin role."""

    status_code = status.HTTP_403_FORBIDDEN


class InvalidTransition(StorefrontError):
    """Event not allowed in the current workflow state."""

    status_code = status.HTTP_409_CONFLICT


async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StorefrontError, storefront_error_handler)
