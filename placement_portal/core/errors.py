"""
Domain errors raised by the service layer.

Services never raise HTTPException; main.py maps these to HTTP responses
through `register_exception_handlers`.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class PortalError(Exception):
    """Base class for every service-layer error."""

    status_code = 500

    def __init__(self, message: str = "Something went wrong, please try again"):
        super().__init__(message)
        self.message = message


class NotFoundError(PortalError):
    status_code = 404


class ValidationError(PortalError):
    status_code = 400


class InvalidStatusError(ValidationError):
    """Status string outside the known enum."""


class InvalidTokenError(ValidationError):
    pass


class DuplicateApplicationError(PortalError):
    status_code = 409

    def __init__(self, message: str = "Already applied to this job"):
        super().__init__(message)


class StorageError(PortalError):
    """Object storage rejected or failed a request."""

    status_code = 502


class AuthenticationError(PortalError):
    status_code = 401


class PermissionDeniedError(PortalError):
    status_code = 403


async def portal_error_handler(request: Request, exc: PortalError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PortalError, portal_error_handler)
