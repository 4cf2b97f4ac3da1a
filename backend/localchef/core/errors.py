"""
localchef/core/errors.py - Error taxonomy shared by the gate, the store and the routers.

Every failure a request can end with is one of these classes. They subclass
FastAPI's HTTPException so a router can simply `raise Forbidden("...")`, and the
handlers below render them as `{"message": ..., "error": <taxonomy name>}`.
"""
import logging
from typing import Dict, Iterable, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger("localchef.errors")


class AppError(HTTPException):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Server error"

    def __init__(self, message: Optional[str] = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(status_code=self.status_code, detail=message or self.default_message, headers=headers)

    @property
    def code(self) -> str:
        # specialised errors (StoreError, PaymentError, ...) report their taxonomy class
        for klass in type(self).__mro__:
            if AppError in klass.__bases__:
                return klass.__name__
        return "Internal"

    @property
    def message(self) -> str:
        return self.detail


class Unauthenticated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized Access!"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden!"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class InvalidArgument(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class Internal(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Server error"


class ConfigurationError(RuntimeError):
    """Raised at startup when the app is wired inconsistently."""


def _error_body(code: str, message: str) -> dict:
    return {"message": message, "error": code}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if isinstance(exc, Internal):
        # the message of an Internal error is already generic; the cause was logged where it was raised
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.code, exc.message),
        headers=exc.headers,
    )


def describe_validation_errors(errors: Iterable[dict]) -> str:
    """First validation error as `field: reason`; the location prefix (body, query, path) is dropped."""
    err = next(iter(errors), {})
    loc = list(err.get("loc", ()))
    if loc and loc[0] in ("body", "query", "path"):
        loc = loc[1:]
    where = ".".join(str(part) for part in loc)
    message = err.get("msg", InvalidArgument.default_message)
    return f"{where}: {message}" if where else str(message)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = InvalidArgument(describe_validation_errors(exc.errors()))
    return JSONResponse(status_code=error.status_code, content=_error_body(error.code, error.message))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("Internal", Internal.default_message),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
