"""
Map domain exceptions to HTTP responses.

Every domain error becomes ``{"error": "<message>"}`` with its status code.
Anything unexpected is logged with its traceback and answered with a generic
500 so internals never reach the caller.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from usermgmt.domain.admin_floor import InvariantViolation
from usermgmt.services.auth_service import InvalidCredentialsError, RegistrationClosedError
from usermgmt.services.session_service import ForbiddenError, UnauthorizedError, carry_reissued_cookie
from usermgmt.services.user_service import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger("usermgmt.errors")

STATUS_BY_ERROR: tuple[tuple[type[Exception], int], ...] = (
    (UnauthorizedError, 401),
    (InvalidCredentialsError, 401),
    (ForbiddenError, 403),
    (RegistrationClosedError, 403),
    (ValidationError, 400),
    (InvariantViolation, 400),
    (NotFoundError, 404),
    (ConflictError, 409),
)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _status_for(exc: Exception) -> int:
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


async def domain_error_handler(request: Request, exc: Exception) -> JSONResponse:
    status_code = _status_for(exc)
    message = getattr(exc, "message", None) or str(exc)
    logger.warning("%s %s -> %s: %s", request.method, request.url.path, status_code, message)
    response = _error(status_code, message)
    carry_reissued_cookie(request, response)
    return response


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("%s %s -> 400: malformed request %s", request.method, request.url.path, exc.errors())
    return _error(400, "Invalid request body")


async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return _error(500, "Internal Server Error")


def register_exception_handlers(app: FastAPI) -> None:
    for error_type, _status in STATUS_BY_ERROR:
        app.add_exception_handler(error_type, domain_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, internal_error_handler)
