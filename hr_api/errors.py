"""
HTTP error mapping (``hr_api.errors``).

Every ``HRKernelError`` leaves the API as::

    {"detail": {"code": "...", "message": "...", "details": {...}}}

with the status chosen by error family:

=====================  ======
Family                 Status
=====================  ======
InvalidInputError      400
NotFoundError          404
ConflictError          409
ImmutabilityError      409
PreconditionError      422
=====================  ======

Request body validation failures answer ``422 VALIDATION_ERROR``.  Anything
else is logged with the request path and answered ``500 SERVER_ERROR``; the
exception text is only exposed when the app runs in debug mode.
"""

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from hr_kernel.exceptions import (
    ConflictError,
    HRKernelError,
    ImmutabilityError,
    InvalidInputError,
    NotFoundError,
    PreconditionError,
)
from hr_kernel.logging_config import get_logger

logger = get_logger("api.errors")

_STATUS_BY_FAMILY: tuple[tuple[type[HRKernelError], int], ...] = (
    (InvalidInputError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (ImmutabilityError, status.HTTP_409_CONFLICT),
    (PreconditionError, status.HTTP_422_UNPROCESSABLE_ENTITY),
)

_CODE_BY_STATUS = {
    400: "INVALID_INPUT",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    501: "NOT_IMPLEMENTED",
}


def status_for(exc: HRKernelError) -> int:
    for family, status_code in _STATUS_BY_FAMILY:
        if isinstance(exc, family):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_response(
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    content: dict[str, Any] = {"detail": {"code": code, "message": message}}
    if details:
        content["detail"]["details"] = jsonable_encoder(details)
    return JSONResponse(status_code=status_code, content=content)


async def hr_error_handler(request: Request, exc: HRKernelError) -> JSONResponse:
    status_code = status_for(exc)
    payload = exc.to_dict()
    log = logger.warning if status_code < 500 else logger.error
    log(
        "request_rejected",
        extra={
            "path": request.url.path,
            "method": request.method,
            "status_code": status_code,
            "error_code": exc.code,
        },
    )
    return error_response(status_code, payload["code"], payload["message"], payload["details"])


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    logger.warning(
        "request_validation_failed",
        extra={"path": request.url.path, "method": request.method, "errors": errors},
    )
    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "VALIDATION_ERROR",
        "Request validation failed",
        {"errors": errors},
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return error_response(
        exc.status_code,
        _CODE_BY_STATUS.get(exc.status_code, "HTTP_ERROR"),
        message,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "request_crashed",
        extra={"path": request.url.path, "method": request.method},
        exc_info=exc,
    )
    details = None
    if getattr(request.app.state, "debug", False):
        details = {"exception": type(exc).__name__, "reason": str(exc)}
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "SERVER_ERROR",
        "An unexpected error occurred",
        details,
    )


def setup_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(HRKernelError, hr_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
