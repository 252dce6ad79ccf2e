"""
Exception handlers giving every error the same body::

    {"error_code": "...", "message": "...", "details": {...}}

``ValidationError`` (and ``InvalidStateTransition``) map to 422,
``NotFoundError`` to 404 and ``PersistenceError`` to 503; the details of
the latter name the failed step and the trips to recompute.
"""

import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from fleetops.domain.errors import (
    DispatchError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (PersistenceError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def status_for(exc: DispatchError) -> int:
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _body(error_code: str, message, details=None) -> dict:
    return {"error_code": error_code, "message": message, "details": details or {}}


async def dispatch_exception_handler(request: Request, exc: DispatchError) -> JSONResponse:
    code = status_for(exc)
    if code >= 500:
        logger.warning("%s %s failed: %s %s", request.method, request.url.path, exc.message, exc.details)
    return JSONResponse(
        status_code=code,
        content=jsonable_encoder(_body(exc.error_code, exc.message, exc.details)),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        404: "ERR_NOT_FOUND",
        405: "ERR_METHOD_NOT_ALLOWED",
        500: "ERR_INTERNAL_SERVER",
    }
    return JSONResponse(
        status_code=exc.status_code,
        content=_body(error_code_map.get(exc.status_code, "ERR_UNKNOWN"), exc.detail),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Pydantic request validation errors, in the same envelope."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=jsonable_encoder(
            _body("ERR_VALIDATION", "Validation error", {"errors": exc.errors()})
        ),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DispatchError, dispatch_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
