"""Uniform error bodies: ``{error, message, details?, timestamp, request_id}``."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Sequence

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from playlog.models import ErrorDetail, ErrorResponse
from playlog.services.errors import (
    ConflictError,
    NotFoundError,
    OperationError,
    ServiceError,
    ServiceValidationError,
)

logger = logging.getLogger("playlog.errors")

REQUEST_ID_HEADER = "X-Request-Id"

_ERROR_CODES = {
    400: "bad_request",
    401: "authentication_required",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    422: "validation_error",
    500: "internal_error",
}

_SERVICE_STATUS = (
    (NotFoundError, 404),
    (ConflictError, 409),
    (ServiceValidationError, 422),
    (OperationError, 500),
)


def error_code_for(status_code: int) -> str:
    return _ERROR_CODES.get(status_code, "error")


def _request_id(request: Request) -> str:
    state = getattr(request, "state", None)
    return getattr(state, "request_id", None) or uuid.uuid4().hex


def _field_path(loc: Sequence[Any]) -> str:
    parts = [str(p) for p in loc if p not in ("body", "query", "path", "header")]
    return ".".join(parts) or "request"


def error_response(
    request: Request,
    status_code: int,
    message: str,
    details: list[ErrorDetail] | None = None,
) -> JSONResponse:
    request_id = _request_id(request)
    body = ErrorResponse(
        error=error_code_for(status_code),
        message=message,
        details=details,
        timestamp=datetime.now(timezone.utc).isoformat(),
        request_id=request_id,
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(),
        headers={REQUEST_ID_HEADER: request_id},
    )


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {message}")
    return error_response(request, exc.status_code, message)


async def handle_service_error(request: Request, exc: ServiceError) -> JSONResponse:
    """Service errors a router did not translate itself."""
    status_code = next(
        (code for cls, code in _SERVICE_STATUS if isinstance(exc, cls)), 500
    )
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return error_response(request, status_code, str(exc) or "Request failed")


async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = [
        ErrorDetail(field=_field_path(e.get("loc", ())), message=e.get("msg", "Invalid value"))
        for e in exc.errors()
    ]
    return error_response(request, 422, "Invalid request data", details or None)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error: %s", exc)
    return error_response(request, 500, "An unexpected error occurred")


def register_exception_handlers(app) -> None:
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(ServiceError, handle_service_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)


async def request_id_middleware(request: Request, call_next):  # type: ignore[no-untyped-def]
    if not getattr(request.state, "request_id", None):
        request.state.request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    response = await call_next(request)
    response.headers.setdefault(REQUEST_ID_HEADER, request.state.request_id)
    return response
