"""HTTP utilities shared across the Inkwell service stack."""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any, Final, Sequence
from uuid import UUID, uuid4

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from .models.errors import ErrorResponse
from .service_errors import DEFAULT_ERROR_DEFINITION, ServiceError

LOGGER = logging.getLogger(__name__)

TRACE_ID_HEADER: Final[str] = "x-trace-id"
_TRACE_ID_CONTEXT: ContextVar[str] = ContextVar("inkwell_trace_id", default="")

# Validation failures raised by our own model validators carry a user-facing message.
_USER_FACING_ERROR_TYPES: Final[frozenset[str]] = frozenset(
    {"missing_instruction_or_model", "selection_empty"}
)

DEFAULT_ERROR_RESPONSES: Final[dict[int | str, dict[str, Any]]] = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
}

REWRITE_ERROR_RESPONSES: Final[dict[int | str, dict[str, Any]]] = {
    **DEFAULT_ERROR_RESPONSES,
    status.HTTP_409_CONFLICT: {"model": ErrorResponse},
    status.HTTP_502_BAD_GATEWAY: {"model": ErrorResponse},
    status.HTTP_504_GATEWAY_TIMEOUT: {"model": ErrorResponse},
}


def default_error_responses() -> dict[int | str, dict[str, Any]]:
    """Return a copy of the default error response mapping for routers."""

    return {status_code: dict(schema) for status_code, schema in DEFAULT_ERROR_RESPONSES.items()}


def resolve_trace_id(candidate: str | None) -> str:
    """Return a valid UUID string, preferring the provided candidate."""

    if candidate:
        try:
            UUID(candidate)
            return candidate
        except ValueError:
            LOGGER.debug("Ignoring invalid trace identifier: %s", candidate)
    return str(uuid4())


def ensure_trace_id() -> str:
    trace_id = _TRACE_ID_CONTEXT.get()
    if not trace_id:
        trace_id = str(uuid4())
        _TRACE_ID_CONTEXT.set(trace_id)
    return trace_id


def get_trace_context() -> ContextVar[str]:
    """Expose the trace identifier context variable for middleware use."""

    return _TRACE_ID_CONTEXT


def build_error_payload(
    *, code: str, message: str, details: dict[str, Any], trace_id: str
) -> ErrorResponse:
    return ErrorResponse(code=code, message=message, details=details, trace_id=trace_id)


def _error_response(status_code: int, payload: ErrorResponse, headers: dict[str, str] | None = None) -> JSONResponse:
    merged = dict(headers or {})
    merged.setdefault(TRACE_ID_HEADER, payload.trace_id)
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(payload.model_dump()),
        headers=merged,
    )


def service_error_response(exc: ServiceError, trace_id: str) -> JSONResponse:
    """Render a :class:`ServiceError` using the shared error model."""

    payload = build_error_payload(
        code=exc.code,
        message=exc.message,
        details=exc.details,
        trace_id=trace_id,
    )
    return _error_response(exc.status_code, payload)


def http_exception_to_response(exc: HTTPException, trace_id: str) -> JSONResponse:
    """Translate an ``HTTPException`` into a JSON response with trace headers."""

    detail = exc.detail
    if isinstance(detail, dict):
        payload_data = dict(detail)
        payload_data.setdefault("code", DEFAULT_ERROR_DEFINITION.code)
        payload_data.setdefault("message", DEFAULT_ERROR_DEFINITION.message)
        payload_data.setdefault("details", {})
        payload_data["trace_id"] = trace_id
        payload = ErrorResponse.model_validate(payload_data)
    else:
        code = "NOT_FOUND" if exc.status_code == status.HTTP_404_NOT_FOUND else DEFAULT_ERROR_DEFINITION.code
        payload = build_error_payload(code=code, message=str(detail), details={}, trace_id=trace_id)
    return _error_response(exc.status_code, payload, dict(exc.headers or {}))


def validation_message(errors: Sequence[Any], default: str = "Request validation failed.") -> str:
    """Prefer the message of our own validators over pydantic's generic text."""

    for error in errors:
        if error.get("type") in _USER_FACING_ERROR_TYPES:
            return str(error.get("msg") or default)
    return default


def request_validation_response(exc: RequestValidationError, trace_id: str) -> JSONResponse:
    """Render request validation failures as ``VALIDATION`` errors."""

    errors = exc.errors()
    payload = build_error_payload(
        code="VALIDATION",
        message=validation_message(errors),
        details={"errors": jsonable_encoder(errors)},
        trace_id=trace_id,
    )
    return _error_response(status.HTTP_400_BAD_REQUEST, payload)


def internal_error_response(trace_id: str) -> JSONResponse:
    payload = build_error_payload(
        code=DEFAULT_ERROR_DEFINITION.code,
        message=DEFAULT_ERROR_DEFINITION.message,
        details={},
        trace_id=trace_id,
    )
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, payload)


__all__: list[str] = [
    "DEFAULT_ERROR_RESPONSES",
    "REWRITE_ERROR_RESPONSES",
    "TRACE_ID_HEADER",
    "build_error_payload",
    "default_error_responses",
    "ensure_trace_id",
    "get_trace_context",
    "http_exception_to_response",
    "internal_error_response",
    "request_validation_response",
    "resolve_trace_id",
    "service_error_response",
    "validation_message",
]
