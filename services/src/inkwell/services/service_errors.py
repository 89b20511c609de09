"""Central service error definitions and typed exceptions for the rewrite stack."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from fastapi import status


@dataclass(frozen=True)
class ErrorDefinition:
    code: str
    message: str
    status_code: int


ERROR_DEFINITIONS: Dict[str, ErrorDefinition] = {
    "INTERNAL": ErrorDefinition("INTERNAL", "Rewrite failed.", status.HTTP_500_INTERNAL_SERVER_ERROR),
    "VALIDATION": ErrorDefinition("VALIDATION", "Validation failed.", status.HTTP_400_BAD_REQUEST),
    "NOT_FOUND": ErrorDefinition("NOT_FOUND", "Chapter not found.", status.HTTP_404_NOT_FOUND),
    "CONFLICT": ErrorDefinition(
        "CONFLICT",
        "Selection has changed. Please re-select the passage and try again.",
        status.HTTP_409_CONFLICT,
    ),
    "UPSTREAM_EMPTY": ErrorDefinition("UPSTREAM_EMPTY", "Model returned empty output.", status.HTTP_502_BAD_GATEWAY),
    "MODEL_ERROR": ErrorDefinition("MODEL_ERROR", "Model execution failed.", status.HTTP_502_BAD_GATEWAY),
    "TIMEOUT": ErrorDefinition("TIMEOUT", "Operation timed out.", status.HTTP_504_GATEWAY_TIMEOUT),
}

DEFAULT_ERROR_DEFINITION = ERROR_DEFINITIONS["INTERNAL"]


class ServiceError(Exception):
    """Structured error for router responses."""

    code: str = DEFAULT_ERROR_DEFINITION.code

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        resolved_code = code or self.code
        definition = ERROR_DEFINITIONS.get(resolved_code, DEFAULT_ERROR_DEFINITION)
        self.code = resolved_code
        self.message = message or definition.message
        self.status_code = status_code or definition.status_code
        self.details = details or {}
        super().__init__(self.message)


class RewriteValidationError(ServiceError):
    """Malformed request fields or an empty/out-of-bounds selection."""

    code = "VALIDATION"


class ChapterNotFoundError(ServiceError):
    """The requested chapter identifier does not resolve."""

    code = "NOT_FOUND"


class SelectionConflictError(ServiceError):
    """The live chapter no longer matches the selection and fuzzy patching failed."""

    code = "CONFLICT"


class UpstreamEmptyError(ServiceError):
    """The model answered but produced no usable text."""

    code = "UPSTREAM_EMPTY"


class ModelCallError(ServiceError):
    """The model call failed at the transport or HTTP level."""

    code = "MODEL_ERROR"


class ModelTimeoutError(ModelCallError):
    code = "TIMEOUT"


class InternalServiceError(ServiceError):
    """Any unexpected failure, surfaced without leaking internals."""

    code = "INTERNAL"


__all__ = [
    "ChapterNotFoundError",
    "DEFAULT_ERROR_DEFINITION",
    "ERROR_DEFINITIONS",
    "ErrorDefinition",
    "InternalServiceError",
    "ModelCallError",
    "ModelTimeoutError",
    "RewriteValidationError",
    "SelectionConflictError",
    "ServiceError",
    "UpstreamEmptyError",
]
