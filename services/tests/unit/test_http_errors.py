"""Unit tests for shared HTTP error helpers."""

from __future__ import annotations

import json
from uuid import UUID

from fastapi import HTTPException
from fastapi.exceptions import RequestValidationError

from inkwell.services.http import (
    TRACE_ID_HEADER,
    http_exception_to_response,
    internal_error_response,
    request_validation_response,
    resolve_trace_id,
    service_error_response,
    validation_message,
)
from inkwell.services.service_errors import SelectionConflictError, ServiceError


def _response_json(response) -> dict[str, object]:
    return json.loads(response.body.decode("utf-8"))


def test_request_validation_response_envelopes_errors() -> None:
    trace_id = "trace-123"
    exc = RequestValidationError(
        [
            {
                "loc": ("body", "field"),
                "msg": "field required",
                "type": "missing",
            }
        ]
    )

    response = request_validation_response(exc, trace_id)
    payload = _response_json(response)

    assert response.status_code == 400
    assert set(payload.keys()) == {"code", "message", "details", "trace_id"}
    assert payload["code"] == "VALIDATION"
    assert payload["message"] == "Request validation failed."
    expected_errors = json.loads(json.dumps(exc.errors()))
    assert payload["details"] == {"errors": expected_errors}
    assert payload["trace_id"] == trace_id
    assert response.headers[TRACE_ID_HEADER] == trace_id


def test_validation_message_prefers_user_facing_errors() -> None:
    errors = [
        {"type": "int_type", "msg": "Input should be a valid integer"},
        {"type": "selection_empty", "msg": "Selection range is empty"},
    ]

    assert validation_message(errors) == "Selection range is empty"
    assert validation_message(errors[:1], default="Invalid payload") == "Invalid payload"


def test_internal_error_response_has_expected_shape() -> None:
    trace_id = "trace-456"

    response = internal_error_response(trace_id)
    payload = _response_json(response)

    assert response.status_code == 500
    assert payload == {"code": "INTERNAL", "message": "Rewrite failed.", "details": {}, "trace_id": trace_id}
    assert response.headers[TRACE_ID_HEADER] == trace_id


def test_service_error_response_uses_error_status() -> None:
    exc = SelectionConflictError(details={"chapter_id": "ch1"})

    response = service_error_response(exc, "trace-789")
    payload = _response_json(response)

    assert response.status_code == 409
    assert payload["code"] == "CONFLICT"
    assert payload["message"].startswith("Selection has changed.")
    assert payload["details"] == {"chapter_id": "ch1"}


def test_unknown_service_error_code_falls_back_to_internal_status() -> None:
    exc = ServiceError("Boom", code="SOMETHING_ELSE")

    response = service_error_response(exc, "trace")

    assert response.status_code == 500
    assert _response_json(response)["code"] == "SOMETHING_ELSE"


def test_http_exception_string_detail_maps_not_found() -> None:
    response = http_exception_to_response(HTTPException(status_code=404, detail="Not Found"), "trace-404")
    payload = _response_json(response)

    assert response.status_code == 404
    assert payload["code"] == "NOT_FOUND"
    assert payload["message"] == "Not Found"


def test_http_exception_dict_detail_is_preserved() -> None:
    exc = HTTPException(status_code=400, detail={"code": "VALIDATION", "message": "Bad", "details": {"x": 1}})

    payload = _response_json(http_exception_to_response(exc, "trace-400"))

    assert payload == {"code": "VALIDATION", "message": "Bad", "details": {"x": 1}, "trace_id": "trace-400"}


def test_resolve_trace_id_replaces_invalid_values() -> None:
    valid = "8d7c2f8e-6a0e-4b8e-9a55-3f0f8f1d4b2a"
    assert resolve_trace_id(valid) == valid
    UUID(resolve_trace_id("not-a-uuid"))
    UUID(resolve_trace_id(None))
