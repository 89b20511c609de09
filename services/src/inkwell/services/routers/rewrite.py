"""Selection rewrite endpoint."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError

from ..http import REWRITE_ERROR_RESPONSES, validation_message
from ..models.rewrite import RewriteRequest
from ..rewrite_service import RewriteService
from ..service_errors import RewriteValidationError
from .dependencies import get_rewrite_service

router = APIRouter(prefix="/llm", tags=["rewrite"], responses=dict(REWRITE_ERROR_RESPONSES))


@router.post("/rewrite")
async def rewrite_selection(
    payload: dict[str, Any],
    service: RewriteService = Depends(get_rewrite_service),
) -> dict[str, Any]:
    """Rewrite the selected passage and persist the patched chapter."""

    try:
        request_model = RewriteRequest.model_validate(payload)
    except ValidationError as exc:
        errors = exc.errors(include_url=False, include_context=False, include_input=False)
        raise RewriteValidationError(
            validation_message(errors, default="Invalid payload"),
            details={"errors": jsonable_encoder(errors)},
        ) from exc

    response = await service.rewrite(request_model)
    return response.to_payload()


__all__ = ["router", "rewrite_selection"]
