"""Pydantic models exposed by the rewrite services."""

from __future__ import annotations

from .catalogue import MODEL_OPTIONS, is_supported_model
from .chapter import ChapterRecord, ChapterUpdateRequest, EditOperationRecord
from .errors import ErrorResponse
from .rewrite import (
    ContextAdjustmentSummary,
    RewriteContextHint,
    RewriteRequest,
    RewriteResponse,
    SelectionRange,
)

__all__ = [
    "ChapterRecord",
    "ChapterUpdateRequest",
    "ContextAdjustmentSummary",
    "EditOperationRecord",
    "ErrorResponse",
    "MODEL_OPTIONS",
    "RewriteContextHint",
    "RewriteRequest",
    "RewriteResponse",
    "SelectionRange",
    "is_supported_model",
]
