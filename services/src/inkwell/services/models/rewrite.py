"""Pydantic models for selection rewrite requests and responses."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import Field, StrictInt, field_validator, model_validator
from pydantic_core import PydanticCustomError

from ..spans import SelectionSpan
from ._camel import CamelModel


class RewriteContextHint(CamelModel):
    lang: str | None = None


class RewriteRequest(CamelModel):
    """Request payload for ``POST /llm/rewrite``."""

    chapter_id: str = Field(min_length=1)
    selection_start: StrictInt = Field(ge=0)
    selection_end: StrictInt
    instruction: str
    model: str
    context: RewriteContextHint | None = None
    language_hint: str | None = None
    # Tuning is taken as sent; RewriteDefaults.resolve falls back on non-numbers.
    context_window: Any = None
    temperature: Any = None
    max_tokens: Any = None
    repair_context: bool = False

    @field_validator("instruction", "model")
    @classmethod
    def _require_text(cls, value: str) -> str:
        if not value.strip():
            raise PydanticCustomError("missing_instruction_or_model", "Missing instruction or model")
        return value

    @model_validator(mode="after")
    def _validate_range(self) -> "RewriteRequest":
        if self.selection_end <= self.selection_start:
            raise PydanticCustomError("selection_empty", "Selection range is empty")
        return self

    @property
    def span(self) -> SelectionSpan:
        return SelectionSpan(self.selection_start, self.selection_end)

    @property
    def language(self) -> str | None:
        if self.context is not None and self.context.lang:
            return self.context.lang
        return self.language_hint


class SelectionRange(CamelModel):
    start: int
    end: int


class ContextAdjustmentSummary(CamelModel):
    applied: bool
    notes: str | None = None
    latency_ms: int = 0


class RewriteResponse(CamelModel):
    result: str
    original_snippet: str
    range: SelectionRange
    latency_ms: int
    updated_at: datetime
    context_adjustments: ContextAdjustmentSummary | Literal[False] = False
    chapter_text: str


__all__ = [
    "ContextAdjustmentSummary",
    "RewriteContextHint",
    "RewriteRequest",
    "RewriteResponse",
    "SelectionRange",
]
