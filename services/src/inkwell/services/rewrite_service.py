"""Business logic for the selection rewrite endpoint."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from .context_repair import ContextRepairDriver, RepairOutcome
from .context_window import collect_word_context
from .diagnostics import DiagnosticLogger
from .history import HistoryStore
from .metrics import record_rewrite
from .model_client import ChatMessage, ModelClient, extract_result_text, is_online_model, strip_online_suffix
from .models.chapter import EditOperationRecord
from .models.rewrite import ContextAdjustmentSummary, RewriteRequest, RewriteResponse, SelectionRange
from .online_context import WebContextProvider
from .prompts import REWRITE_SYSTEM_PROMPT, build_rewrite_prompt
from .rewrite_config import RewriteDefaults
from .search_index import SearchIndex
from .selection_patch import apply_selection_patch
from .service_errors import (
    InternalServiceError,
    RewriteValidationError,
    SelectionConflictError,
    ServiceError,
    UpstreamEmptyError,
)
from .spans import SelectionSpan
from .storage import ChapterStore

LOGGER = logging.getLogger(__name__)

REPAIR_INSTRUCTION = "[auto] Context repair"
REPAIR_FAILED_NOTE = "Context repair failed"

# Codes worth a diagnostic file; the rest are ordinary client mistakes.
_DIAGNOSTIC_CODES = frozenset({"CONFLICT", "INTERNAL"})


def summarize_repair(outcome: RepairOutcome) -> ContextAdjustmentSummary | bool:
    """Collapse a repair outcome into the response summary (``False`` when silent)."""

    if outcome.applied:
        return ContextAdjustmentSummary(applied=True, notes=outcome.notes, latency_ms=outcome.latency_ms)
    if outcome.notes:
        return ContextAdjustmentSummary(applied=False, notes=outcome.notes, latency_ms=outcome.latency_ms)
    return False


@dataclass
class RewriteService:
    """Run one selection rewrite from prompt to persisted, audited chapter text."""

    chapters: ChapterStore
    search_index: SearchIndex
    history: HistoryStore
    model_client: ModelClient
    web_context: WebContextProvider
    diagnostics: DiagnosticLogger | None = None
    repair_driver: ContextRepairDriver | None = None
    clock: Callable[[], float] = field(default=time.perf_counter)

    def __post_init__(self) -> None:
        if self.repair_driver is None:
            self.repair_driver = ContextRepairDriver(self.model_client, clock=self.clock)

    async def rewrite(self, request: RewriteRequest) -> RewriteResponse:
        try:
            response = await self._rewrite(request)
        except ServiceError as exc:
            record_rewrite(exc.code)
            self._log_diagnostic(exc, request)
            raise
        except Exception as exc:
            LOGGER.exception(
                "rewrite.failed",
                extra={"extra_payload": {"chapter_id": request.chapter_id, "model": request.model}},
            )
            error = InternalServiceError(details={"chapter_id": request.chapter_id})
            record_rewrite(error.code)
            self._log_diagnostic(error, request)
            raise error from exc
        record_rewrite("ok")
        return response

    async def _rewrite(self, request: RewriteRequest) -> RewriteResponse:
        span = request.span
        chapter = self.chapters.get(request.chapter_id)
        if span.end > len(chapter.text):
            raise RewriteValidationError(
                "Selection outside chapter bounds",
                details={"selection_end": span.end, "chapter_length": len(chapter.text)},
            )
        selected_text = span.slice(chapter.text)

        tuning = RewriteDefaults.resolve(
            context_window=request.context_window,
            temperature=request.temperature,
            max_tokens=request.max_tokens,
        )
        language = request.language or chapter.language
        online = is_online_model(request.model)
        LOGGER.info(
            "rewrite.request",
            extra={
                "extra_payload": {
                    "chapter_id": request.chapter_id,
                    "model": request.model,
                    "context_window": tuning.context_window,
                    "temperature": tuning.temperature,
                    "max_tokens": tuning.max_tokens,
                    "repair_context": request.repair_context,
                }
            },
        )

        messages = await self._build_messages(request, selected_text, span, chapter.text, language, online, tuning)

        started = self.clock()
        payload = await self.model_client.complete(
            model=request.model,
            messages=messages,
            temperature=tuning.temperature,
            max_tokens=tuning.max_tokens,
        )
        result = extract_result_text(payload)
        if not result:
            raise UpstreamEmptyError(details={"model": request.model})

        # Autosave may have moved the chapter on since the selection was made.
        current = self.chapters.get(request.chapter_id)
        patch = apply_selection_patch(current.text, span, selected_text, result)
        if not patch.success:
            raise SelectionConflictError(
                details={
                    "chapter_id": request.chapter_id,
                    "selection_start": span.start,
                    "selection_end": span.end,
                }
            )

        final_text = patch.text
        final_span = SelectionSpan.covering(span.start, patch.replacement)
        summary: ContextAdjustmentSummary | bool = False
        outcome: RepairOutcome | None = None
        if request.repair_context:
            outcome, summary = await self._repair(
                request,
                text=final_text,
                span=final_span,
                rewritten=result,
                language=language,
                messages=messages,
                max_tokens=tuning.max_tokens,
            )
            if outcome is not None and outcome.applied:
                final_text = outcome.text
                final_span = outcome.span

        updated_at = self.chapters.put(request.chapter_id, final_text)
        self.search_index.index(request.chapter_id, final_text, chapter.document_id)
        latency_ms = int((self.clock() - started) * 1000)

        self.history.append(
            EditOperationRecord(
                chapter_id=request.chapter_id,
                selection_start=final_span.start,
                selection_end=final_span.end,
                instruction=request.instruction,
                original=selected_text,
                result=result,
                model=request.model,
                latency_ms=latency_ms,
            )
        )
        if outcome is not None and outcome.applied:
            for adjustment in outcome.adjustments:
                self.history.append(
                    EditOperationRecord(
                        chapter_id=request.chapter_id,
                        selection_start=adjustment.start,
                        selection_end=adjustment.end,
                        instruction=REPAIR_INSTRUCTION,
                        original=adjustment.original,
                        result=adjustment.replacement,
                        model=request.model,
                        latency_ms=outcome.latency_ms,
                    )
                )

        LOGGER.info(
            "rewrite.completed",
            extra={
                "extra_payload": {
                    "chapter_id": request.chapter_id,
                    "latency_ms": latency_ms,
                    "repair_applied": bool(outcome and outcome.applied),
                }
            },
        )
        return RewriteResponse(
            result=result,
            original_snippet=selected_text,
            range=SelectionRange(start=final_span.start, end=final_span.end),
            latency_ms=latency_ms,
            updated_at=updated_at,
            context_adjustments=summary,
            chapter_text=final_text,
        )

    async def _build_messages(
        self,
        request: RewriteRequest,
        selected_text: str,
        span: SelectionSpan,
        text: str,
        language: str,
        online: bool,
        tuning: RewriteDefaults,
    ) -> list[ChatMessage]:
        words = collect_word_context(text, span, tuning.context_window)
        messages: list[ChatMessage] = [{"role": "system", "content": REWRITE_SYSTEM_PROMPT}]
        if online:
            web_block = await self.web_context.build(instruction=request.instruction, selection=selected_text)
            messages.append({"role": "user", "content": web_block})
        messages.append(
            {
                "role": "user",
                "content": build_rewrite_prompt(
                    instruction=request.instruction,
                    selected_text=selected_text,
                    language=language,
                    online=online,
                    before_context=words.before,
                    after_context=words.after,
                ),
            }
        )
        return messages

    async def _repair(
        self,
        request: RewriteRequest,
        *,
        text: str,
        span: SelectionSpan,
        rewritten: str,
        language: str,
        messages: list[ChatMessage],
        max_tokens: int,
    ) -> tuple[RepairOutcome | None, ContextAdjustmentSummary | bool]:
        assert self.repair_driver is not None
        try:
            outcome = await self.repair_driver.run(
                text=text,
                span=span,
                rewritten_selection=rewritten,
                instruction=request.instruction,
                language=language,
                model=strip_online_suffix(request.model),
                first_pass_messages=messages,
                max_tokens=max_tokens,
            )
        except Exception:
            # Repair is best effort; the primary rewrite still goes through.
            LOGGER.exception("rewrite.repair_failed", extra={"extra_payload": {"chapter_id": request.chapter_id}})
            return None, ContextAdjustmentSummary(applied=False, notes=REPAIR_FAILED_NOTE, latency_ms=0)
        return outcome, summarize_repair(outcome)

    def _log_diagnostic(self, exc: ServiceError, request: RewriteRequest) -> None:
        if self.diagnostics is None or exc.code not in _DIAGNOSTIC_CODES:
            return
        details = dict(exc.details)
        details.setdefault("chapter_id", request.chapter_id)
        details.setdefault("model", request.model)
        try:
            self.diagnostics.log(code=exc.code, message=exc.message, details=details)
        except OSError:
            LOGGER.warning("rewrite.diagnostic_write_failed", extra={"extra_payload": {"code": exc.code}})


__all__ = ["REPAIR_FAILED_NOTE", "REPAIR_INSTRUCTION", "RewriteService", "summarize_repair"]
