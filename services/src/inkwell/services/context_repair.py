"""Bounded, sentence-aware continuity repair around a rewritten selection.

The driver is a fold over at most ``MAX_REPAIR_ROUNDS`` rounds. Each round
takes an immutable :class:`RepairState` (text plus selection span), asks the
model for up to three edits in the surrounding sentences and produces the
next state together with the edits that were actually applied. The selection
itself is never edited; edits before it shift its offsets.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Final, Sequence

from .context_window import RepairRegions, collect_repair_regions
from .metrics import record_repair
from .model_client import ChatMessage, ModelClient, extract_result_text, format_conversation
from .prompts import CONTEXT_REPAIR_SYSTEM_PROMPT, build_repair_prompt
from .repair_parser import MAX_CHANGES_PER_ROUND, Region, RepairChange, parse_repair_response
from .service_errors import ModelCallError
from .spans import SelectionSpan, splice

LOGGER = logging.getLogger(__name__)

MAX_REPAIR_ROUNDS: Final[int] = 3
REPAIR_TEMPERATURE: Final[float] = 0.2


@dataclass(frozen=True)
class RepairState:
    text: str
    span: SelectionSpan


@dataclass(frozen=True)
class RepairAdjustment:
    """An applied change, with the offsets it occupied when it was applied."""

    region: Region
    original: str
    replacement: str
    start: int
    end: int
    iteration: int


@dataclass(frozen=True)
class RoundResult:
    state: RepairState
    adjustments: tuple[RepairAdjustment, ...] = ()


@dataclass(frozen=True)
class RepairOutcome:
    applied: bool
    text: str
    span: SelectionSpan
    adjustments: tuple[RepairAdjustment, ...] = ()
    notes: str | None = None
    latency_ms: int = 0
    rounds: int = 0


def apply_repair_changes(
    state: RepairState,
    regions: RepairRegions,
    changes: Sequence[RepairChange],
    iteration: int,
) -> RoundResult:
    """Apply up to three changes to ``state`` and return the resulting state.

    Each ``original`` must occur verbatim inside its region as it stands after
    the previous changes of the same round; changes that cannot be located are
    skipped. ``regions`` must have been computed on ``state``.
    """

    text = state.text
    span = state.span
    before_start = regions.before.start
    after_end = regions.after.end
    applied: list[RepairAdjustment] = []

    for change in changes[:MAX_CHANGES_PER_ROUND]:
        if change.region == "before":
            position = text.find(change.original, before_start, span.start)
        else:
            position = text.find(change.original, span.end, after_end)
        if position == -1:
            LOGGER.debug(
                "repair.change_not_found",
                extra={"extra_payload": {"region": change.region, "iteration": iteration}},
            )
            continue

        end = position + len(change.original)
        delta = len(change.replacement) - len(change.original)
        text = splice(text, position, end, change.replacement)
        if change.region == "before":
            span = span.shift(delta)
        after_end += delta
        applied.append(
            RepairAdjustment(
                region=change.region,
                original=change.original,
                replacement=change.replacement,
                start=position,
                end=end,
                iteration=iteration,
            )
        )

    return RoundResult(state=RepairState(text=text, span=span), adjustments=tuple(applied))


@dataclass
class ContextRepairDriver:
    """Run repair rounds against a model until convergence or the round cap."""

    model_client: ModelClient
    max_rounds: int = MAX_REPAIR_ROUNDS
    clock: Callable[[], float] = field(default=time.perf_counter)

    async def run(
        self,
        *,
        text: str,
        span: SelectionSpan,
        rewritten_selection: str,
        instruction: str,
        language: str | None,
        model: str,
        first_pass_messages: Sequence[ChatMessage],
        max_tokens: int,
    ) -> RepairOutcome:
        state = RepairState(text=text, span=span)
        adjustments: list[RepairAdjustment] = []
        notes: list[str] = []
        latency = 0.0
        rounds = 0
        transcript = format_conversation(first_pass_messages)

        for iteration in range(self.max_rounds):
            regions = collect_repair_regions(state.text, state.span)
            if regions.is_blank:
                break

            messages: list[ChatMessage] = [
                {"role": "system", "content": CONTEXT_REPAIR_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": build_repair_prompt(
                        instruction=instruction,
                        language=language,
                        rewritten_selection=rewritten_selection,
                        before_region=regions.before.text,
                        after_region=regions.after.text,
                        first_pass_conversation=transcript,
                    ),
                },
            ]

            started = self.clock()
            try:
                payload = await self.model_client.complete(
                    model=model,
                    messages=messages,
                    temperature=REPAIR_TEMPERATURE,
                    max_tokens=max_tokens,
                )
            except ModelCallError as exc:
                LOGGER.warning(
                    "repair.model_failed",
                    extra={"extra_payload": {"iteration": iteration, "error": exc.message}},
                )
                break
            finally:
                latency += self.clock() - started
            rounds += 1

            raw = extract_result_text(payload)
            if not raw:
                break
            parsed = parse_repair_response(raw)
            if parsed is None:
                break
            if parsed.notes:
                notes.append(parsed.notes)
            if not parsed.changes:
                break

            result = apply_repair_changes(state, regions, parsed.changes, iteration)
            LOGGER.info(
                "repair.round",
                extra={
                    "extra_payload": {
                        "iteration": iteration,
                        "proposed": len(parsed.changes),
                        "applied": len(result.adjustments),
                    }
                },
            )
            if not result.adjustments:
                break
            state = result.state
            adjustments.extend(result.adjustments)

        record_repair(rounds, len(adjustments))
        return RepairOutcome(
            applied=bool(adjustments),
            text=state.text,
            span=state.span,
            adjustments=tuple(adjustments),
            notes=" | ".join(notes) if notes else None,
            latency_ms=int(latency * 1000),
            rounds=rounds,
        )


__all__ = [
    "ContextRepairDriver",
    "MAX_REPAIR_ROUNDS",
    "REPAIR_TEMPERATURE",
    "RepairAdjustment",
    "RepairOutcome",
    "RepairState",
    "RoundResult",
    "apply_repair_changes",
]
