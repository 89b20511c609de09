"""Context extraction around a selection: word windows and sentence regions."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Final

from .spans import SelectionSpan

REPAIR_CHAR_WINDOW: Final[int] = 600
SENTENCE_TERMINATORS: Final[frozenset[str]] = frozenset(".!?。！？;；…")

_TRAILING_TOKEN_RE = re.compile(r"\S+\s*")
_LEADING_TOKEN_RE = re.compile(r"\s*\S+")


@dataclass(frozen=True)
class WordContext:
    before: str
    after: str


@dataclass(frozen=True)
class ContextRegion:
    """Editable range of text bounded by sentence terminators or the text edges."""

    start: int
    end: int
    text: str

    @property
    def is_blank(self) -> bool:
        return not self.text.strip()


@dataclass(frozen=True)
class RepairRegions:
    before: ContextRegion
    after: ContextRegion

    @property
    def is_blank(self) -> bool:
        return self.before.is_blank and self.after.is_blank


def collect_word_context(text: str, span: SelectionSpan, words_per_side: int) -> WordContext:
    """Return up to ``words_per_side`` whole words on each side of ``span``.

    The result is advisory prompt grounding and is never checked against the
    text again once the model answers.
    """

    if words_per_side <= 0:
        return WordContext(before="", after="")
    return WordContext(
        before=_words_from_end(text[: span.start], words_per_side),
        after=_words_from_start(text[span.end :], words_per_side),
    )


def _words_from_end(segment: str, words: int) -> str:
    if not segment:
        return ""
    tokens = _TRAILING_TOKEN_RE.findall(segment)
    if not tokens:
        return segment
    return "".join(tokens[-words:]).lstrip()


def _words_from_start(segment: str, words: int) -> str:
    if not segment:
        return ""
    tokens = _LEADING_TOKEN_RE.findall(segment)
    if not tokens:
        return segment
    return "".join(tokens[:words]).rstrip()


def collect_repair_regions(
    text: str,
    span: SelectionSpan,
    *,
    window: int = REPAIR_CHAR_WINDOW,
) -> RepairRegions:
    """Return the whole-sentence regions immediately before and after ``span``.

    Neither region ever includes a character of the selection.
    """

    before_window_start = max(0, span.start - window)
    before_start = min(_sentence_start_at_or_before(text, before_window_start), span.start)

    after_window_end = min(len(text), span.end + window)
    after_end = max(_sentence_end_at_or_after(text, after_window_end), span.end)

    return RepairRegions(
        before=ContextRegion(before_start, span.start, text[before_start : span.start]),
        after=ContextRegion(span.end, after_end, text[span.end : after_end]),
    )


def _skip_whitespace(text: str, index: int) -> int:
    while index < len(text) and text[index].isspace():
        index += 1
    return index


def _sentence_start_at_or_before(text: str, index: int) -> int:
    for cursor in range(min(index, len(text) - 1), -1, -1):
        if text[cursor] in SENTENCE_TERMINATORS:
            return _skip_whitespace(text, cursor + 1)
    return 0


def _sentence_end_at_or_after(text: str, index: int) -> int:
    for cursor in range(index, len(text)):
        if text[cursor] in SENTENCE_TERMINATORS:
            return _skip_whitespace(text, cursor + 1)
    return len(text)


__all__ = [
    "ContextRegion",
    "REPAIR_CHAR_WINDOW",
    "RepairRegions",
    "SENTENCE_TERMINATORS",
    "WordContext",
    "collect_repair_regions",
    "collect_word_context",
]
