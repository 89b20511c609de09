"""Tests for selection patching."""

from __future__ import annotations

import pytest

from inkwell.services.selection_patch import apply_selection_patch
from inkwell.services.spans import SelectionSpan, splice

TEXT = "The cat sat. It was red. The cat slept."
SPAN = SelectionSpan(13, 24)


def test_exact_slice_is_replaced() -> None:
    result = apply_selection_patch(TEXT, SPAN, "It was red.", "It was blue.")

    assert result.success is True
    assert result.text == "The cat sat. It was blue. The cat slept."
    assert result.text == TEXT[: SPAN.start] + "It was blue." + TEXT[SPAN.end :]
    assert result.replacement == "It was blue."


@pytest.mark.parametrize(
    ("text", "start", "end", "replacement"),
    [
        ("abcdef", 0, 3, "XYZW"),
        ("abcdef", 3, 6, ""),
        ("héllo wörld", 6, 11, "monde"),
        ("line one\nline two\n", 9, 17, "LINE\nTWO"),
    ],
)
def test_exact_path_matches_plain_splice(text: str, start: int, end: int, replacement: str) -> None:
    span = SelectionSpan(start, end)
    result = apply_selection_patch(text, span, span.slice(text), replacement)

    assert result.success is True
    assert result.text == splice(text, start, end, replacement)


def test_unrelated_live_slice_is_a_conflict() -> None:
    live = "The cat sat. ########### The cat slept."

    result = apply_selection_patch(live, SPAN, "It was red.", "It was blue.")

    assert result.success is False
    assert result.text == live


def test_small_drift_inside_selection_is_patched() -> None:
    live = "The cat sat. It was red! The cat slept."

    result = apply_selection_patch(live, SPAN, "It was red.", "It was blue.")

    assert result.success is True
    assert result.text.startswith("The cat sat. It was blue")
    assert "red" not in result.text
    assert result.text.endswith(" The cat slept.")
    assert result.text[SPAN.start : SPAN.start + len(result.replacement)] == result.replacement


def test_span_rejects_empty_and_negative_ranges() -> None:
    with pytest.raises(ValueError):
        SelectionSpan(5, 5)
    with pytest.raises(ValueError):
        SelectionSpan(-1, 3)


def test_span_shift_and_covering() -> None:
    span = SelectionSpan(4, 9)

    assert span.shift(3) == SelectionSpan(7, 12)
    assert span.shift(0) is span
    assert SelectionSpan.covering(4, "abc") == SelectionSpan(4, 7)
    assert span.length == 5


def test_selection_replaced_by_another_rewrite_is_a_conflict() -> None:
    live = "The cat sat. It was blue. The cat slept."

    result = apply_selection_patch(live, SPAN, "It was red.", "It was green.")

    assert result.success is False
    assert result.text == live


def test_extra_whitespace_and_trailing_words_still_patch() -> None:
    live = "The cat sat. It was  red today. The cat slept."

    result = apply_selection_patch(live, SPAN, "It was red.", "It was green.")

    assert result.success is True
    assert "green" in result.text
    assert result.text.endswith(" today. The cat slept.")
    assert result.text[SPAN.start : SPAN.start + len(result.replacement)] == result.replacement
