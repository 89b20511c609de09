from __future__ import annotations

import math

import pytest

from inkwell.services.rewrite_config import (
    DEFAULT_CONTEXT_WINDOW,
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    RewriteDefaults,
    clamp_context_window,
    clamp_max_tokens,
    clamp_temperature,
    resolve_context_window,
)


def test_defaults_apply_without_overrides() -> None:
    assert RewriteDefaults.resolve() == RewriteDefaults(
        context_window=DEFAULT_CONTEXT_WINDOW,
        temperature=DEFAULT_TEMPERATURE,
        max_tokens=DEFAULT_MAX_TOKENS,
    )


@pytest.mark.parametrize(
    ("value", "expected"),
    [(5, 2.0), (-1, 0.0), (0.333, 0.33), (math.inf, DEFAULT_TEMPERATURE), (math.nan, DEFAULT_TEMPERATURE)],
)
def test_clamp_temperature(value: float, expected: float) -> None:
    assert clamp_temperature(value) == expected


@pytest.mark.parametrize(
    ("value", "expected"),
    [(10, 128), (99_999, 4000), (300.7, 300), (math.nan, DEFAULT_MAX_TOKENS)],
)
def test_clamp_max_tokens(value: float, expected: int) -> None:
    assert clamp_max_tokens(value) == expected


@pytest.mark.parametrize(
    ("value", "expected"),
    [(-5, 0), (0, 0), (2.9, 2), (5000, 1000), (math.inf, DEFAULT_CONTEXT_WINDOW)],
)
def test_clamp_context_window(value: float, expected: int) -> None:
    assert clamp_context_window(value) == expected


@pytest.mark.parametrize("value", [None, "12", True, math.nan])
def test_missing_or_non_numeric_window_uses_default(value: object) -> None:
    assert resolve_context_window(value) == DEFAULT_CONTEXT_WINDOW


def test_resolve_clamps_overrides() -> None:
    resolved = RewriteDefaults.resolve(context_window=0, temperature=3.5, max_tokens="lots")

    assert resolved.context_window == 0
    assert resolved.temperature == 2.0
    assert resolved.max_tokens == DEFAULT_MAX_TOKENS
