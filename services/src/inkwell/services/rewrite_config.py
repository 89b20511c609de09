"""Per-request rewrite tuning: defaults and pure clamp helpers."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Final

MAX_CONTEXT_WINDOW: Final[int] = 1000
DEFAULT_CONTEXT_WINDOW: Final[int] = 80

MIN_TEMPERATURE: Final[float] = 0.0
MAX_TEMPERATURE: Final[float] = 2.0
DEFAULT_TEMPERATURE: Final[float] = 0.3

MIN_MAX_TOKENS: Final[int] = 128
MAX_MAX_TOKENS: Final[int] = 4000
DEFAULT_MAX_TOKENS: Final[int] = 1200


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def clamp_context_window(value: float) -> int:
    """Clamp a words-per-side value into ``0..MAX_CONTEXT_WINDOW``."""

    if not _is_number(value) or not math.isfinite(value):
        return DEFAULT_CONTEXT_WINDOW
    return max(0, min(MAX_CONTEXT_WINDOW, math.floor(value)))


def resolve_context_window(value: Any) -> int:
    """Return the default window for missing input, the clamped value otherwise."""

    if not _is_number(value) or math.isnan(value):
        return DEFAULT_CONTEXT_WINDOW
    return clamp_context_window(value)


def clamp_temperature(value: float) -> float:
    if not _is_number(value) or not math.isfinite(value):
        return DEFAULT_TEMPERATURE
    clamped = max(MIN_TEMPERATURE, min(MAX_TEMPERATURE, float(value)))
    return round(clamped, 2)


def clamp_max_tokens(value: float) -> int:
    if not _is_number(value) or not math.isfinite(value):
        return DEFAULT_MAX_TOKENS
    return max(MIN_MAX_TOKENS, min(MAX_MAX_TOKENS, math.floor(value)))


@dataclass(frozen=True)
class RewriteDefaults:
    """Resolved tuning for a single rewrite request."""

    context_window: int = DEFAULT_CONTEXT_WINDOW
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS

    @classmethod
    def resolve(
        cls,
        *,
        context_window: Any = None,
        temperature: Any = None,
        max_tokens: Any = None,
    ) -> "RewriteDefaults":
        """Build a tuning struct from optional caller overrides."""

        return cls(
            context_window=resolve_context_window(context_window),
            temperature=clamp_temperature(
                temperature if _is_number(temperature) else DEFAULT_TEMPERATURE
            ),
            max_tokens=clamp_max_tokens(max_tokens if _is_number(max_tokens) else DEFAULT_MAX_TOKENS),
        )


__all__ = [
    "DEFAULT_CONTEXT_WINDOW",
    "DEFAULT_MAX_TOKENS",
    "DEFAULT_TEMPERATURE",
    "MAX_CONTEXT_WINDOW",
    "MAX_MAX_TOKENS",
    "MAX_TEMPERATURE",
    "MIN_MAX_TOKENS",
    "MIN_TEMPERATURE",
    "RewriteDefaults",
    "clamp_context_window",
    "clamp_max_tokens",
    "clamp_temperature",
    "resolve_context_window",
]
