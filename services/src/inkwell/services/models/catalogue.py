"""Supported model identifiers."""

from __future__ import annotations

from typing import Final

from ..model_client import ONLINE_SUFFIX

MODEL_OPTIONS: Final[tuple[str, ...]] = (
    "anthropic/claude-sonnet-4.5",
    "moonshotai/kimi-k2-0905",
    "x-ai/grok-4",
    "google/gemini-2.5-pro",
    "google/gemini-2.5-flash",
    "openai/gpt-5",
    "deepseek/deepseek-chat-v3-0324",
    "deepseek/deepseek-r1-0528",
)


def is_supported_model(model: str) -> bool:
    """Return whether ``model`` is a catalogue entry, optionally ``:online``."""

    return any(model in (option, f"{option}{ONLINE_SUFFIX}") for option in MODEL_OPTIONS)


__all__ = ["MODEL_OPTIONS", "is_supported_model"]
