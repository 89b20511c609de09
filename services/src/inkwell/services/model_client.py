"""Chat-completion client and response text extraction."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Literal, Protocol, Sequence, TypedDict

import httpx

from .config import ServiceSettings
from .service_errors import ModelCallError, ModelTimeoutError

LOGGER = logging.getLogger(__name__)

ONLINE_SUFFIX = ":online"
_ONLINE_SUFFIX_RE = re.compile(r":online$", re.IGNORECASE)

Role = Literal["system", "user", "assistant"]


class ChatMessage(TypedDict):
    role: Role
    content: Any


class ModelClient(Protocol):
    """Anything able to run a non-streaming chat completion."""

    async def complete(
        self,
        *,
        model: str,
        messages: Sequence[ChatMessage],
        temperature: float,
        max_tokens: int,
    ) -> dict[str, Any]:
        ...


def is_online_model(model: str) -> bool:
    return bool(_ONLINE_SUFFIX_RE.search(model))


def strip_online_suffix(model: str) -> str:
    return _ONLINE_SUFFIX_RE.sub("", model)


# Response content shapes -------------------------------------------------


@dataclass(frozen=True)
class TextContent:
    text: str

    def render(self) -> str:
        return self.text.strip()


@dataclass(frozen=True)
class PartsContent:
    """Content delivered as a list of strings or ``{"text"|"value": ...}`` parts."""

    parts: tuple[Any, ...]

    def render(self) -> str:
        return "".join(_part_text(part) for part in self.parts).strip()


@dataclass(frozen=True)
class EmptyContent:
    def render(self) -> str:
        return ""


ResponseContent = TextContent | PartsContent | EmptyContent


def _part_text(part: Any) -> str:
    if isinstance(part, str):
        return part
    if isinstance(part, dict):
        for key in ("text", "value"):
            value = part.get(key)
            if isinstance(value, str):
                return value
    return ""


def classify_response(payload: Any) -> ResponseContent:
    """Map a chat-completion payload onto one of the known content shapes.

    The first choice's ``message`` is preferred; streaming-style ``delta``
    payloads are accepted as well.
    """

    if not isinstance(payload, dict):
        return EmptyContent()
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return EmptyContent()
    choice = choices[0]
    content: Any = None
    for field in ("message", "delta"):
        container = choice.get(field)
        if isinstance(container, dict) and container.get("content") is not None:
            content = container["content"]
            break
    if isinstance(content, str):
        return TextContent(content)
    if isinstance(content, list):
        return PartsContent(tuple(content))
    return EmptyContent()


def extract_result_text(payload: Any) -> str:
    return classify_response(payload).render()


def format_conversation(messages: Sequence[ChatMessage]) -> str:
    """Render a message list as a numbered transcript for follow-up prompts."""

    if not messages:
        return "(empty)"
    blocks = []
    for index, message in enumerate(messages, start=1):
        header = f"#{index} {str(message['role']).upper()}"
        blocks.append(f"{header}\n{_serialize_content(message['content'])}")
    return "\n\n".join(blocks)


def _serialize_content(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        rendered = []
        for part in content:
            if isinstance(part, str):
                rendered.append(part)
            elif isinstance(part, dict) and isinstance(part.get("text"), str):
                rendered.append(part["text"])
            else:
                rendered.append(json.dumps(part, ensure_ascii=False))
        return "\n".join(rendered)
    if isinstance(content, dict):
        return json.dumps(content, ensure_ascii=False)
    return "" if content is None else str(content)


# OpenRouter ---------------------------------------------------------------


class OpenRouterClient:
    """Non-streaming OpenRouter chat completions over ``httpx``."""

    def __init__(
        self,
        settings: ServiceSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    async def complete(
        self,
        *,
        model: str,
        messages: Sequence[ChatMessage],
        temperature: float,
        max_tokens: int,
    ) -> dict[str, Any]:
        api_key = self._settings.openrouter_api_key
        if not api_key:
            raise ModelCallError(
                "Model provider is not configured.",
                details={"missing": "openrouter_api_key"},
            )

        body = {
            "model": strip_online_suffix(model),
            "messages": list(messages),
            "temperature": temperature,
            "max_tokens": max_tokens,
            "stream": False,
        }
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self._settings.app_public_url,
            "X-Title": "Inkwell",
        }
        timeout = httpx.Timeout(self._settings.model_timeout_seconds)

        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                response = await client.post(self._settings.openrouter_url, json=body, headers=headers)
        except httpx.TimeoutException as exc:
            LOGGER.warning("model.timeout", extra={"extra_payload": {"model": model}})
            raise ModelTimeoutError(
                "Model request timed out.",
                details={"model": model, "timeout_seconds": self._settings.model_timeout_seconds},
            ) from exc
        except httpx.HTTPError as exc:
            LOGGER.warning("model.transport_error", extra={"extra_payload": {"model": model, "error": str(exc)}})
            raise ModelCallError("Model request failed.", details={"model": model}) from exc

        if response.is_error:
            LOGGER.warning(
                "model.http_error",
                extra={
                    "extra_payload": {
                        "model": model,
                        "status": response.status_code,
                        "body": response.text[:300],
                    }
                },
            )
            raise ModelCallError(
                "Model request failed.",
                details={"model": model, "status": response.status_code},
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise ModelCallError("Model returned a malformed response.", details={"model": model}) from exc
        return payload if isinstance(payload, dict) else {}


__all__ = [
    "ChatMessage",
    "EmptyContent",
    "ModelClient",
    "ONLINE_SUFFIX",
    "OpenRouterClient",
    "PartsContent",
    "ResponseContent",
    "TextContent",
    "classify_response",
    "extract_result_text",
    "format_conversation",
    "is_online_model",
    "strip_online_suffix",
]
