"""Parse context-repair model output into typed edit instructions.

Models asked for strict JSON routinely wrap it in prose or code fences, leave
raw newlines inside string values, or truncate the object. Parsing is an
ordered chain of independent strategies; the first one that yields a result
wins.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Final, Literal, Sequence

LOGGER = logging.getLogger(__name__)

Region = Literal["before", "after"]

MAX_CHANGES_PER_ROUND: Final[int] = 3
_REGIONS: Final[frozenset[str]] = frozenset({"before", "after"})

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)
_ESCAPE_RE = re.compile(r"\\(u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|.)", re.DOTALL)
_JSON_STRING = r'"((?:\\.|[^"\\])*)"'
_LOOSE_CHANGE_RE = re.compile(
    r'"region"\s*:\s*"(before|after)"[\s\S]*?'
    rf'"original"\s*:\s*{_JSON_STRING}[\s\S]*?'
    rf'"replacement"\s*:\s*{_JSON_STRING}'
)
_LOOSE_NOTES_RE = re.compile(rf'"notes"\s*:\s*{_JSON_STRING}')

_SIMPLE_ESCAPES: Final[dict[str, str]] = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "\\": "\\",
    '"': '"',
}


@dataclass(frozen=True)
class RepairChange:
    """A proposed edit of ``original`` into ``replacement`` inside one region."""

    region: Region
    original: str
    replacement: str


@dataclass(frozen=True)
class ParsedRepair:
    changes: tuple[RepairChange, ...]
    notes: str | None


ParseStrategy = Callable[[str], ParsedRepair | None]


def unescape_value(value: str) -> str:
    """Resolve backslash escapes left in a recovered string value."""

    def _replace(match: re.Match[str]) -> str:
        seq = match.group(1)
        if seq in _SIMPLE_ESCAPES:
            return _SIMPLE_ESCAPES[seq]
        if len(seq) > 1 and seq[0] in "ux":
            return chr(int(seq[1:], 16))
        return seq

    normalized = _ESCAPE_RE.sub(_replace, value)
    return normalized.replace("\r\n", "\n").replace("\r", "\n")


def coerce_change(candidate: Any) -> RepairChange | None:
    """Return a validated change or ``None`` when the candidate is unusable."""

    if not isinstance(candidate, dict):
        return None
    region = candidate.get("region")
    original = candidate.get("original")
    replacement = candidate.get("replacement")
    if region not in _REGIONS:
        return None
    if not isinstance(original, str) or not isinstance(replacement, str):
        return None
    original = unescape_value(original)
    replacement = unescape_value(replacement)
    if not original or not replacement:
        return None
    return RepairChange(region=region, original=original, replacement=replacement)


def _normalize_notes(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def normalize_repair_object(parsed: Any) -> ParsedRepair | None:
    """Validate a decoded JSON value against ``{changes: [...], notes}``."""

    if not isinstance(parsed, dict) or not isinstance(parsed.get("changes"), list):
        return None
    changes: list[RepairChange] = []
    for candidate in parsed["changes"]:
        change = coerce_change(candidate)
        if change is not None:
            changes.append(change)
        if len(changes) >= MAX_CHANGES_PER_ROUND:
            break
    return ParsedRepair(changes=tuple(changes), notes=_normalize_notes(parsed.get("notes")))


def strip_code_fences(raw: str) -> str:
    return _FENCE_RE.sub("", raw).strip()


def try_strict_parse(text: str) -> ParsedRepair | None:
    try:
        decoded = json.loads(text)
    except (json.JSONDecodeError, RecursionError) as exc:
        LOGGER.debug("repair_parser.strict_failed", extra={"extra_payload": {"error": str(exc)}})
        return None
    return normalize_repair_object(decoded)


def extract_first_json_object(text: str) -> str | None:
    """Return the first balanced ``{...}`` substring, ignoring braces inside strings."""

    start = text.find("{")
    if start == -1:
        return None
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : index + 1]
    return None


def sanitize_json_like(text: str) -> str:
    """Escape bare CR/LF characters that appear inside JSON string literals."""

    pieces: list[str] = []
    in_string = False
    escaped = False
    for char in text:
        if escaped:
            pieces.append(char)
            escaped = False
            continue
        if char == "\\":
            pieces.append(char)
            escaped = True
            continue
        if char == '"':
            in_string = not in_string
            pieces.append(char)
            continue
        if in_string and char == "\n":
            pieces.append("\\n")
            continue
        if in_string and char == "\r":
            pieces.append("\\r")
            continue
        pieces.append(char)
    return "".join(pieces)


def parse_direct(text: str) -> ParsedRepair | None:
    return try_strict_parse(text)


def parse_first_object(text: str) -> ParsedRepair | None:
    candidate = extract_first_json_object(text)
    return try_strict_parse(candidate) if candidate else None


def parse_sanitized_first_object(text: str) -> ParsedRepair | None:
    candidate = extract_first_json_object(text)
    return try_strict_parse(sanitize_json_like(candidate)) if candidate else None


def parse_sanitized(text: str) -> ParsedRepair | None:
    return try_strict_parse(sanitize_json_like(text))


def parse_loose(text: str) -> ParsedRepair | None:
    """Recover change triples with a regular expression when JSON is broken."""

    changes: list[RepairChange] = []
    for match in _LOOSE_CHANGE_RE.finditer(text):
        change = coerce_change(
            {"region": match.group(1), "original": match.group(2), "replacement": match.group(3)}
        )
        if change is None:
            continue
        changes.append(change)
        if len(changes) >= MAX_CHANGES_PER_ROUND:
            break
    if not changes:
        return None
    notes_match = _LOOSE_NOTES_RE.search(text)
    notes = _normalize_notes(unescape_value(notes_match.group(1))) if notes_match else None
    return ParsedRepair(changes=tuple(changes), notes=notes)


DEFAULT_STRATEGIES: Final[tuple[ParseStrategy, ...]] = (
    parse_direct,
    parse_first_object,
    parse_sanitized_first_object,
    parse_sanitized,
    parse_loose,
)


def parse_repair_response(
    raw: str,
    strategies: Sequence[ParseStrategy] = DEFAULT_STRATEGIES,
) -> ParsedRepair | None:
    """Parse ``raw`` model output, trying each strategy in order."""

    cleaned = strip_code_fences(raw or "")
    if not cleaned:
        return None
    for strategy in strategies:
        result = strategy(cleaned)
        if result is not None:
            LOGGER.debug(
                "repair_parser.parsed",
                extra={"extra_payload": {"strategy": strategy.__name__, "changes": len(result.changes)}},
            )
            return result
    LOGGER.warning("repair_parser.unparseable", extra={"extra_payload": {"raw": raw[:500]}})
    return None


__all__ = [
    "DEFAULT_STRATEGIES",
    "MAX_CHANGES_PER_ROUND",
    "ParsedRepair",
    "RepairChange",
    "Region",
    "coerce_change",
    "extract_first_json_object",
    "parse_direct",
    "parse_first_object",
    "parse_loose",
    "parse_repair_response",
    "parse_sanitized",
    "parse_sanitized_first_object",
    "sanitize_json_like",
    "strip_code_fences",
    "unescape_value",
]
