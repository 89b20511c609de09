"""Diagnostic dumps for failed rewrites."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .persistence import dump_diagnostic

# Manuscript text never lands in a diagnostic file.
_SENSITIVE_DETAIL_KEYWORDS = ("text", "selection", "original", "replacement", "api_key")


@dataclass
class DiagnosticLogger:
    """Write structured diagnostics under ``<history_dir>/diagnostics``."""

    history_root: Path

    def log(
        self,
        *,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> Path:
        diagnostics_dir = self.history_root / "diagnostics"
        diagnostics_dir.mkdir(parents=True, exist_ok=True)

        now = datetime.now(tz=timezone.utc)
        slug = _normalise_code(code)
        stamp = now.strftime("%Y%m%dT%H%M%S%fZ")
        path = diagnostics_dir / f"{stamp}_{slug}.json"
        suffix = 1
        while path.exists():
            path = diagnostics_dir / f"{stamp}_{slug}_{suffix}.json"
            suffix += 1

        payload = {
            "timestamp": now.isoformat().replace("+00:00", "Z"),
            "code": code,
            "message": message,
            "details": _sanitize_details(details),
        }
        dump_diagnostic(path, payload)
        return path


def _normalise_code(code: str) -> str:
    cleaned = re.sub(r"[^a-z0-9_-]+", "-", code.lower())
    return re.sub(r"-+", "-", cleaned).strip("-") or "diagnostic"


def _sanitize_details(details: dict[str, Any] | None) -> dict[str, Any]:
    if not details:
        return {}
    return {
        key: "[REDACTED]" if _should_redact(key) and isinstance(value, str) else value
        for key, value in details.items()
    }


def _should_redact(key: str) -> bool:
    lower_key = key.lower()
    return any(keyword in lower_key for keyword in _SENSITIVE_DETAIL_KEYWORDS)


__all__ = ["DiagnosticLogger"]
