"""Lightweight Prometheus-style metrics utilities for the service."""

from __future__ import annotations

from collections import Counter
from threading import Lock
from typing import Iterable

_COUNTERS: Counter[str] = Counter()
_LOCK = Lock()

_HELP = {
    "inkwell_requests_total": ("counter", "Count of HTTP requests processed by the Inkwell service"),
    "inkwell_rewrites_total": ("counter", "Rewrite requests by outcome"),
    "inkwell_repair_rounds_total": ("counter", "Context repair model rounds executed"),
    "inkwell_repair_adjustments_total": ("counter", "Context repair edits applied"),
}


def _increment(sample: str, amount: int = 1) -> None:
    with _LOCK:
        _COUNTERS[sample] += amount


def record_request(method: str, status_code: int) -> None:
    """Track an HTTP request labelled by method and status code."""

    _increment(f'inkwell_requests_total{{method="{method.lower()}",status="{status_code}"}}')


def record_rewrite(outcome: str) -> None:
    """Track a rewrite outcome (``ok`` or an error code)."""

    _increment(f'inkwell_rewrites_total{{outcome="{outcome.lower()}"}}')


def record_repair(rounds: int, adjustments: int) -> None:
    _increment("inkwell_repair_rounds_total", rounds)
    _increment("inkwell_repair_adjustments_total", adjustments)


def _snapshot() -> Iterable[tuple[str, int]]:
    """Yield a snapshot of recorded counters in sorted order."""

    with _LOCK:
        return sorted(_COUNTERS.items())


def render(service_version: str) -> str:
    """Render metrics using the Prometheus text exposition format."""

    samples = list(_snapshot())
    lines: list[str] = []
    for name, (kind, description) in _HELP.items():
        lines.append(f"# HELP {name} {description}")
        lines.append(f"# TYPE {name} {kind}")
        matching = [(sample, value) for sample, value in samples if sample.split("{", 1)[0] == name]
        if not matching:
            lines.append(f"{name} 0")
        for sample, value in matching:
            lines.append(f"{sample} {value}")

    lines.extend(
        [
            "# HELP inkwell_service_info Static service metadata",
            "# TYPE inkwell_service_info gauge",
            f'inkwell_service_info{{version="{service_version}"}} 1',
        ]
    )
    return "\n".join(lines) + "\n"


__all__ = ["record_repair", "record_request", "record_rewrite", "render"]
