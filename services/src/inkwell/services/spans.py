"""Character-offset spans over immutable chapter text snapshots."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SelectionSpan:
    """Half-open ``[start, end)`` range of 0-based character offsets.

    A span is only meaningful against the text snapshot it was computed on;
    any splice before or inside it must produce a new, delta-adjusted span.
    """

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 0:
            raise ValueError("span start must not be negative")
        if self.end <= self.start:
            raise ValueError("Selection range is empty")

    @property
    def length(self) -> int:
        return self.end - self.start

    def slice(self, text: str) -> str:
        return text[self.start : self.end]

    def shift(self, delta: int) -> "SelectionSpan":
        """Return the span moved by ``delta`` characters."""

        if delta == 0:
            return self
        return SelectionSpan(self.start + delta, self.end + delta)

    @classmethod
    def covering(cls, start: int, text: str) -> "SelectionSpan":
        """Return the span occupied by ``text`` when spliced in at ``start``."""

        return cls(start, start + len(text))


def splice(text: str, start: int, end: int, replacement: str) -> str:
    """Return ``text`` with ``[start, end)`` replaced by ``replacement``."""

    return f"{text[:start]}{replacement}{text[end:]}"


__all__ = ["SelectionSpan", "splice"]
