"""Splice model output into live chapter text at a client-computed selection."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from diff_match_patch import diff_match_patch

from .spans import SelectionSpan, splice

LOGGER = logging.getLogger(__name__)

# Fuzzy match score ceiling. A selection another rewrite already replaced must not match.
MATCH_THRESHOLD = 0.25


@dataclass(frozen=True)
class PatchResult:
    """Outcome of patching a selection.

    ``replacement`` is the text that now occupies ``span.start`` in ``text``;
    on the fuzzy path it is the patched live slice rather than the model output.
    """

    text: str
    success: bool
    replacement: str = ""


def apply_selection_patch(
    text: str,
    span: SelectionSpan,
    original_slice: str,
    replacement: str,
) -> PatchResult:
    """Replace ``span`` in ``text`` with ``replacement``.

    The exact path applies when the live slice still equals ``original_slice``.
    Otherwise a diff-match-patch patch from ``original_slice`` to ``replacement``
    is applied to the live slice; any hunk that fails to apply makes the whole
    patch a conflict and ``text`` is returned unchanged.
    """

    current_slice = span.slice(text)
    if current_slice == original_slice:
        return PatchResult(
            text=splice(text, span.start, span.end, replacement),
            success=True,
            replacement=replacement,
        )

    dmp = diff_match_patch()
    dmp.Match_Threshold = MATCH_THRESHOLD
    patches = dmp.patch_make(original_slice, replacement)
    patched, results = dmp.patch_apply(patches, current_slice)
    if not all(results) or not patched:
        LOGGER.info(
            "patch.conflict",
            extra={
                "extra_payload": {
                    "span": [span.start, span.end],
                    "hunks": len(results),
                    "applied": sum(1 for ok in results if ok),
                }
            },
        )
        return PatchResult(text=text, success=False)

    LOGGER.info(
        "patch.fuzzy_applied",
        extra={"extra_payload": {"span": [span.start, span.end], "hunks": len(results)}},
    )
    return PatchResult(
        text=splice(text, span.start, span.end, patched),
        success=True,
        replacement=patched,
    )


__all__ = ["PatchResult", "apply_selection_patch"]
