"""Prompt text for the rewrite and context-repair model calls."""

from __future__ import annotations

from typing import Final

REWRITE_SYSTEM_PROMPT: Final[str] = """You are a careful literary rewrite assistant.
- Preserve meaning, voice, POV, tense, and continuity unless instructed otherwise.
- Keep names, facts, and timelines intact.
- Retain paragraph breaks and formatting unless the user specifies otherwise.
- Output ONLY the rewritten passage without commentary unless the instructions specify a format.
- When given an explicit output format, follow it exactly."""

CONTEXT_REPAIR_SYSTEM_PROMPT: Final[str] = """You are a surgical continuity editor.
- Maintain consistency around a rewritten passage without changing its new content.
- Use the original rewrite conversation as context.
- Propose at most three precise edits per pass.
- Each edit must specify the exact original snippet to replace and the new text.
- Never alter the rewritten selection itself.
- Only operate on complete sentences around the selection (do not truncate sentences at the margins).
- Stop proposing edits when the context is consistent.
- Respond ONLY with strict raw JSON using the schema {"changes": Array<{"region": "before" | "after", "original": string, "replacement": string}>, "notes": string | null}."""


def normalize_language(language: str | None) -> str:
    """Collapse a language hint to the two prompt variants we support."""

    return "zh" if (language or "").lower().startswith("zh") else "en"


def build_rewrite_prompt(
    *,
    instruction: str,
    selected_text: str,
    language: str | None,
    online: bool,
    before_context: str,
    after_context: str,
) -> str:
    lang = normalize_language(language)
    zh_extra = (
        "\n- Use Simplified Chinese unless the original uses Traditional. Preserve idioms and honorifics."
        if lang == "zh"
        else ""
    )
    online_note = "\nWEB CONTEXT PROVIDED ABOVE." if online else ""
    constraints = "\n".join(
        [
            "- Keep length within ±20% unless instructed otherwise.",
            "- Retain paragraph breaks and spacing.",
            f"- Preserve narrative continuity.{online_note}",
            "- Return ONLY the rewritten selection with no commentary.",
        ]
    )
    return (
        f"INSTRUCTION:\n{instruction}\n\n"
        f"LANGUAGE:\n{lang}{zh_extra}\n\n"
        f"CONTEXT BEFORE:\n{before_context or '(none)'}\n\n"
        f"SELECTION:\n{selected_text}\n\n"
        f"CONTEXT AFTER:\n{after_context or '(none)'}\n\n"
        f"CONSTRAINTS:\n{constraints}"
    )


def build_repair_prompt(
    *,
    instruction: str,
    language: str | None,
    rewritten_selection: str,
    before_region: str,
    after_region: str,
    first_pass_conversation: str,
) -> str:
    language_name = "Chinese" if normalize_language(language) == "zh" else "English"
    return f"""You must repair continuity issues caused by the latest rewrite without touching the rewritten selection.
First-pass conversation (for context):
{first_pass_conversation or '(not available)'}
Instruction for the rewrite:
{instruction}
Language: {language_name}
Immutable rewritten selection:
<<<SELECTION>>>
{rewritten_selection or '(empty)'}
<<<END-SELECTION>>>
Editable context before the selection (use whole sentences only):
<<<BEFORE>>>
{before_region or '(none)'}
<<<END-BEFORE>>>
Editable context after the selection (use whole sentences only):
<<<AFTER>>>
{after_region or '(none)'}
<<<END-AFTER>>>
Task:
- Inspect the before/after context for inconsistencies with the rewritten selection.
- Propose at most three precise edits.
- Each edit must specify the exact original text to replace and the new text.
- Keep every edit self-contained within a single sentence boundary.
- Do not modify or duplicate the rewritten selection.
- If no edits are required, return an empty array.
Respond with STRICT JSON in this schema:
{{
  "changes": [
    {{ "region": "before" | "after", "original": string, "replacement": string }}
  ],
  "notes": string | null
}}"""


__all__ = [
    "CONTEXT_REPAIR_SYSTEM_PROMPT",
    "REWRITE_SYSTEM_PROMPT",
    "build_repair_prompt",
    "build_rewrite_prompt",
    "normalize_language",
]
