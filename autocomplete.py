"""Search-box suggestions from a partial query."""

from __future__ import annotations

import logging

from llm_client import complete_json

MAX_SUGGESTIONS = 5

LOGGER = logging.getLogger(__name__)

_SYSTEM_PROMPT = (
    "You are a helpful assistant that generates search suggestions for a scientific research "
    "assistant. Generate 5 search suggestions based on the user's partial query. Return the "
    "suggestions in a JSON object with a 'suggestions' array."
)


def generate_suggestions(partial_query: str) -> list[str]:
    """Return up to MAX_SUGGESTIONS completions for a partial query, [] on any failure."""
    partial_query = (partial_query or "").strip()
    if not partial_query:
        return []

    try:
        parsed = complete_json(
            _SYSTEM_PROMPT,
            f'Generate 5 search suggestions for: "{partial_query}"',
            max_tokens=300,
            temperature=0.7,
        )
    except Exception as exc:
        LOGGER.warning("Suggestion generation failed for q=%r: %s", partial_query, exc)
        return []

    suggestions = parsed.get("suggestions") if isinstance(parsed, dict) else None
    if not isinstance(suggestions, list):
        return []
    return [item for item in suggestions if isinstance(item, str)][:MAX_SUGGESTIONS]
