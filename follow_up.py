"""Follow-up question generation for a completed answer."""

from __future__ import annotations

import logging
from typing import Any

from llm_client import complete_json

MAX_QUESTIONS = 5
ANSWER_EXCERPT_CHARS = 1500
FOLLOW_UP_MAX_TOKENS = 500
FOLLOW_UP_TEMPERATURE = 0.7

LOGGER = logging.getLogger(__name__)

_SYSTEM_PROMPT = (
    "You are a helpful assistant that generates relevant follow-up questions based on a "
    "user's query and an AI response. Return a JSON object with an array of follow-up "
    "questions under the key 'questions'."
)


def _user_prompt(query: str, answer: str) -> str:
    excerpt = answer[:ANSWER_EXCERPT_CHARS]
    if len(answer) > ANSWER_EXCERPT_CHARS:
        excerpt += "..."
    return (
        "Based on the following user query and AI response, generate 3-5 relevant follow-up "
        "questions that the user might want to ask next.\n"
        "The questions should be concise, diverse, and help the user explore the topic further.\n\n"
        f'Original Query: "{query}"\n\n'
        f'AI Response: "{excerpt}"\n\n'
        'Respond only with JSON of the form {"questions": ["..."]}.'
    )


def generate_follow_up_questions(query: str, answer: str) -> list[str]:
    """Ask the completion service for follow-ups; never raises.

    Any failure (configuration, transport, unparseable output) is logged and
    yields an empty list.
    """
    try:
        parsed = complete_json(
            _SYSTEM_PROMPT,
            _user_prompt(query, answer),
            max_tokens=FOLLOW_UP_MAX_TOKENS,
            temperature=FOLLOW_UP_TEMPERATURE,
        )
    except Exception as exc:
        LOGGER.warning("Follow-up generation failed for query=%r: %s", query, exc)
        return []

    questions = extract_questions(parsed)
    LOGGER.info("Generated %s follow-up questions for query=%r", len(questions), query)
    return questions


def extract_questions(parsed: Any) -> list[str]:
    """Normalize whatever shape the model returned into at most MAX_QUESTIONS strings.

    Accepted shapes, in order:
    - a bare array
    - {"questions": [...]}
    - {"followUpQuestions": [...]} or {"follow_up_questions": [...]}
    - any other object: keys containing '?', string values containing '?',
      and the string members of array values
    Anything else yields [].
    """
    candidates: Any = []
    if isinstance(parsed, list):
        candidates = parsed
    elif isinstance(parsed, dict):
        if parsed.get("questions"):
            candidates = parsed["questions"]
        elif parsed.get("followUpQuestions") or parsed.get("follow_up_questions"):
            candidates = parsed.get("followUpQuestions") or parsed.get("follow_up_questions")
        else:
            candidates = _scan_malformed(parsed)

    if not isinstance(candidates, list):
        return []
    return [item for item in candidates if isinstance(item, str)][:MAX_QUESTIONS]


def _scan_malformed(parsed: dict[str, Any]) -> list[str]:
    found = [key for key in parsed if isinstance(key, str) and "?" in key]
    for value in parsed.values():
        if isinstance(value, str) and "?" in value:
            found.append(value)
        elif isinstance(value, list):
            found.extend(item for item in value if isinstance(item, str))
    return found
