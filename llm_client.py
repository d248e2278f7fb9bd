"""Completion-service calls: JSON-mode requests and streamed answers."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from json import JSONDecodeError
from typing import Any

from ai_config import AIConfig, create_async_openai_client, create_openai_client, get_ai_config
from anthropic_client import claude_chat, claude_stream

LOGGER = logging.getLogger(__name__)


def _messages(system_prompt: str, user_prompt: str) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt},
    ]


def complete_json(
    system_prompt: str,
    user_prompt: str,
    max_tokens: int = 500,
    temperature: float = 0.7,
    config: AIConfig | None = None,
) -> Any:
    """Request a single JSON reply and return the decoded value.

    The value is whatever the model produced (usually an object, sometimes a
    bare array). Raises RuntimeError if the reply is empty or contains no
    decodable JSON.
    """
    config = config or get_ai_config()
    messages = _messages(system_prompt, user_prompt)

    if config.provider == "anthropic":
        content = claude_chat(messages, model=config.model, max_tokens=max_tokens, temperature=temperature)
    else:
        client = create_openai_client(config)
        response = client.chat.completions.create(
            model=config.model,
            temperature=temperature,
            max_completion_tokens=max_tokens,
            response_format={"type": "json_object"},
            messages=messages,
        )
        content = response.choices[0].message.content

    if not content:
        raise RuntimeError(f"{config.provider} returned an empty response")
    return _parse_json_content(content)


async def stream_completion(
    system_prompt: str,
    user_prompt: str,
    max_tokens: int = 1500,
    temperature: float = 0.5,
    config: AIConfig | None = None,
) -> AsyncIterator[str]:
    """Yield non-empty text deltas of a streamed completion.

    Closing the generator early closes the underlying provider stream.
    """
    config = config or get_ai_config()
    messages = _messages(system_prompt, user_prompt)
    LOGGER.info("Opening %s completion stream model=%s", config.provider, config.model)

    if config.provider == "anthropic":
        async for text in claude_stream(messages, model=config.model, max_tokens=max_tokens, temperature=temperature):
            if text:
                yield text
        return

    client = create_async_openai_client(config)
    stream = await client.chat.completions.create(
        model=config.model,
        temperature=temperature,
        max_completion_tokens=max_tokens,
        messages=messages,
        stream=True,
    )
    try:
        async for chunk in stream:
            if not chunk.choices:
                continue
            content = chunk.choices[0].delta.content
            if content:
                yield content
    finally:
        await stream.close()


def _parse_json_content(content: str) -> Any:
    """Parse possibly noisy model output into a JSON value."""
    try:
        return json.loads(content)
    except JSONDecodeError:
        return _extract_first_json_value(content)


def _extract_first_json_value(content: str) -> Any:
    """Extract the first decodable JSON object or array from an arbitrary string."""
    decoder = json.JSONDecoder()
    for index, char in enumerate(content):
        if char not in "{[":
            continue
        try:
            candidate, _ = decoder.raw_decode(content[index:])
        except JSONDecodeError:
            continue
        if isinstance(candidate, (dict, list)):
            return candidate
    raise RuntimeError("Could not extract valid JSON from completion output")
