"""Thin wrapper around the Anthropic Messages API."""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from typing import Any

import anthropic

LOGGER = logging.getLogger(__name__)


def _split_system(messages: list[dict[str, str]]) -> tuple[str | None, list[dict[str, Any]]]:
    """Pull the system message out; Anthropic takes it via the system= parameter."""
    system: str | None = None
    filtered: list[dict[str, Any]] = []
    for msg in messages:
        if msg["role"] == "system":
            system = msg["content"]
        else:
            filtered.append({"role": msg["role"], "content": msg["content"]})
    return system, filtered


def _request_kwargs(
    messages: list[dict[str, str]],
    model: str,
    max_tokens: int,
    temperature: float,
) -> dict[str, Any]:
    system, filtered = _split_system(messages)
    kwargs: dict[str, Any] = {
        "model": model,
        "max_tokens": max_tokens,
        "temperature": temperature,
        "messages": filtered,
    }
    if system:
        kwargs["system"] = system
    return kwargs


def claude_chat(
    messages: list[dict[str, str]],
    model: str,
    max_tokens: int = 1024,
    temperature: float = 0.7,
) -> str:
    """Call the Claude API and return the assistant reply as a string.

    Args:
        messages: List of message dicts with "role" and "content" keys.
        model: Claude model name.
        max_tokens: Hard cap on output tokens (keep low for JSON-only tasks).
        temperature: Sampling temperature.
    """
    api_key = os.getenv("ANTHROPIC_API_KEY")
    if not api_key:
        raise RuntimeError("ANTHROPIC_API_KEY environment variable is required")

    client = anthropic.Anthropic(api_key=api_key)
    LOGGER.debug("Calling Claude model=%s max_tokens=%s", model, max_tokens)
    response = client.messages.create(**_request_kwargs(messages, model, max_tokens, temperature))
    return "".join(block.text for block in response.content if getattr(block, "type", "") == "text")


async def claude_stream(
    messages: list[dict[str, str]],
    model: str,
    max_tokens: int = 1024,
    temperature: float = 0.5,
) -> AsyncIterator[str]:
    """Yield text deltas from a streamed Claude reply."""
    api_key = os.getenv("ANTHROPIC_API_KEY")
    if not api_key:
        raise RuntimeError("ANTHROPIC_API_KEY environment variable is required")

    client = anthropic.AsyncAnthropic(api_key=api_key)
    LOGGER.debug("Streaming Claude model=%s max_tokens=%s", model, max_tokens)
    async with client.messages.stream(**_request_kwargs(messages, model, max_tokens, temperature)) as stream:
        async for text in stream.text_stream:
            yield text
