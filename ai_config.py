"""Completion-service provider selection.

AI_PROVIDER picks the backend used by every completion call:

  openai    : OPENAI_API_KEY, optional OPENAI_MODEL (default gpt-4o)
  azure     : AZURE_OPENAI_API_KEY, AZURE_OPENAI_ENDPOINT,
              AZURE_OPENAI_MODEL_DEPLOYMENT, optional AZURE_OPENAI_API_VERSION
  anthropic : ANTHROPIC_API_KEY, optional CLAUDE_MODEL

Configuration is read at call time so tests and the CLI can adjust the
environment after import.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

from openai import AsyncAzureOpenAI, AsyncOpenAI, AzureOpenAI, OpenAI

PROVIDERS: tuple[str, ...] = ("openai", "azure", "anthropic")
_DEFAULT_AZURE_API_VERSION = "2024-10-21"

_REQUIRED_ENV: dict[str, tuple[str, ...]] = {
    "openai": ("OPENAI_API_KEY",),
    "azure": ("AZURE_OPENAI_API_KEY", "AZURE_OPENAI_ENDPOINT", "AZURE_OPENAI_MODEL_DEPLOYMENT"),
    "anthropic": ("ANTHROPIC_API_KEY",),
}


@dataclass(frozen=True, slots=True)
class AIConfig:
    provider: str
    model: str


def get_ai_config() -> AIConfig:
    """Resolve and validate the configured provider.

    Raises RuntimeError naming the first missing environment variable, or
    the unsupported provider name.
    """
    provider = os.getenv("AI_PROVIDER", "openai").strip().lower()
    if provider not in PROVIDERS:
        raise RuntimeError(f"Unsupported AI_PROVIDER {provider!r}; expected one of {PROVIDERS}")

    for name in _REQUIRED_ENV[provider]:
        if not os.getenv(name):
            raise RuntimeError(f"{name} environment variable is required for AI_PROVIDER={provider}")

    if provider == "azure":
        model = os.environ["AZURE_OPENAI_MODEL_DEPLOYMENT"]
    elif provider == "anthropic":
        model = os.getenv("CLAUDE_MODEL", "claude-sonnet-4-5")
    else:
        model = os.getenv("OPENAI_MODEL", "gpt-4o")
    return AIConfig(provider=provider, model=model)


def _azure_kwargs() -> dict[str, Any]:
    return {
        "api_key": os.environ["AZURE_OPENAI_API_KEY"],
        "azure_endpoint": os.environ["AZURE_OPENAI_ENDPOINT"],
        "api_version": os.getenv("AZURE_OPENAI_API_VERSION", _DEFAULT_AZURE_API_VERSION),
    }


def create_openai_client(config: AIConfig) -> OpenAI:
    """Synchronous OpenAI-compatible client for the openai/azure providers."""
    if config.provider == "azure":
        return AzureOpenAI(**_azure_kwargs())
    return OpenAI(api_key=os.environ["OPENAI_API_KEY"])


def create_async_openai_client(config: AIConfig) -> AsyncOpenAI:
    """Async OpenAI-compatible client, used for answer streaming."""
    if config.provider == "azure":
        return AsyncAzureOpenAI(**_azure_kwargs())
    return AsyncOpenAI(api_key=os.environ["OPENAI_API_KEY"])
