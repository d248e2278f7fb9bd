import os
from unittest.mock import patch

import pytest

from ai_config import AIConfig, create_async_openai_client, create_openai_client, get_ai_config


def test_defaults_to_openai() -> None:
    with patch.dict(os.environ, {"OPENAI_API_KEY": "sk-test"}, clear=True):
        assert get_ai_config() == AIConfig(provider="openai", model="gpt-4o")


def test_openai_model_override() -> None:
    env = {"AI_PROVIDER": "OpenAI", "OPENAI_API_KEY": "sk-test", "OPENAI_MODEL": "gpt-4o-mini"}
    with patch.dict(os.environ, env, clear=True):
        assert get_ai_config() == AIConfig(provider="openai", model="gpt-4o-mini")


def test_missing_openai_key() -> None:
    with patch.dict(os.environ, {}, clear=True):
        with pytest.raises(RuntimeError, match="OPENAI_API_KEY"):
            get_ai_config()


def test_azure_uses_deployment_name() -> None:
    env = {
        "AI_PROVIDER": "azure",
        "AZURE_OPENAI_API_KEY": "key",
        "AZURE_OPENAI_ENDPOINT": "https://example.openai.azure.com",
        "AZURE_OPENAI_MODEL_DEPLOYMENT": "answers-deploy",
    }
    with patch.dict(os.environ, env, clear=True):
        assert get_ai_config() == AIConfig(provider="azure", model="answers-deploy")


def test_azure_names_first_missing_variable() -> None:
    env = {"AI_PROVIDER": "azure", "AZURE_OPENAI_API_KEY": "key"}
    with patch.dict(os.environ, env, clear=True):
        with pytest.raises(RuntimeError, match="AZURE_OPENAI_ENDPOINT"):
            get_ai_config()


def test_anthropic_provider() -> None:
    env = {"AI_PROVIDER": "anthropic", "ANTHROPIC_API_KEY": "key", "CLAUDE_MODEL": "claude-test"}
    with patch.dict(os.environ, env, clear=True):
        assert get_ai_config() == AIConfig(provider="anthropic", model="claude-test")


def test_unsupported_provider() -> None:
    with patch.dict(os.environ, {"AI_PROVIDER": "llama"}, clear=True):
        with pytest.raises(RuntimeError, match="Unsupported AI_PROVIDER"):
            get_ai_config()


def test_client_factories_pick_azure() -> None:
    env = {
        "AZURE_OPENAI_API_KEY": "key",
        "AZURE_OPENAI_ENDPOINT": "https://example.openai.azure.com",
    }
    config = AIConfig(provider="azure", model="deploy")
    with patch.dict(os.environ, env, clear=True):
        with patch("ai_config.AzureOpenAI") as mock_sync, patch("ai_config.AsyncAzureOpenAI") as mock_async:
            create_openai_client(config)
            create_async_openai_client(config)

    for mock_cls in (mock_sync, mock_async):
        kwargs = mock_cls.call_args.kwargs
        assert kwargs["api_key"] == "key"
        assert kwargs["azure_endpoint"] == "https://example.openai.azure.com"
        assert kwargs["api_version"] == "2024-10-21"


def test_client_factories_pick_openai() -> None:
    config = AIConfig(provider="openai", model="gpt-4o")
    with patch.dict(os.environ, {"OPENAI_API_KEY": "sk-test"}, clear=True):
        with patch("ai_config.OpenAI") as mock_sync, patch("ai_config.AsyncOpenAI") as mock_async:
            create_openai_client(config)
            create_async_openai_client(config)

    mock_sync.assert_called_once_with(api_key="sk-test")
    mock_async.assert_called_once_with(api_key="sk-test")
