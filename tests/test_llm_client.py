import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from ai_config import AIConfig
from llm_client import _parse_json_content, complete_json, stream_completion

_OPENAI = AIConfig(provider="openai", model="gpt-test")
_CLAUDE = AIConfig(provider="anthropic", model="claude-test")


def _chunk(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


class _FakeStream:
    """Async-iterable stand-in for openai.AsyncStream."""

    def __init__(self, chunks: list[SimpleNamespace], fail_after: int | None = None) -> None:
        self._chunks = chunks
        self._fail_after = fail_after
        self.closed = False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for index, chunk in enumerate(self._chunks):
            if self._fail_after is not None and index == self._fail_after:
                raise RuntimeError("connection reset")
            yield chunk

    async def close(self) -> None:
        self.closed = True


def _collect(agen) -> list[str]:
    async def _run() -> list[str]:
        return [item async for item in agen]

    return asyncio.run(_run())


def test_parse_json_content_with_wrapping_text() -> None:
    wrapped = 'Here you go:\n{"questions": ["What is X?"]}\nThanks!'
    assert _parse_json_content(wrapped) == {"questions": ["What is X?"]}


def test_parse_json_content_accepts_bare_array() -> None:
    assert _parse_json_content('Sure: ["a?", "b?"]') == ["a?", "b?"]


def test_parse_json_content_raises_without_json() -> None:
    with pytest.raises(RuntimeError, match="Could not extract"):
        _parse_json_content("no json here")


def test_complete_json_uses_json_mode() -> None:
    mock_choice = MagicMock()
    mock_choice.message.content = '{"suggestions": ["a", "b"]}'
    mock_client = MagicMock()
    mock_client.chat.completions.create.return_value = MagicMock(choices=[mock_choice])

    with patch("llm_client.create_openai_client", return_value=mock_client):
        result = complete_json("system", "user", max_tokens=300, temperature=0.7, config=_OPENAI)

    assert result == {"suggestions": ["a", "b"]}
    kwargs = mock_client.chat.completions.create.call_args.kwargs
    assert kwargs["response_format"] == {"type": "json_object"}
    assert kwargs["max_completion_tokens"] == 300
    assert kwargs["model"] == "gpt-test"
    assert kwargs["messages"][0] == {"role": "system", "content": "system"}


def test_complete_json_raises_on_empty_content() -> None:
    mock_choice = MagicMock()
    mock_choice.message.content = ""
    mock_client = MagicMock()
    mock_client.chat.completions.create.return_value = MagicMock(choices=[mock_choice])

    with patch("llm_client.create_openai_client", return_value=mock_client):
        with pytest.raises(RuntimeError, match="empty response"):
            complete_json("system", "user", config=_OPENAI)


def test_complete_json_routes_to_claude() -> None:
    with patch("llm_client.claude_chat", return_value='{"questions": []}') as mock_chat:
        result = complete_json("system", "user", max_tokens=200, config=_CLAUDE)

    assert result == {"questions": []}
    assert mock_chat.call_args.kwargs["model"] == "claude-test"
    assert mock_chat.call_args.kwargs["max_tokens"] == 200


def test_stream_completion_yields_non_empty_deltas_and_closes() -> None:
    stream = _FakeStream([_chunk("Hello"), _chunk(None), _chunk(""), _chunk(" world"), SimpleNamespace(choices=[])])
    mock_client = MagicMock()
    mock_client.chat.completions.create = AsyncMock(return_value=stream)

    with patch("llm_client.create_async_openai_client", return_value=mock_client):
        tokens = _collect(stream_completion("system", "user", max_tokens=64, config=_OPENAI))

    assert tokens == ["Hello", " world"]
    assert stream.closed is True
    assert mock_client.chat.completions.create.call_args.kwargs["stream"] is True


def test_stream_completion_closes_stream_on_failure() -> None:
    stream = _FakeStream([_chunk("partial"), _chunk("never")], fail_after=1)
    mock_client = MagicMock()
    mock_client.chat.completions.create = AsyncMock(return_value=stream)

    with patch("llm_client.create_async_openai_client", return_value=mock_client):
        with pytest.raises(RuntimeError, match="connection reset"):
            _collect(stream_completion("system", "user", config=_OPENAI))

    assert stream.closed is True


def test_stream_completion_routes_to_claude() -> None:
    async def fake_claude_stream(messages, model, max_tokens, temperature):
        for text in ("A", "", "B"):
            yield text

    with patch("llm_client.claude_stream", side_effect=fake_claude_stream):
        tokens = _collect(stream_completion("system", "user", config=_CLAUDE))

    assert tokens == ["A", "B"]
