from __future__ import annotations

from types import SimpleNamespace
from typing import Iterator, List

import openai
import pytest

from monthplan.core.config import settings
from monthplan.services.llm_client import (
    ModelError,
    OpenRouterChatModel,
    StreamChunk,
    collect_chat_completion,
    get_chat_model,
    translate_sdk_chunk,
)

MESSAGES = [{"role": "user", "content": "Plan my month"}]


class _ScriptedChatModel:
    def __init__(self, chunks: List[StreamChunk], error: Exception | None = None):
        self.chunks = chunks
        self.error = error
        self.calls: list[dict] = []

    def stream_chat(self, *, model, messages, temperature=None, max_tokens=None) -> Iterator[StreamChunk]:
        self.calls.append({"model": model, "messages": messages, "temperature": temperature, "max_tokens": max_tokens})
        for chunk in self.chunks:
            yield chunk
        if self.error:
            raise self.error


def _sdk_chunk(content=None, finish_reason=None, usage=None):
    choices = [] if content is None and finish_reason is None else [
        SimpleNamespace(delta=SimpleNamespace(content=content), finish_reason=finish_reason)
    ]
    return SimpleNamespace(choices=choices, usage=usage)


def test_collect_concatenates_deltas_until_done() -> None:
    model = _ScriptedChatModel(
        [
            StreamChunk(delta="Hel"),
            StreamChunk(delta="lo"),
            StreamChunk(usage={"total_tokens": 12}),
            StreamChunk(done=True, finish_reason="stop"),
            StreamChunk(delta="ignored"),
        ]
    )

    result = collect_chat_completion(model, messages=MESSAGES, model="test/model", temperature=0.2)

    assert result.content == "Hello"
    assert result.finish_reason == "stop"
    assert result.usage == {"total_tokens": 12}
    assert model.calls[0]["model"] == "test/model"
    assert model.calls[0]["temperature"] == 0.2


def test_collect_uses_configured_model_by_default() -> None:
    model = _ScriptedChatModel([StreamChunk(done=True)])

    collect_chat_completion(model, messages=MESSAGES)

    assert model.calls[0]["model"] == settings.openrouter_model


def test_error_chunk_raises_model_error() -> None:
    model = _ScriptedChatModel([StreamChunk(delta="partial"), StreamChunk(error="Rate limit exceeded")])

    with pytest.raises(ModelError, match="Rate limit exceeded"):
        collect_chat_completion(model, messages=MESSAGES)


def test_sdk_errors_are_wrapped() -> None:
    model = _ScriptedChatModel([StreamChunk(delta="partial")], error=openai.OpenAIError("connection reset"))

    with pytest.raises(ModelError, match="connection reset"):
        collect_chat_completion(model, messages=MESSAGES)


def test_translate_sdk_chunks() -> None:
    assert translate_sdk_chunk(_sdk_chunk(content="abc")).delta == "abc"
    assert translate_sdk_chunk(_sdk_chunk(finish_reason="stop")).finish_reason == "stop"
    assert translate_sdk_chunk(_sdk_chunk(usage={"prompt_tokens": 3})).usage == {"prompt_tokens": 3}
    assert translate_sdk_chunk(SimpleNamespace(error={"message": "Provider down"})).error == "Provider down"
    assert translate_sdk_chunk(_sdk_chunk(finish_reason="error")).error


def test_openrouter_model_streams_sdk_chunks() -> None:
    captured: dict = {}

    def fake_create(**kwargs):
        captured.update(kwargs)
        return iter(
            [
                _sdk_chunk(content="{\"monthly"),
                _sdk_chunk(content="_summary\": \"x\"}"),
                _sdk_chunk(finish_reason="stop"),
                _sdk_chunk(usage={"total_tokens": 40}),
            ]
        )

    chat_model = OpenRouterChatModel(api_key="test-key", base_url="https://openrouter.test/api/v1", timeout=5)
    chat_model._client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=fake_create)))

    result = collect_chat_completion(chat_model, messages=MESSAGES, model="google/gemini-2.5-flash", max_tokens=500)

    assert result.content == '{"monthly_summary": "x"}'
    assert result.finish_reason == "stop"
    assert result.usage == {"total_tokens": 40}
    assert captured["stream"] is True
    assert captured["stream_options"] == {"include_usage": True}
    assert captured["max_tokens"] == 500
    assert captured["messages"] == MESSAGES


def test_missing_api_key_fails_at_call_time(monkeypatch) -> None:
    monkeypatch.setattr(settings, "openrouter_api_key", None)

    chat_model = get_chat_model()

    with pytest.raises(ModelError, match="OPENROUTER_API_KEY"):
        collect_chat_completion(chat_model, messages=MESSAGES)
