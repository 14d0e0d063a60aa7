"""Streaming chat-completion client for the plan generator.

The generator depends on the ``ChatModel`` protocol rather than on a shared
SDK client, so tests (and alternative providers) pass their own object.
``OpenRouterChatModel`` talks to OpenRouter through its OpenAI-compatible
endpoint using the ``openai`` SDK.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Protocol, Sequence

import openai

from monthplan.core.config import settings

logger = logging.getLogger(__name__)


class ModelError(RuntimeError):
    """Raised when the model provider fails or returns an error payload."""


@dataclass
class StreamChunk:
    delta: Optional[str] = None
    usage: Optional[Dict[str, Any]] = None
    done: bool = False
    finish_reason: Optional[str] = None
    error: Optional[str] = None


@dataclass
class CompletionResult:
    content: str
    finish_reason: Optional[str] = None
    usage: Dict[str, Any] = field(default_factory=dict)


class ChatModel(Protocol):
    def stream_chat(
        self,
        *,
        model: str,
        messages: Sequence[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> Iterator[StreamChunk]:
        ...


class OpenRouterChatModel:
    """ChatModel backed by OpenRouter's OpenAI-compatible streaming API."""

    def __init__(self, api_key: str, base_url: Optional[str] = None, timeout: Optional[float] = None):
        self._client = openai.OpenAI(
            api_key=api_key,
            base_url=base_url or settings.openrouter_base_url,
            timeout=timeout if timeout is not None else settings.openrouter_timeout_seconds,
        )

    def stream_chat(
        self,
        *,
        model: str,
        messages: Sequence[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> Iterator[StreamChunk]:
        kwargs: Dict[str, Any] = {
            "model": model,
            "messages": list(messages),
            "stream": True,
            "stream_options": {"include_usage": True},
        }
        if temperature is not None:
            kwargs["temperature"] = temperature
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens

        stream = self._client.chat.completions.create(**kwargs)
        finish_reason: Optional[str] = None
        for sdk_chunk in stream:
            chunk = translate_sdk_chunk(sdk_chunk)
            if chunk.error:
                yield chunk
                return
            if chunk.finish_reason:
                finish_reason = chunk.finish_reason
            if chunk.delta or chunk.usage:
                yield StreamChunk(delta=chunk.delta, usage=chunk.usage)
        yield StreamChunk(done=True, finish_reason=finish_reason)


def translate_sdk_chunk(sdk_chunk: Any) -> StreamChunk:
    """Map an SDK ``ChatCompletionChunk`` (or OpenRouter error chunk) to a StreamChunk."""
    error = getattr(sdk_chunk, "error", None)
    if error is None:
        extra = getattr(sdk_chunk, "model_extra", None) or {}
        error = extra.get("error")
    if error:
        message = error.get("message") if isinstance(error, dict) else getattr(error, "message", None)
        return StreamChunk(error=message or str(error))

    usage = getattr(sdk_chunk, "usage", None)
    usage_payload = usage.model_dump() if hasattr(usage, "model_dump") else usage

    choices = getattr(sdk_chunk, "choices", None) or []
    if not choices:
        return StreamChunk(usage=usage_payload)

    choice = choices[0]
    delta = getattr(getattr(choice, "delta", None), "content", None)
    finish_reason = getattr(choice, "finish_reason", None)
    if finish_reason == "error":
        return StreamChunk(error="Model provider reported an error while streaming")
    return StreamChunk(delta=delta, usage=usage_payload, finish_reason=finish_reason)


def collect_chat_completion(
    chat_model: ChatModel,
    *,
    messages: Sequence[Dict[str, str]],
    model: Optional[str] = None,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
) -> CompletionResult:
    """Concatenate streamed deltas until the stream reports done or error."""
    model_name = model or settings.openrouter_model
    parts: List[str] = []
    usage: Dict[str, Any] = {}
    finish_reason: Optional[str] = None

    try:
        for chunk in chat_model.stream_chat(
            model=model_name,
            messages=messages,
            temperature=temperature if temperature is not None else settings.openrouter_temperature,
            max_tokens=max_tokens if max_tokens is not None else settings.openrouter_max_tokens,
        ):
            if chunk.error:
                raise ModelError(chunk.error)
            if chunk.delta:
                parts.append(chunk.delta)
            if chunk.usage:
                usage.update(chunk.usage)
            if chunk.done:
                finish_reason = chunk.finish_reason
                break
    except ModelError:
        raise
    except openai.APITimeoutError as exc:
        raise ModelError("Model request timed out") from exc
    except openai.OpenAIError as exc:
        raise ModelError(str(exc) or "Model request failed") from exc

    content = "".join(parts)
    logger.info(
        "Model completion collected (model=%s, chars=%s, finish_reason=%s)",
        model_name,
        len(content),
        finish_reason,
    )
    return CompletionResult(content=content, finish_reason=finish_reason, usage=usage)


def get_chat_model() -> ChatModel:
    """FastAPI dependency returning a configured OpenRouter chat model."""
    api_key = settings.openrouter_api_key
    if not api_key:
        return _UnconfiguredChatModel()
    return OpenRouterChatModel(api_key=api_key)


class _UnconfiguredChatModel:
    """Placeholder that fails at call time so a missing key surfaces as a model error."""

    def stream_chat(self, **_: Any) -> Iterator[StreamChunk]:
        raise ModelError("OPENROUTER_API_KEY environment variable is not set")
