"""
Chat Completions streaming, shared by xAI and user-configured
OpenAI-compatible endpoints (Ollama, LM Studio, vLLM, ...).
"""

from typing import Any, Dict, Optional

import orjson

from chatstream.models.message import Message
from chatstream.models.model_config import ModelConfig
from chatstream.providers.base import (
    IGNORED,
    DecoderKind,
    PreparedRequest,
    ProviderAdapter,
    TerminalError,
    Token,
    TokenResult,
    bearer_headers,
    describe_json_error,
    encode_body,
    extract_error_envelope,
    join_url,
    load_payload,
    resolve_base_url,
)
from chatstream.streaming.sse import SSE_DONE_SENTINEL, StreamRecord
from chatstream.utils.message_helpers import format_for_openai, outbound_history


def decode_chat_completion_chunk(record: StreamRecord) -> TokenResult:
    """Decode one chat.completion.chunk record."""
    if not record.data or record.data == SSE_DONE_SENTINEL:
        # The parser already swallows [DONE]
        return IGNORED

    try:
        payload = load_payload(record.data)
    except orjson.JSONDecodeError as e:
        return TerminalError(describe_json_error("chat completion", e))

    if not isinstance(payload, dict):
        return TerminalError(f"chat completion: expected a JSON object, got: {record.data}")

    error = extract_error_envelope(payload)
    if error is not None:
        return error

    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return IGNORED

    delta = choices[0].get("delta")
    if not isinstance(delta, dict):
        return IGNORED

    content = delta.get("content")
    if isinstance(content, str):
        return Token(content)
    return IGNORED


def build_chat_completion_request(
    model: ModelConfig,
    messages: list[Message],
    api_key: str,
    default_base_url: Optional[str] = None,
    defaults: Optional[Dict[str, Any]] = None,
) -> PreparedRequest:
    """Build a streaming /chat/completions request."""
    base = resolve_base_url(model, default_base_url)

    payload: Dict[str, Any] = {
        "messages": [format_for_openai(m) for m in outbound_history(messages)],
        "model": model.model_name,
        "stream": True,
    }
    if defaults:
        payload.update(defaults)
    if model.requires_reasoning_parameter:
        payload["reasoning_effort"] = model.reasoning_effort

    return PreparedRequest(
        url=join_url(base, "/chat/completions"),
        headers=bearer_headers(api_key),
        body=encode_body(payload, model),
    )


def build_request(model: ModelConfig, messages: list[Message], api_key: str) -> PreparedRequest:
    """Custom endpoints have no default; the model must carry its base_url."""
    return build_chat_completion_request(model, messages, api_key)


openai_compatible_adapter = ProviderAdapter(
    name="openai-compatible",
    decoder=DecoderKind.CHAT_COMPLETION_CHUNK,
    build_request=build_request,
)
