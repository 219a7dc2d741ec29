"""
OpenAI Responses API provider.

The stream uses named events; text arrives in response.output_text.delta
events and failures arrive as response.failed or error events.
"""

import orjson

from chatstream.config import settings
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
    record_event_name,
    resolve_base_url,
)
from chatstream.streaming.sse import StreamRecord
from chatstream.utils.message_helpers import format_for_openai, outbound_history

# Event names
TEXT_DELTA_EVENT = "response.output_text.delta"
FAILURE_EVENTS = ("response.failed", "error")


def decode_delta_event(record: StreamRecord) -> TokenResult:
    """Decode one Responses API record."""
    if record.data is None:
        return IGNORED
    # Skip parsing for named events we never act on
    if record.event is not None and record.event != TEXT_DELTA_EVENT and record.event not in FAILURE_EVENTS:
        return IGNORED

    try:
        payload = load_payload(record.data)
    except orjson.JSONDecodeError as e:
        return TerminalError(describe_json_error("openai", e))

    name = record_event_name(record, payload)

    if name == TEXT_DELTA_EVENT:
        delta = payload.get("delta") if isinstance(payload, dict) else None
        if not isinstance(delta, str):
            return TerminalError(f"openai: '{name}' event has no delta string")
        return Token(delta) if delta else IGNORED

    if name in FAILURE_EVENTS:
        error = extract_error_envelope(payload)
        if error is None and isinstance(payload, dict):
            error = extract_error_envelope(payload.get("response"))
        if error is None:
            return TerminalError(f"openai: unknown error structure in '{name}' event: {record.data}")
        return error

    # Completion is signalled by the transport closing, not by this event
    return IGNORED


def build_request(model: ModelConfig, messages: list[Message], api_key: str) -> PreparedRequest:
    base = resolve_base_url(model, settings.openai_base_url)

    payload = {
        "model": model.model_name,
        "input": [format_for_openai(m) for m in outbound_history(messages)],
        "stream": True,
    }
    if model.requires_reasoning_parameter:
        payload["reasoning"] = {"effort": model.reasoning_effort}

    return PreparedRequest(
        url=join_url(base, "/responses"),
        headers=bearer_headers(api_key),
        body=encode_body(payload, model),
    )


openai_adapter = ProviderAdapter(
    name="openai",
    decoder=DecoderKind.DELTA_EVENT,
    build_request=build_request,
)
