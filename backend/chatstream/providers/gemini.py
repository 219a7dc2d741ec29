from urllib.parse import quote

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
    describe_json_error,
    encode_body,
    extract_error_envelope,
    join_url,
    load_payload,
    resolve_base_url,
)
from chatstream.streaming.sse import StreamRecord
from chatstream.utils.message_helpers import format_for_gemini, outbound_history


def decode_candidates_parts(record: StreamRecord) -> TokenResult:
    """Extract text content from Gemini SSE data."""
    if not record.data:
        return IGNORED

    try:
        data = load_payload(record.data)
    except orjson.JSONDecodeError as e:
        return TerminalError(describe_json_error("gemini", e))

    error = extract_error_envelope(data)
    if error is not None:
        return error
    if not isinstance(data, dict):
        return IGNORED

    # Metadata-only chunks (usage, finish reason) have no text part
    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
        return IGNORED
    content = candidates[0].get("content")
    if not isinstance(content, dict):
        return IGNORED
    parts = content.get("parts")
    if not isinstance(parts, list) or not parts or not isinstance(parts[0], dict):
        return IGNORED

    text = parts[0].get("text")
    if isinstance(text, str) and text:
        return Token(text)
    return IGNORED


def build_request(model: ModelConfig, messages: list[Message], api_key: str) -> PreparedRequest:
    base = resolve_base_url(model, settings.gemini_base_url)

    payload = {
        "contents": [format_for_gemini(m) for m in outbound_history(messages)],
    }

    path = f"/models/{quote(model.model_name, safe='')}:streamGenerateContent"
    return PreparedRequest(
        url=join_url(base, path, params={"alt": "sse"}),
        headers={
            "x-goog-api-key": api_key,
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
        },
        body=encode_body(payload, model),
    )


gemini_adapter = ProviderAdapter(
    name="gemini",
    decoder=DecoderKind.CANDIDATES_PARTS,
    build_request=build_request,
)
