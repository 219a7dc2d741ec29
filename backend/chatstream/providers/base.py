import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Union

import httpx
import orjson

from chatstream.models.message import Message
from chatstream.models.model_config import ModelConfig
from chatstream.streaming.errors import InvalidRequestTargetError, RequestSerializationError
from chatstream.streaming.sse import StreamRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Token:
    """A text fragment to append to the transcript"""

    text: str


@dataclass(frozen=True)
class Ignored:
    """A record that carries nothing to deliver"""


@dataclass(frozen=True)
class TerminalError:
    """A record that ends the exchange with an error"""

    message: str
    code: Optional[str] = None


TokenResult = Union[Token, Ignored, TerminalError]

IGNORED = Ignored()


class DecoderKind(str, Enum):
    """Wire dialect of a provider's event stream."""

    DELTA_EVENT = "delta_event"  # Named events, Responses API style
    CHAT_COMPLETION_CHUNK = "chat_completion_chunk"  # choices[0].delta.content
    CANDIDATES_PARTS = "candidates_parts"  # candidates[0].content.parts[0].text


@dataclass(frozen=True)
class PreparedRequest:
    """A fully built outbound request, ready for the transport"""

    url: httpx.URL
    headers: Dict[str, str]
    body: bytes
    method: str = "POST"


@dataclass(frozen=True)
class ProviderAdapter:
    """How one provider is spoken to: request construction plus decoder tag"""

    name: str
    decoder: DecoderKind
    build_request: Callable[[ModelConfig, list[Message], str], PreparedRequest]


def load_payload(data: Optional[str]) -> Any:
    """Parse a record's data field; raises orjson.JSONDecodeError on bad input."""
    return orjson.loads(data or "")


def describe_json_error(provider: str, error: Exception) -> str:
    """Build a TerminalError message for a payload that failed to parse."""
    logger.debug(f"JSON parse error in {provider}: {error}")
    return f"{provider} JSON decoding error: {error}"


def extract_error_envelope(payload: Any) -> Optional[TerminalError]:
    """
    Find a provider error object in a decoded payload.

    Accepts {"error": {"message": ..., "code": ...}}, {"error": "..."} and a
    list wrapping either (Gemini returns error bodies as a one-element array).
    """
    if isinstance(payload, list):
        payload = payload[0] if payload else None
    if not isinstance(payload, dict):
        return None

    error = payload.get("error")
    if isinstance(error, str) and error:
        return TerminalError(error)
    if isinstance(error, dict):
        message = error.get("message")
        if isinstance(message, str) and message:
            code = error.get("code")
            return TerminalError(message, str(code) if code is not None else None)
    return None


def resolve_base_url(model: ModelConfig, default: Optional[str]) -> httpx.URL:
    """Pick the endpoint base for a model and validate it."""
    raw = model.base_url or default
    if not raw:
        raise InvalidRequestTargetError(f"No endpoint configured for model '{model.display_name}'")

    try:
        url = httpx.URL(raw.rstrip("/"))
    except httpx.InvalidURL as e:
        raise InvalidRequestTargetError(f"{raw}: {e}") from e

    if url.scheme not in ("http", "https") or not url.host:
        raise InvalidRequestTargetError(f"{raw}: expected an absolute http(s) URL")
    return url


def join_url(base: httpx.URL, path: str, params: Optional[Dict[str, str]] = None) -> httpx.URL:
    try:
        url = httpx.URL(f"{str(base).rstrip('/')}/{path.lstrip('/')}")
        if params:
            url = url.copy_merge_params(params)
    except httpx.InvalidURL as e:
        raise InvalidRequestTargetError(f"{base}/{path}: {e}") from e
    return url


def encode_body(payload: Dict[str, Any], model: ModelConfig) -> bytes:
    """Merge model extras into the payload and serialize it."""
    if model.extra_params:
        payload = {**payload, **model.extra_params}
    try:
        return orjson.dumps(payload)
    except orjson.JSONEncodeError as e:
        raise RequestSerializationError(str(e)) from e


def bearer_headers(api_key: str) -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
        "Accept": "text/event-stream",
    }


def record_event_name(record: StreamRecord, payload: Any) -> Optional[str]:
    """Event name of a record, falling back to the payload's "type" field."""
    if record.event:
        return record.event
    if isinstance(payload, dict) and isinstance(payload.get("type"), str):
        return payload["type"]
    return None
