from typing import Callable, Dict

from chatstream.models.model_config import Provider
from chatstream.providers.base import DecoderKind, ProviderAdapter, TokenResult
from chatstream.providers.gemini import decode_candidates_parts, gemini_adapter
from chatstream.providers.openai import decode_delta_event, openai_adapter
from chatstream.providers.openai_compatible import (
    decode_chat_completion_chunk,
    openai_compatible_adapter,
)
from chatstream.providers.xai import xai_adapter
from chatstream.streaming.sse import StreamRecord


# Mapping of decoder tags to their record decoders
DECODERS: Dict[DecoderKind, Callable[[StreamRecord], TokenResult]] = {
    DecoderKind.DELTA_EVENT: decode_delta_event,
    DecoderKind.CHAT_COMPLETION_CHUNK: decode_chat_completion_chunk,
    DecoderKind.CANDIDATES_PARTS: decode_candidates_parts,
}

# Mapping of provider types to their adapters
PROVIDER_ADAPTERS: Dict[Provider, ProviderAdapter] = {
    Provider.OPENAI: openai_adapter,
    Provider.XAI: xai_adapter,
    Provider.GEMINI: gemini_adapter,
    Provider.OPENAI_COMPATIBLE: openai_compatible_adapter,
}


def get_adapter(provider: Provider) -> ProviderAdapter:
    return PROVIDER_ADAPTERS[provider]


def get_decoder(kind: DecoderKind) -> Callable[[StreamRecord], TokenResult]:
    return DECODERS[kind]
