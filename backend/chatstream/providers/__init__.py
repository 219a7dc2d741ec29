from chatstream.providers.base import DecoderKind, Ignored, TerminalError, Token, TokenResult
from chatstream.providers.registry import DECODERS, PROVIDER_ADAPTERS, get_adapter, get_decoder

__all__ = [
    "DECODERS",
    "PROVIDER_ADAPTERS",
    "DecoderKind",
    "Ignored",
    "TerminalError",
    "Token",
    "TokenResult",
    "get_adapter",
    "get_decoder",
]
