from chatstream.config import settings
from chatstream.models.message import Message
from chatstream.models.model_config import ModelConfig
from chatstream.providers.base import DecoderKind, PreparedRequest, ProviderAdapter
from chatstream.providers.openai_compatible import build_chat_completion_request


def build_request(model: ModelConfig, messages: list[Message], api_key: str) -> PreparedRequest:
    """xAI Grok - uses the OpenAI-compatible Chat Completions API."""
    return build_chat_completion_request(
        model,
        messages,
        api_key,
        default_base_url=settings.xai_base_url,
        defaults={"temperature": 0.0},
    )


xai_adapter = ProviderAdapter(
    name="xai",
    decoder=DecoderKind.CHAT_COMPLETION_CHUNK,
    build_request=build_request,
)
