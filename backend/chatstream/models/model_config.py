from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class Provider(str, Enum):
    OPENAI = "openai"
    XAI = "xai"
    GEMINI = "gemini"
    OPENAI_COMPATIBLE = "openai-compatible"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def api_key_name(self) -> str:
        """Key the provider's credential is stored under."""
        return f"{self.value.replace('-', '_')}_api_key"


_DISPLAY_NAMES = {
    Provider.OPENAI: "OpenAI",
    Provider.XAI: "xAI",
    Provider.GEMINI: "Google Gemini",
    Provider.OPENAI_COMPATIBLE: "OpenAI-compatible",
}


class ModelConfig(BaseModel):
    """Immutable descriptor of one selectable model"""
    model_config = ConfigDict(frozen=True, protected_namespaces=())

    provider: Provider
    model_name: str = Field(..., min_length=1)  # API model ID
    display_name: str = Field(..., min_length=1)
    reasoning_effort: Optional[str] = None  # e.g. "low", "medium", "high"
    base_url: Optional[str] = None  # Overrides the provider's default endpoint
    extra_params: Dict[str, Any] = Field(default_factory=dict)  # Merged into the request body
    is_custom: bool = False

    @property
    def id(self) -> str:
        return f"{self.provider.value}:{self.model_name}"

    @property
    def requires_reasoning_parameter(self) -> bool:
        return bool(self.reasoning_effort)
