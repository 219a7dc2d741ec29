from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional

from chatstream.models.message import Message
from chatstream.models.model_config import Provider


class ChatRequest(BaseModel):
    model_id: str  # ModelConfig.id, e.g. "openai:gpt-4.1"
    messages: List[Message]

    model_config = ConfigDict(
        protected_namespaces=(),
        json_schema_extra={
            "examples": [
                {
                    "model_id": "gemini:gemini-2.0-flash",
                    "messages": [{"role": "user", "content": "What is the capital of France?"}],
                }
            ]
        },
    )


class CustomModelRequest(BaseModel):
    """Body for registering a custom model"""
    model_config = ConfigDict(protected_namespaces=())

    provider: Provider
    model_name: str = Field(..., min_length=1)
    display_name: str = Field(..., min_length=1)
    reasoning_effort: Optional[str] = None
    base_url: Optional[str] = None
    extra_params: Dict[str, Any] = Field(default_factory=dict)


class ApiKeyRequest(BaseModel):
    api_key: str = Field(..., min_length=1)
