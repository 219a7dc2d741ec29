"""
Model catalog: built-in models plus user-defined custom models.

Custom models live for the lifetime of the process only.
"""

import logging
import threading
from typing import Dict, List, Optional

from chatstream.models.model_config import ModelConfig, Provider

logger = logging.getLogger(__name__)


DEFAULT_MODELS: List[ModelConfig] = [
    # OpenAI
    ModelConfig(provider=Provider.OPENAI, model_name="gpt-4.1-mini", display_name="GPT-4.1 Mini"),
    ModelConfig(provider=Provider.OPENAI, model_name="gpt-4.1", display_name="GPT-4.1"),
    ModelConfig(provider=Provider.OPENAI, model_name="gpt-4o-mini", display_name="GPT-4o Mini"),
    ModelConfig(provider=Provider.OPENAI, model_name="o4-mini", display_name="o4 Mini", reasoning_effort="medium"),
    # xAI
    ModelConfig(provider=Provider.XAI, model_name="grok-3-latest", display_name="Grok 3 Latest"),
    ModelConfig(
        provider=Provider.XAI,
        model_name="grok-3-mini-latest",
        display_name="Grok 3 Mini Latest",
        reasoning_effort="low",
    ),
    # Google Gemini
    ModelConfig(provider=Provider.GEMINI, model_name="gemini-2.0-flash", display_name="Gemini 2.0 Flash"),
    ModelConfig(
        provider=Provider.GEMINI,
        model_name="gemini-2.5-flash-preview-04-17",
        display_name="Gemini 2.5 Flash Preview",
    ),
    ModelConfig(
        provider=Provider.GEMINI,
        model_name="gemini-2.5-pro-preview-05-06",
        display_name="Gemini 2.5 Pro Preview",
    ),
]


class ModelCatalog:
    """Built-in and custom models, keyed by ModelConfig.id"""

    def __init__(self, builtin: Optional[List[ModelConfig]] = None):
        self._builtin: Dict[str, ModelConfig] = {m.id: m for m in (builtin or DEFAULT_MODELS)}
        self._custom: Dict[str, ModelConfig] = {}
        self._lock = threading.Lock()

    @property
    def default(self) -> ModelConfig:
        return next(iter(self._builtin.values()))

    def all(self) -> List[ModelConfig]:
        with self._lock:
            return [*self._builtin.values(), *self._custom.values()]

    def get(self, model_id: str) -> Optional[ModelConfig]:
        with self._lock:
            return self._custom.get(model_id) or self._builtin.get(model_id)

    def add_custom(self, model: ModelConfig) -> ModelConfig:
        """Register a custom model. Names are trimmed; duplicates are rejected."""
        model_name = model.model_name.strip()
        display_name = model.display_name.strip()
        if not model_name or not display_name:
            raise ValueError("Custom models need a model name and a display name")

        custom = model.model_copy(
            update={"model_name": model_name, "display_name": display_name, "is_custom": True}
        )
        with self._lock:
            if custom.id in self._builtin or custom.id in self._custom:
                raise ValueError(f"Model '{custom.id}' already exists")
            self._custom[custom.id] = custom

        logger.info(f"Added custom model '{custom.id}'")
        return custom

    def remove_custom(self, model_id: str) -> bool:
        with self._lock:
            if model_id in self._builtin:
                raise ValueError(f"Built-in model '{model_id}' cannot be removed")
            removed = self._custom.pop(model_id, None)
        if removed:
            logger.info(f"Removed custom model '{model_id}'")
        return removed is not None


# Singleton instance
model_catalog = ModelCatalog()
