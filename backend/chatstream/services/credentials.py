"""
Credential store for provider API keys.

Treated as an opaque key/value store. Keys are named after the provider
(see Provider.api_key_name), e.g. "openai_api_key".
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional

from chatstream.config import Settings, settings
from chatstream.models.model_config import Provider

logger = logging.getLogger(__name__)


class CredentialStore(ABC):
    """Abstract key/value store for secrets"""

    @abstractmethod
    def save(self, key: str, value: str) -> bool:
        """Store value under key, replacing any existing one. Returns success."""

    @abstractmethod
    def load(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove key. Returns False if nothing was stored."""

    def api_key_for(self, provider: Provider) -> Optional[str]:
        """Stored key for a provider, or None when missing or blank."""
        value = self.load(provider.api_key_name)
        if value is None or not value.strip():
            return None
        return value

    def is_configured(self, provider: Provider) -> bool:
        return self.api_key_for(provider) is not None


class InMemoryCredentialStore(CredentialStore):
    """Process-local store; nothing is persisted"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, config: Settings) -> "InMemoryCredentialStore":
        """Seed from API keys found in the environment / .env."""
        initial = {}
        for provider in Provider:
            value = getattr(config, provider.api_key_name, None)
            if value:
                initial[provider.api_key_name] = value
        if initial:
            logger.info(f"Loaded API keys from settings: {sorted(initial)}")
        return cls(initial)

    def save(self, key: str, value: str) -> bool:
        if not key:
            return False
        with self._lock:
            self._values[key] = value
        return True

    def load(self, key: str) -> Optional[str]:
        with self._lock:
            return self._values.get(key)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._values.pop(key, None) is not None


# Singleton instance
credential_store = InMemoryCredentialStore.from_settings(settings)
