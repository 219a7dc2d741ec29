"""
Conversation orchestration on top of the streaming coordinator.

The coordinator only emits tokens and one outcome; this class owns the
transcript and applies those values to it. At most one exchange is in
flight per session: send() is ignored while a reply is loading.
"""

import logging
from typing import List, Optional

from chatstream.models.message import Message, Role
from chatstream.models.model_config import ModelConfig
from chatstream.services.credentials import CredentialStore
from chatstream.streaming.coordinator import StreamHandle, StreamingCoordinator
from chatstream.streaming.outcome import StreamOutcome
from chatstream.utils.message_helpers import outbound_history

logger = logging.getLogger(__name__)

CANCELLED_SUFFIX = "\n\n(Cancelled)"


class ChatSession:
    def __init__(
        self,
        coordinator: StreamingCoordinator,
        credentials: CredentialStore,
        model: ModelConfig,
    ):
        self.coordinator = coordinator
        self.credentials = credentials
        self.model = model
        self.messages: List[Message] = []
        self.is_loading = False
        self.needs_api_key = not credentials.is_configured(model.provider)
        self._handle: Optional[StreamHandle] = None

    def select_model(self, model: ModelConfig) -> None:
        self.model = model
        self.needs_api_key = not self.credentials.is_configured(model.provider)

    def send(self, text: str) -> Optional[StreamHandle]:
        """Append a user turn and stream the assistant reply. Must run on the event loop."""
        if not text.strip() or self.is_loading:
            return None

        self.messages.append(Message(role=Role.USER, content=text))
        history = outbound_history(self.messages)
        self.messages.append(Message(role=Role.ASSISTANT, content="", is_streaming=True))
        self.is_loading = True

        api_key = self.credentials.api_key_for(self.model.provider)
        handle = self.coordinator.start(
            self.model,
            history,
            api_key,
            on_token=self._append_token,
            on_complete=self._handle_completion,
        )
        if not handle.done:
            self._handle = handle
        return handle

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()

    def _streaming_index(self) -> Optional[int]:
        for index in range(len(self.messages) - 1, -1, -1):
            if self.messages[index].is_streaming:
                return index
        return None

    def _append_token(self, token: str) -> None:
        index = self._streaming_index()
        if index is not None:
            self.messages[index].content += token

    def _handle_completion(self, outcome: StreamOutcome) -> None:
        self.is_loading = False
        self._handle = None

        index = self._streaming_index()
        if index is not None:
            placeholder = self.messages[index]
            placeholder.is_streaming = False
            if outcome.is_cancelled:
                if placeholder.content:
                    placeholder.content += CANCELLED_SUFFIX
                else:
                    del self.messages[index]  # Nothing streamed
            elif not outcome.is_success and not placeholder.content:
                del self.messages[index]

        if outcome.is_success or outcome.is_cancelled:
            return

        logger.info(f"Chat error: {outcome.describe()}")
        self.messages.append(Message(role=Role.ERROR, content=outcome.describe()))
        if outcome.requires_credentials:
            self.needs_api_key = True
