import asyncio
from typing import AsyncIterator, Callable, List

import httpx
import pytest

from chatstream.models.message import Message, Role
from chatstream.models.model_config import ModelConfig, Provider
from chatstream.streaming.coordinator import StreamingCoordinator


async def chunked(*chunks: bytes, hang: bool = False, error: Exception | None = None) -> AsyncIterator[bytes]:
    """Response body delivered as the given raw transport chunks."""
    for chunk in chunks:
        await asyncio.sleep(0)
        yield chunk
    if error is not None:
        raise error
    if hang:
        await asyncio.Event().wait()


class Recorder:
    """Collects coordinator callbacks in the order they fire."""

    def __init__(self):
        self.events: List[tuple] = []
        self.first_token = asyncio.Event()

    @property
    def tokens(self) -> List[str]:
        return [value for kind, value in self.events if kind == "token"]

    @property
    def outcomes(self) -> list:
        return [value for kind, value in self.events if kind == "complete"]

    def on_token(self, token: str) -> None:
        self.events.append(("token", token))
        self.first_token.set()

    def on_complete(self, outcome) -> None:
        self.events.append(("complete", outcome))


def make_coordinator(handler: Callable) -> StreamingCoordinator:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return StreamingCoordinator(client, timeout=5.0)


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def openai_model():
    return ModelConfig(provider=Provider.OPENAI, model_name="gpt-4.1", display_name="GPT-4.1")


@pytest.fixture
def xai_model():
    return ModelConfig(provider=Provider.XAI, model_name="grok-3-latest", display_name="Grok 3 Latest")


@pytest.fixture
def gemini_model():
    return ModelConfig(provider=Provider.GEMINI, model_name="gemini-2.0-flash", display_name="Gemini 2.0 Flash")


@pytest.fixture
def conversation():
    return [
        Message(role=Role.USER, content="Hi there"),
        Message(role=Role.ASSISTANT, content="Hello! How can I help?"),
        Message(role=Role.ERROR, content="API Error (500): boom"),
        Message(role=Role.USER, content="Tell me a joke"),
    ]
