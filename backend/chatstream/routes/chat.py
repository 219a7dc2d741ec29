"""
Chat relay route.

Runs one streaming exchange and relays it to the client as an SSE stream:
- token: One text fragment {provider, data}
- done: Exchange completed successfully {provider}
- error: Exchange failed or was cancelled {provider, error, kind, status_code?}
"""

import asyncio
import logging
from typing import AsyncIterator, List

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from chatstream.models.message import Message
from chatstream.models.model_config import ModelConfig
from chatstream.models.request import ChatRequest
from chatstream.routes.dependencies import get_catalog, get_coordinator, get_credentials
from chatstream.services.catalog import ModelCatalog
from chatstream.services.credentials import CredentialStore
from chatstream.streaming.coordinator import StreamingCoordinator
from chatstream.utils.exceptions import raise_bad_request, raise_not_found
from chatstream.utils.message_helpers import outbound_history
from chatstream.utils.sse import format_outcome_sse, format_sse

logger = logging.getLogger(__name__)

router = APIRouter()


async def relay_exchange(
    coordinator: StreamingCoordinator,
    model: ModelConfig,
    messages: List[Message],
    api_key: str | None,
) -> AsyncIterator[str]:
    """Bridge the coordinator's callbacks into an async stream of SSE events."""
    provider = model.provider.value
    queue: asyncio.Queue = asyncio.Queue()

    handle = coordinator.start(
        model,
        messages,
        api_key,
        on_token=lambda token: queue.put_nowait(("token", token)),
        on_complete=lambda outcome: queue.put_nowait(("complete", outcome)),
    )
    try:
        while True:
            kind, value = await queue.get()
            if kind == "token":
                yield format_sse("token", provider, value)
            else:
                yield format_outcome_sse(provider, value)
                return
    finally:
        # Client went away mid-stream
        handle.cancel()


@router.post("/chat")
async def chat(
    request: ChatRequest,
    coordinator: StreamingCoordinator = Depends(get_coordinator),
    catalog: ModelCatalog = Depends(get_catalog),
    credentials: CredentialStore = Depends(get_credentials),
):
    """
    POST /api/chat - stream one assistant reply

    Missing credentials are reported in-stream as an error event with
    kind "api_key_missing" so the client can prompt for a key.
    """
    model = catalog.get(request.model_id)
    if model is None:
        raise_not_found("Model", request.model_id)

    messages = outbound_history(request.messages)
    if not messages:
        raise_bad_request("No messages to send")

    return StreamingResponse(
        relay_exchange(coordinator, model, messages, credentials.api_key_for(model.provider)),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )
