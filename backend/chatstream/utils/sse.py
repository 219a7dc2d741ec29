import orjson
from typing import Optional

from chatstream.models.response import SSEEvent
from chatstream.streaming.outcome import StreamOutcome


def format_sse(
    event: str, provider: str, data: str, error: Optional[str] = None
) -> str:
    """Format data as SSE event"""
    return _encode(SSEEvent(event=event, provider=provider, data=data, error=error))


def format_outcome_sse(provider: str, outcome: StreamOutcome) -> str:
    """Format the terminal outcome of an exchange as a "done" or "error" event"""
    if outcome.is_success:
        return format_sse("done", provider, "")
    return _encode(
        SSEEvent(
            event="error",
            provider=provider,
            data="",
            error=outcome.describe(),
            kind=outcome.kind.value if outcome.kind else "cancelled",
            status_code=outcome.status_code,
        )
    )


def _encode(event: SSEEvent) -> str:
    payload = event.model_dump(exclude={"event"}, exclude_none=True)
    return f"event: {event.event}\ndata: {orjson.dumps(payload).decode()}\n\n"
