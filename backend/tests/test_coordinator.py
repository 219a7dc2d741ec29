"""End-to-end tests for StreamingCoordinator over httpx.MockTransport."""

import asyncio

import httpx
import pytest

from chatstream.models.model_config import ModelConfig, Provider
from chatstream.streaming.coordinator import ExchangeState, api_error_message
from chatstream.streaming.errors import ErrorKind
from chatstream.streaming.outcome import OutcomeStatus

from conftest import Recorder, chunked, make_coordinator


def chat_chunk(content: str) -> bytes:
    return b'data: {"choices":[{"index":0,"delta":{"content":"' + content.encode() + b'"}}]}\n\n'


@pytest.mark.asyncio
async def test_chat_chunk_tokens_arrive_in_order(xai_model, conversation, recorder):
    wire = chat_chunk("Hel") + chat_chunk("lo ") + chat_chunk("world") + b"data: [DONE]\n\n"
    split = wire.index(b"world") - 5

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=chunked(wire[:split], wire[split:]))

    coordinator = make_coordinator(handler)
    handle = coordinator.start(xai_model, conversation, "key", recorder.on_token, recorder.on_complete)
    outcome = await handle.wait()

    assert outcome.is_success
    assert recorder.tokens == ["Hel", "lo ", "world"]
    assert len(recorder.outcomes) == 1
    assert recorder.events[-1] == ("complete", outcome)
    assert handle.done
    assert handle.state is ExchangeState.RESOLVED


@pytest.mark.asyncio
async def test_candidates_parts_end_to_end(gemini_model, conversation, recorder):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, content=chunked(b'data: {"candidates":[{"content":{"parts":[{"text":"Hi"}]}}]}\n\n')
        )

    handle = make_coordinator(handler).start(
        gemini_model, conversation, "key", recorder.on_token, recorder.on_complete
    )
    await handle.wait()

    assert recorder.tokens == ["Hi"]
    assert [o.status for o in recorder.outcomes] == [OutcomeStatus.SUCCESS]


@pytest.mark.asyncio
async def test_responses_api_end_to_end(openai_model, conversation, recorder):
    wire = (
        b'event: response.created\ndata: {"type":"response.created","response":{"id":"r1"}}\n\n'
        b'event: response.output_text.delta\ndata: {"type":"response.output_text.delta","delta":"Why did"}\n\n'
        b'event: response.output_text.delta\ndata: {"type":"response.output_text.delta","delta":""}\n\n'
        b'event: response.output_text.delta\ndata: {"type":"response.output_text.delta","delta":" the"}\n\n'
        b'event: response.completed\ndata: {"type":"response.completed","response":{"id":"r1"}}\n\n'
    )

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=chunked(wire[:50], wire[50:120], wire[120:]))

    outcome = await make_coordinator(handler).start(
        openai_model, conversation, "key", recorder.on_token, recorder.on_complete
    ).wait()

    assert outcome.is_success
    assert recorder.tokens == ["Why did", " the"]


@pytest.mark.asyncio
async def test_http_error_status_uses_error_envelope(xai_model, conversation, recorder):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, content=chunked(b'{"error":{"message"', b':"rate limited"}}'))

    outcome = await make_coordinator(handler).start(
        xai_model, conversation, "key", recorder.on_token, recorder.on_complete
    ).wait()

    assert recorder.tokens == []
    assert outcome.status is OutcomeStatus.FAILED
    assert outcome.kind is ErrorKind.API
    assert outcome.message == "rate limited"
    assert outcome.status_code == 429
    assert recorder.outcomes == [outcome]


@pytest.mark.asyncio
async def test_http_error_status_with_sse_looking_body_is_not_parsed_as_tokens(xai_model, conversation, recorder):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, content=chunked(chat_chunk("nope")))

    outcome = await make_coordinator(handler).start(
        xai_model, conversation, "key", recorder.on_token, recorder.on_complete
    ).wait()

    assert recorder.tokens == []
    assert outcome.message == "API returned status code 500"


def test_api_error_message_fallbacks():
    assert api_error_message(503, b"") == "API returned status code 503"
    assert api_error_message(502, b"<html>Bad gateway</html>") == "API returned status code 502"
    assert api_error_message(401, b'{"error":"invalid key"}') == "invalid key"
    assert api_error_message(400, b'[{"error":{"code":400,"message":"API key not valid"}}]') == "API key not valid"


@pytest.mark.asyncio
async def test_only_first_terminal_error_is_reported(xai_model, conversation, recorder):
    wire = (
        chat_chunk("before")
        + b'data: {"error":{"message":"first"}}\n\n'
        + chat_chunk("after")
        + b'data: {"error":{"message":"second"}}\n\n'
    )

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=chunked(wire))

    outcome = await make_coordinator(handler).start(
        xai_model, conversation, "key", recorder.on_token, recorder.on_complete
    ).wait()

    assert outcome.kind is ErrorKind.STREAMING
    assert outcome.message == "first"
    assert recorder.tokens == ["before"]
    assert len(recorder.outcomes) == 1


@pytest.mark.asyncio
async def test_malformed_payload_fails_the_exchange(gemini_model, conversation, recorder):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=chunked(b"data: {not json}\n\n"))

    outcome = await make_coordinator(handler).start(
        gemini_model, conversation, "key", recorder.on_token, recorder.on_complete
    ).wait()

    assert outcome.kind is ErrorKind.STREAMING
    assert "JSON" in outcome.message


@pytest.mark.asyncio
async def test_response_failed_event(openai_model, conversation, recorder):
    wire = (
        b'event: response.failed\n'
        b'data: {"type":"response.failed","response":{"error":{"code":"server_error","message":"boom"}}}\n\n'
    )

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=chunked(wire))

    outcome = await make_coordinator(handler).start(
        openai_model, conversation, "key", recorder.on_token, recorder.on_complete
    ).wait()

    assert outcome.kind is ErrorKind.STREAMING
    assert outcome.message == "boom"
    assert outcome.error.code == "server_error"
    assert outcome.describe() == "Streaming Error: boom (Code: server_error)"


@pytest.mark.asyncio
async def test_last_record_flushed_without_trailing_blank_line(gemini_model, conversation, recorder):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=chunked(b'data: {"candidates":[{"content":{"parts":[{"text":"end"}]}}]}'))

    outcome = await make_coordinator(handler).start(
        gemini_model, conversation, "key", recorder.on_token, recorder.on_complete
    ).wait()

    assert recorder.tokens == ["end"]
    assert outcome.is_success


@pytest.mark.asyncio
async def test_invalid_utf8_fails_with_decode_error(xai_model, conversation, recorder):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=chunked(b"data: \xff\n\n"))

    outcome = await make_coordinator(handler).start(
        xai_model, conversation, "key", recorder.on_token, recorder.on_complete
    ).wait()

    assert outcome.kind is ErrorKind.DECODE


@pytest.mark.asyncio
async def test_missing_api_key_fails_before_network(xai_model, conversation, recorder):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200)

    handle = make_coordinator(handler).start(xai_model, conversation, "", recorder.on_token, recorder.on_complete)

    # Reported synchronously
    assert handle.done
    assert len(recorder.outcomes) == 1
    outcome = recorder.outcomes[0]
    assert outcome.kind is ErrorKind.API_KEY_MISSING
    assert outcome.requires_credentials
    assert await handle.wait() is outcome
    await asyncio.sleep(0)
    assert calls == []


@pytest.mark.asyncio
async def test_invalid_target_fails_before_network(conversation, recorder):
    calls = []
    model = ModelConfig(
        provider=Provider.OPENAI_COMPATIBLE, model_name="llama3", display_name="Llama", base_url="ftp://nowhere"
    )

    handle = make_coordinator(calls.append).start(model, conversation, "k", recorder.on_token, recorder.on_complete)

    assert handle.outcome.kind is ErrorKind.INVALID_REQUEST_TARGET
    assert calls == []


@pytest.mark.asyncio
async def test_serialization_failure_is_reported(xai_model, conversation, recorder):
    model = xai_model.model_copy(update={"extra_params": {"bad": object()}})

    handle = make_coordinator(lambda request: httpx.Response(200)).start(
        model, conversation, "k", recorder.on_token, recorder.on_complete
    )

    assert handle.outcome.kind is ErrorKind.REQUEST_SERIALIZATION


@pytest.mark.asyncio
async def test_connection_error_is_a_network_error(xai_model, conversation, recorder):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    outcome = await make_coordinator(handler).start(
        xai_model, conversation, "key", recorder.on_token, recorder.on_complete
    ).wait()

    assert outcome.kind is ErrorKind.NETWORK
    assert "connection refused" in outcome.message


@pytest.mark.asyncio
async def test_transport_error_mid_stream_keeps_earlier_tokens(xai_model, conversation, recorder):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=chunked(chat_chunk("partial"), error=httpx.ReadError("reset")))

    outcome = await make_coordinator(handler).start(
        xai_model, conversation, "key", recorder.on_token, recorder.on_complete
    ).wait()

    assert recorder.tokens == ["partial"]
    assert outcome.kind is ErrorKind.NETWORK


@pytest.mark.asyncio
async def test_transport_error_inside_a_record_is_still_a_network_error(xai_model, conversation, recorder):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            content=chunked(chat_chunk("partial"), b'data: {"choices":[{"delta":{"con', error=httpx.ReadError("reset")),
        )

    outcome = await make_coordinator(handler).start(
        xai_model, conversation, "key", recorder.on_token, recorder.on_complete
    ).wait()

    assert recorder.tokens == ["partial"]
    assert outcome.kind is ErrorKind.NETWORK
    assert outcome.message == "reset"


@pytest.mark.asyncio
async def test_cancel_mid_stream(xai_model, conversation, recorder):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=chunked(chat_chunk("Hel"), hang=True))

    handle = make_coordinator(handler).start(xai_model, conversation, "key", recorder.on_token, recorder.on_complete)
    await asyncio.wait_for(recorder.first_token.wait(), timeout=5)

    handle.cancel()
    handle.cancel()
    outcome = await asyncio.wait_for(handle.wait(), timeout=5)

    assert outcome.status is OutcomeStatus.CANCELLED
    assert outcome.describe() == "Request was cancelled."
    assert recorder.tokens == ["Hel"]
    assert len(recorder.outcomes) == 1

    handle.cancel()
    await asyncio.sleep(0)
    assert len(recorder.outcomes) == 1


@pytest.mark.asyncio
async def test_cancel_before_first_step(xai_model, conversation, recorder):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, content=chunked(chat_chunk("never")))

    handle = make_coordinator(handler).start(xai_model, conversation, "key", recorder.on_token, recorder.on_complete)
    handle.cancel()
    outcome = await asyncio.wait_for(handle.wait(), timeout=5)

    assert outcome.is_cancelled
    assert recorder.tokens == []
    assert len(recorder.outcomes) == 1
    assert calls == []


@pytest.mark.asyncio
async def test_cancel_after_success_is_a_noop(gemini_model, conversation, recorder):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=chunked(b'data: {"candidates":[{"content":{"parts":[{"text":"ok"}]}}]}\n\n'))

    handle = make_coordinator(handler).start(
        gemini_model, conversation, "key", recorder.on_token, recorder.on_complete
    )
    await handle.wait()

    handle.cancel()
    handle.cancel()
    await asyncio.sleep(0)

    assert [o.status for o in recorder.outcomes] == [OutcomeStatus.SUCCESS]


@pytest.mark.asyncio
async def test_concurrent_exchanges_do_not_share_buffers(xai_model, gemini_model, conversation):
    def handler(request: httpx.Request) -> httpx.Response:
        if "x.ai" in request.url.host:
            return httpx.Response(200, content=chunked(b'data: {"choices":[{"delta":{"con', b'tent":"grok"}}]}\n\n'))
        return httpx.Response(
            200, content=chunked(b'data: {"candidates":[{"content":', b'{"parts":[{"text":"gem"}]}}]}\n\n')
        )

    coordinator = make_coordinator(handler)
    first, second = Recorder(), Recorder()
    handles = [
        coordinator.start(xai_model, conversation, "k", first.on_token, first.on_complete),
        coordinator.start(gemini_model, conversation, "k", second.on_token, second.on_complete),
    ]
    await asyncio.gather(*(h.wait() for h in handles))

    assert first.tokens == ["grok"]
    assert second.tokens == ["gem"]


@pytest.mark.asyncio
async def test_cancel_with_partial_record_buffered(xai_model, conversation, recorder):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, content=chunked(chat_chunk("Hel"), b'data: {"choices":[{"delta":{"con', hang=True)
        )

    handle = make_coordinator(handler).start(xai_model, conversation, "key", recorder.on_token, recorder.on_complete)
    await asyncio.wait_for(recorder.first_token.wait(), timeout=5)
    # Let the truncated chunk reach the parser before cancelling
    await asyncio.sleep(0.05)

    handle.cancel()
    outcome = await asyncio.wait_for(handle.wait(), timeout=5)

    assert outcome.status is OutcomeStatus.CANCELLED
    assert recorder.tokens == ["Hel"]
    assert len(recorder.outcomes) == 1


@pytest.mark.asyncio
async def test_cancel_keeps_complete_lines_of_unfinished_record(gemini_model, conversation, recorder):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, content=chunked(b'data: {"candidates":[{"content":{"parts":[{"text":"tail"}]}}]}\n', hang=True)
        )

    handle = make_coordinator(handler).start(
        gemini_model, conversation, "key", recorder.on_token, recorder.on_complete
    )
    await asyncio.sleep(0.05)
    handle.cancel()
    outcome = await asyncio.wait_for(handle.wait(), timeout=5)

    assert recorder.tokens == ["tail"]
    assert outcome.is_cancelled


@pytest.mark.asyncio
async def test_raising_completion_callback_does_not_block_wait(gemini_model, conversation, recorder):
    def on_complete(outcome):
        recorder.on_complete(outcome)
        raise RuntimeError("consumer bug")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=chunked(b'data: {"candidates":[{"content":{"parts":[{"text":"ok"}]}}]}\n\n'))

    coordinator = make_coordinator(handler)
    handle = coordinator.start(gemini_model, conversation, "key", recorder.on_token, on_complete)
    outcome = await asyncio.wait_for(handle.wait(), timeout=5)

    assert outcome.is_success
    assert len(recorder.outcomes) == 1

    # Precondition failures are resolved inside start()
    early = coordinator.start(gemini_model, conversation, "", recorder.on_token, on_complete)
    assert early.done
    outcome = await asyncio.wait_for(early.wait(), timeout=5)
    assert outcome.kind is ErrorKind.API_KEY_MISSING


@pytest.mark.asyncio
async def test_raising_token_callback_fails_the_exchange(xai_model, conversation, recorder):
    calls = []

    def on_token(token):
        calls.append(token)
        raise ValueError("cannot render")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=chunked(chat_chunk("a") + chat_chunk("b"), b'data: {"choices":[{"del'))

    outcome = await asyncio.wait_for(
        make_coordinator(handler).start(xai_model, conversation, "key", on_token, recorder.on_complete).wait(),
        timeout=5,
    )

    assert calls == ["a"]
    assert outcome.kind is ErrorKind.STREAMING
    assert "cannot render" in outcome.message
    assert len(recorder.outcomes) == 1
