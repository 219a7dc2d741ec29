"""
Streaming session coordinator.

Runs one chat-completion exchange end to end: builds the provider request,
opens a streaming httpx request, pushes body chunks through an SSEParser and
the provider's decoder, forwards tokens in order and reports exactly one
StreamOutcome.

Callbacks run on the event loop that called start(). Chunk handling happens
inline in the exchange task, so on_token and on_complete are never invoked
concurrently and always in wire order, with on_complete last.

Each exchange moves through an explicit state machine:

    AWAITING_HEADERS -> STREAMING_TOKENS ------> RESOLVED
                     -> BUFFERING_ERROR_BODY --> RESOLVED

A non-2xx status switches to buffering so the error body can be parsed
once the transport finishes.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, Iterable, List, Optional

import httpx
import orjson

from chatstream.config import settings
from chatstream.models.message import Message
from chatstream.models.model_config import ModelConfig
from chatstream.providers.base import PreparedRequest, TerminalError, Token, TokenResult, extract_error_envelope
from chatstream.providers.registry import get_adapter, get_decoder
from chatstream.streaming.errors import (
    ApiError,
    ApiKeyMissingError,
    ChatStreamError,
    DecodeError,
    NetworkError,
    StreamingError,
)
from chatstream.streaming.outcome import StreamOutcome
from chatstream.streaming.sse import SSEParser, StreamRecord

logger = logging.getLogger(__name__)

TokenCallback = Callable[[str], None]
CompletionCallback = Callable[[StreamOutcome], None]


class ExchangeState(str, Enum):
    AWAITING_HEADERS = "awaiting_headers"
    STREAMING_TOKENS = "streaming_tokens"
    BUFFERING_ERROR_BODY = "buffering_error_body"
    RESOLVED = "resolved"


def is_success_status(status_code: int) -> bool:
    return 200 <= status_code < 300


def api_error_message(status_code: int, body: bytes) -> str:
    """Message for a non-2xx response, from the provider's error envelope when present."""
    if body:
        try:
            payload = orjson.loads(body)
        except orjson.JSONDecodeError:
            payload = None
        error = extract_error_envelope(payload)
        if error is not None:
            return error.message
    return f"API returned status code {status_code}"


class StreamExchange:
    """Per-exchange parser, decoder and terminal-outcome latch."""

    def __init__(
        self,
        provider: str,
        decode: Callable[[StreamRecord], TokenResult],
        on_token: TokenCallback,
        on_complete: CompletionCallback,
    ):
        self.provider = provider
        self.state = ExchangeState.AWAITING_HEADERS
        self.status_code: Optional[int] = None
        self.outcome: Optional[StreamOutcome] = None
        self._decode = decode
        self._parser: Optional[SSEParser] = SSEParser()
        self._error_body = bytearray()
        self._on_token: Optional[TokenCallback] = on_token
        self._on_complete: Optional[CompletionCallback] = on_complete
        self._waiters: List[asyncio.Future] = []

    @property
    def resolved(self) -> bool:
        return self.state is ExchangeState.RESOLVED

    def on_headers(self, status_code: int) -> None:
        if self.state is not ExchangeState.AWAITING_HEADERS:
            return
        self.status_code = status_code
        if is_success_status(status_code):
            self.state = ExchangeState.STREAMING_TOKENS
        else:
            logger.error(f"{self.provider} API returned non-2xx status: {status_code}")
            self.state = ExchangeState.BUFFERING_ERROR_BODY

    def on_data(self, chunk: bytes) -> None:
        if self.state is ExchangeState.STREAMING_TOKENS:
            try:
                records = self._parser.feed(chunk)
            except DecodeError as e:
                self.resolve(StreamOutcome.failed(e))
                return
            self._dispatch(records)
        elif self.state is ExchangeState.BUFFERING_ERROR_BODY:
            self._error_body.extend(chunk)
        elif self.state is ExchangeState.AWAITING_HEADERS:
            logger.debug(f"{self.provider}: dropping {len(chunk)} bytes received before headers")

    def on_finished(self, *, cancelled: bool = False, error: Optional[BaseException] = None) -> None:
        """Transport is done; flush what is buffered and resolve."""
        if self.resolved:
            return

        if self.state is ExchangeState.STREAMING_TOKENS:
            abnormal = cancelled or error is not None
            try:
                records = self._parser.finalize(discard_partial=abnormal)
            except DecodeError as e:
                self.resolve(StreamOutcome.failed(e))
                return
            # A cut-off stream cannot override the transport outcome
            self._dispatch(records, allow_terminal=not abnormal)
            if self.resolved:
                return

        if cancelled:
            self.resolve(StreamOutcome.cancelled())
        elif self.status_code is not None and not is_success_status(self.status_code):
            message = api_error_message(self.status_code, bytes(self._error_body))
            self.resolve(StreamOutcome.failed(ApiError(message, self.status_code)))
        elif error is not None:
            self.resolve(StreamOutcome.failed(self._classify(error)))
        elif self.status_code is None:
            self.resolve(StreamOutcome.failed(NetworkError("Connection closed before a response was received")))
        else:
            self.resolve(StreamOutcome.success())

    def resolve(self, outcome: StreamOutcome) -> None:
        """Latch the terminal outcome; later calls are ignored."""
        if self.resolved:
            return
        self.state = ExchangeState.RESOLVED
        self.outcome = outcome

        if outcome.is_success:
            logger.info(f"{self.provider} stream completed")
        elif outcome.is_cancelled:
            logger.info(f"{self.provider} stream cancelled")
        else:
            logger.warning(f"{self.provider} stream failed: {outcome.describe()}")

        on_complete = self._on_complete
        self._release()
        try:
            if on_complete is not None:
                on_complete(outcome)
        except Exception:
            logger.exception(f"Completion callback for {self.provider} stream raised")
        finally:
            for waiter in self._waiters:
                if not waiter.done():
                    waiter.set_result(outcome)
            self._waiters.clear()

    def add_waiter(self, future: asyncio.Future) -> None:
        if self.outcome is not None:
            future.set_result(self.outcome)
        else:
            self._waiters.append(future)

    def _dispatch(self, records: Iterable[StreamRecord], allow_terminal: bool = True) -> None:
        for record in records:
            if self.resolved:
                return
            result = self._decode(record)
            if isinstance(result, Token):
                try:
                    self._on_token(result.text)
                except Exception as e:
                    logger.exception(f"Token callback for {self.provider} stream raised")
                    self.resolve(StreamOutcome.failed(StreamingError(f"Token callback failed: {e}")))
            elif isinstance(result, TerminalError) and allow_terminal:
                self.resolve(StreamOutcome.failed(StreamingError(result.message, code=result.code)))

    def _classify(self, error: BaseException) -> ChatStreamError:
        if isinstance(error, ChatStreamError):
            return error
        detail = str(error) or type(error).__name__
        if isinstance(error, httpx.HTTPError):
            return NetworkError(detail)
        logger.error(f"Unexpected error in {self.provider} stream: {detail}")
        return StreamingError(detail)

    def _release(self) -> None:
        self._parser = None
        self._error_body = bytearray()
        self._on_token = None
        self._on_complete = None


class StreamHandle:
    """Cancellation handle for one exchange."""

    def __init__(self, exchange: StreamExchange, task: Optional[asyncio.Task] = None):
        self._exchange = exchange
        self._task = task

    @property
    def done(self) -> bool:
        return self._exchange.resolved

    @property
    def outcome(self) -> Optional[StreamOutcome]:
        return self._exchange.outcome

    @property
    def state(self) -> ExchangeState:
        return self._exchange.state

    def cancel(self) -> None:
        """Ask the transport to abort. Safe to call repeatedly or after completion."""
        if self._exchange.resolved or self._task is None or self._task.done():
            return
        self._task.cancel()

    async def wait(self) -> StreamOutcome:
        """Wait for the terminal outcome."""
        future = asyncio.get_running_loop().create_future()
        self._exchange.add_waiter(future)
        return await future

    def _on_task_done(self, task: asyncio.Task) -> None:
        # A task cancelled before its first step never reaches its own handlers
        if self._exchange.resolved:
            return
        if task.cancelled():
            self._exchange.on_finished(cancelled=True)
        else:
            self._exchange.on_finished(error=task.exception())


class StreamingCoordinator:
    """Starts streaming exchanges over a shared httpx.AsyncClient."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: Optional[float] = None):
        self._timeout = float(settings.provider_timeout) if timeout is None else timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self._timeout)

    def start(
        self,
        model: ModelConfig,
        messages: List[Message],
        api_key: Optional[str],
        on_token: TokenCallback,
        on_complete: CompletionCallback,
    ) -> StreamHandle:
        """
        Start one exchange.

        Precondition failures (missing key, bad endpoint, unencodable body)
        are reported through on_complete before this returns, and the
        returned handle is already done.

        Must be called from a running event loop.
        """
        adapter = get_adapter(model.provider)
        exchange = StreamExchange(adapter.name, get_decoder(adapter.decoder), on_token, on_complete)

        if not api_key or not api_key.strip():
            exchange.resolve(StreamOutcome.failed(ApiKeyMissingError()))
            return StreamHandle(exchange)

        try:
            request = adapter.build_request(model, messages, api_key)
        except ChatStreamError as e:
            exchange.resolve(StreamOutcome.failed(e))
            return StreamHandle(exchange)

        logger.info(f"Starting {adapter.name} stream for model '{model.model_name}'")
        task = asyncio.get_running_loop().create_task(self._drive(exchange, request))
        handle = StreamHandle(exchange, task)
        task.add_done_callback(handle._on_task_done)
        return handle

    async def _drive(self, exchange: StreamExchange, request: PreparedRequest) -> None:
        try:
            async with self._client.stream(
                request.method,
                request.url,
                headers=request.headers,
                content=request.body,
                timeout=self._timeout,
            ) as response:
                exchange.on_headers(response.status_code)
                async for chunk in response.aiter_bytes():
                    exchange.on_data(chunk)
                    if exchange.resolved:
                        break
        except asyncio.CancelledError:
            exchange.on_finished(cancelled=True)
            raise
        except Exception as e:
            exchange.on_finished(error=e)
        else:
            exchange.on_finished()

    async def aclose(self) -> None:
        """Cleanup HTTP client resources."""
        if self._owns_client:
            await self._client.aclose()
