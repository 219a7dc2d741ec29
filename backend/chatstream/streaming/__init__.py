from chatstream.streaming.errors import ChatStreamError, ErrorKind
from chatstream.streaming.outcome import OutcomeStatus, StreamOutcome
from chatstream.streaming.sse import SSEParser, StreamRecord, parse_stream

__all__ = [
    "ChatStreamError",
    "ErrorKind",
    "OutcomeStatus",
    "SSEParser",
    "StreamOutcome",
    "StreamRecord",
    "parse_stream",
]
