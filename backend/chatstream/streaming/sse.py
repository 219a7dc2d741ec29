"""
Incremental Server-Sent Events framing.

Turns an append-only stream of byte (or text) chunks, split at arbitrary
boundaries, into discrete StreamRecord values. One SSEParser per HTTP
exchange; it is not safe to share between exchanges.

Usage:
    parser = SSEParser()
    for chunk in chunks:
        for record in parser.feed(chunk):
            ...
    for record in parser.finalize():
        ...
"""

import codecs
import logging
import re
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Union

from chatstream.streaming.errors import DecodeError

logger = logging.getLogger(__name__)

# Constants
SSE_DONE_SENTINEL = "[DONE]"

# LF, CRLF or a lone CR
LINE_END = re.compile(r"\r\n|\r|\n")


@dataclass(frozen=True)
class StreamRecord:
    """One complete event-stream record."""

    event: Optional[str] = None
    data: Optional[str] = None
    id: Optional[str] = None
    retry: Optional[int] = None


class SSEParser:
    """Line-oriented event framer with cross-chunk buffering."""

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")()
        self._pending = ""
        self._reset_record()

    def _reset_record(self) -> None:
        self._event: Optional[str] = None
        self._data = ""
        self._data_seen = False
        self._id: Optional[str] = None
        self._retry: Optional[int] = None

    def feed(self, chunk: Union[bytes, str]) -> List[StreamRecord]:
        """Consume one chunk and return every record it completed."""
        if isinstance(chunk, (bytes, bytearray)):
            try:
                text = self._decoder.decode(bytes(chunk))
            except UnicodeDecodeError as e:
                raise DecodeError(str(e)) from e
        else:
            text = chunk

        buffer = self._pending + text
        # A trailing CR may be the first half of a CRLF split across chunks
        held_cr = buffer.endswith("\r")
        if held_cr:
            buffer = buffer[:-1]
        *lines, rest = LINE_END.split(buffer)
        self._pending = rest + "\r" if held_cr else rest
        return self._process_lines(lines)

    def finalize(self, discard_partial: bool = False) -> List[StreamRecord]:
        """
        Flush at end of input, even without a trailing blank line.

        With discard_partial, an unterminated last line is dropped instead of
        being parsed. Use it when the transport ended abnormally and the tail
        is likely a cut-off record; fields from complete lines still flush.
        """
        if discard_partial:
            self._decoder.reset()
            remainder = "" if not self._pending.endswith("\r") else self._pending
        else:
            try:
                tail = self._decoder.decode(b"", final=True)
            except UnicodeDecodeError as e:
                raise DecodeError(str(e)) from e
            remainder = self._pending + tail
        self._pending = ""

        records = self._process_lines(LINE_END.split(remainder)) if remainder else []
        record = self._finish_record()
        if record is not None:
            records.append(record)
        return records

    def _process_lines(self, lines: Iterable[str]) -> List[StreamRecord]:
        records = []
        for line in lines:
            record = self._process_line(line)
            if record is not None:
                records.append(record)
        return records

    def _process_line(self, line: str) -> Optional[StreamRecord]:
        if not line.strip():
            return self._finish_record()

        if line.startswith(":"):
            return None

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if field == "event":
            self._event = value
        elif field == "data":
            if self._data_seen:
                self._data += "\n"
            self._data += value
            self._data_seen = True
        elif field == "id":
            self._id = value
        elif field == "retry":
            try:
                self._retry = int(value)
            except ValueError:
                logger.debug(f"Ignoring non-numeric retry value: {value!r}")
        return None

    def _finish_record(self) -> Optional[StreamRecord]:
        has_fields = (
            self._event is not None
            or self._data
            or self._id is not None
            or self._retry is not None
        )
        if not has_fields:
            self._reset_record()
            return None

        if self._data == SSE_DONE_SENTINEL:
            # Legacy completion marker; transport end is the authoritative signal
            self._reset_record()
            return None

        record = StreamRecord(
            event=self._event,
            data=self._data if self._data_seen else None,
            id=self._id,
            retry=self._retry,
        )
        self._reset_record()
        return record


def parse_stream(chunks: Iterable[Union[bytes, str]]) -> Iterator[StreamRecord]:
    """Frame a complete iterable of chunks, including the end-of-stream flush."""
    parser = SSEParser()
    for chunk in chunks:
        yield from parser.feed(chunk)
    yield from parser.finalize()
