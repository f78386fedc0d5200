"""Incremental decoder for the relay's event stream."""

import codecs
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator

from ..events import FRAME_PREFIX, WireEvent, parse_event

logger = logging.getLogger(__name__)


class EventStreamDecoder:
    """Turns transport chunks into wire events.

    Chunks may split a frame (or a multi-byte character) anywhere; the
    incomplete tail is buffered until the rest arrives. Lines that are not
    frames, or whose payload is not a valid event, are skipped.
    """

    def __init__(self):
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes | str) -> list[WireEvent]:
        """Consume a chunk and return the events it completed."""
        if isinstance(chunk, bytes):
            chunk = self._utf8.decode(chunk)
        self._buffer += chunk

        *lines, self._buffer = self._buffer.split("\n")
        return self._decode_lines(lines)

    def flush(self) -> list[WireEvent]:
        """Decode whatever remains once the transport has closed."""
        tail = self._buffer + self._utf8.decode(b"", final=True)
        self._buffer = ""
        return self._decode_lines([tail])

    def _decode_lines(self, lines: list[str]) -> list[WireEvent]:
        events = []
        for line in lines:
            line = line.rstrip("\r")
            if not line.startswith(FRAME_PREFIX):
                continue
            try:
                payload = json.loads(line[len(FRAME_PREFIX):])
            except json.JSONDecodeError as e:
                logger.debug("Skipping malformed frame: %s", e)
                continue
            event = parse_event(payload)
            if event is None:
                logger.debug("Skipping unrecognized frame: %r", line)
                continue
            events.append(event)
        return events


async def decode_stream(chunks: AsyncIterable[bytes]) -> AsyncIterator[WireEvent]:
    """Decode an async byte stream into wire events."""
    decoder = EventStreamDecoder()
    async for chunk in chunks:
        for event in decoder.feed(chunk):
            yield event
    for event in decoder.flush():
        yield event
