"""Incremental decoder for the chat service's server-sent-event body.

Bytes are buffered and split on newlines; the trailing partial line waits
for the next chunk. Only `data: ` lines matter: `data: [DONE]` ends the
stream, anything else is parsed as JSON and its `message` field is a text
delta. Unparseable lines are skipped.

    decoder = StreamDecoder()
    async for frame in decoder.decode(response.aiter_bytes()):
        if frame.text_delta:
            print(frame.text_delta, end="")
"""

import codecs
import json
from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass
from enum import Enum

import httpx
import structlog

from duckchat.core.errors import StreamError

logger = structlog.get_logger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


@dataclass(frozen=True)
class StreamFrame:
    """One decoded unit: a text delta, or the terminal signal."""
    is_terminal: bool = False
    text_delta: str | None = None


TERMINAL_FRAME = StreamFrame(is_terminal=True)


class DecoderState(str, Enum):
    OPEN = "open"
    DONE = "done"


class StreamDecoder:
    """Two-state (OPEN -> DONE) line decoder. Not reusable across responses."""

    def __init__(self):
        self.state = DecoderState.OPEN
        self.completed = False  # True only when the [DONE] sentinel was seen
        self.skipped_lines = 0
        self._buffer = ""
        self._parts: list[str] = []
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")

    @property
    def done(self) -> bool:
        return self.state is DecoderState.DONE

    @property
    def text(self) -> str:
        """Text accumulated so far."""
        return "".join(self._parts)

    def feed(self, chunk: bytes | str) -> list[StreamFrame]:
        """Consume a chunk and return the frames completed by it."""
        if self.done:
            return []

        if isinstance(chunk, bytes):
            chunk = self._utf8.decode(chunk)
        self._buffer += chunk

        lines = self._buffer.split("\n")
        self._buffer = lines.pop()

        frames: list[StreamFrame] = []
        for line in lines:
            frame = self._decode_line(line)
            if frame is None:
                continue
            frames.append(frame)
            if frame.is_terminal:
                break
        return frames

    def finish(self) -> list[StreamFrame]:
        """Flush at end of input. Always ends with the terminal frame.

        A missing [DONE] sentinel is not an error: the text received so far
        stands, and `completed` stays False.
        """
        if self.done:
            return []

        self._buffer += self._utf8.decode(b"", final=True)
        frames: list[StreamFrame] = []
        residual, self._buffer = self._buffer, ""
        if residual:
            frame = self._decode_line(residual)
            if frame is not None:
                frames.append(frame)

        if not self.done:
            logger.debug("stream.truncated", chars=sum(len(p) for p in self._parts))
            self.state = DecoderState.DONE
            frames.append(TERMINAL_FRAME)
        return frames

    async def decode(self, chunks: AsyncIterable[bytes]) -> AsyncIterator[StreamFrame]:
        """Yield frames from an async chunk source until the terminal frame.

        Raises:
            StreamError: If reading from the transport fails mid-stream.
        """
        try:
            async for chunk in chunks:
                for frame in self.feed(chunk):
                    yield frame
                if self.done:
                    return
        except httpx.TransportError as e:
            logger.error("stream.read_failed", error=str(e))
            raise StreamError(str(e)) from e

        for frame in self.finish():
            yield frame

    def _decode_line(self, line: str) -> StreamFrame | None:
        stripped = line.strip()
        if stripped == f"{DATA_PREFIX}{DONE_SENTINEL}":
            self.state = DecoderState.DONE
            self.completed = True
            self._buffer = ""
            return TERMINAL_FRAME

        if not line.startswith(DATA_PREFIX):
            return None

        try:
            data = json.loads(line[len(DATA_PREFIX):])
        except json.JSONDecodeError:
            self.skipped_lines += 1
            return None

        if not isinstance(data, dict):
            self.skipped_lines += 1
            return None

        delta = data.get("message")
        if not isinstance(delta, str) or not delta:
            return None

        self._parts.append(delta)
        return StreamFrame(text_delta=delta)
