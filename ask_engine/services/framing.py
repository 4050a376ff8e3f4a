"""Incremental framing of streamed response bodies.

Framers accept body fragments split at arbitrary byte offsets (including inside
multi-byte characters or JSON payloads) and emit complete frames in arrival
order. A trailing incomplete frame at end of stream is dropped.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import codecs
from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass
import json
import logging
import re
from typing import Any

from ask_engine.errors import MalformedFrame

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Frame:
    """One delimited wire unit with its JSON-decoded payload."""

    name: str
    data: Any


def _decode_json(raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise MalformedFrame(f"invalid JSON payload: {exc.msg}") from exc
    except (ValueError, RecursionError) as exc:
        # Oversized integers and pathological nesting fail outside the JSON grammar.
        raise MalformedFrame(f"unparseable JSON payload: {type(exc).__name__}") from exc


class StreamFramer(ABC):
    delimiter: str

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, data: bytes) -> list[Frame]:
        self._buffer = (self._buffer + self._decoder.decode(data)).replace("\r\n", "\n")
        frames: list[Frame] = []
        while True:
            end = self._buffer.find(self.delimiter)
            if end == -1:
                break
            raw = self._buffer[:end]
            self._buffer = self._buffer[end + len(self.delimiter):]
            try:
                frame = self._parse(raw)
            except MalformedFrame as exc:
                logger.warning("dropping malformed frame", extra={"error": str(exc), "frame": raw[:200]})
                continue
            if frame is not None:
                frames.append(frame)
        return frames

    def finish(self) -> list[Frame]:
        self._buffer += self._decoder.decode(b"", final=True)
        if self._buffer.strip():
            logger.debug("discarding incomplete trailing frame", extra={"pending_chars": len(self._buffer)})
        self._buffer = ""
        return []

    async def aiter_frames(self, fragments: AsyncIterable[bytes]) -> AsyncIterator[Frame]:
        async for fragment in fragments:
            for frame in self.feed(fragment):
                yield frame
        for frame in self.finish():
            yield frame

    @abstractmethod
    def _parse(self, raw: str) -> Frame | None:
        """Turn one complete raw frame into a ``Frame``, or ``None`` to skip it."""


class LineEventFramer(StreamFramer):
    """``event: <name>`` / ``data: <json>`` frames separated by a blank line."""

    delimiter = "\n\n"

    def _parse(self, raw: str) -> Frame | None:
        event_name = ""
        data_lines: list[str] = []
        for line in raw.split("\n"):
            if not line or line.startswith(":"):
                continue
            field, _, value = line.partition(":")
            value = value[1:] if value.startswith(" ") else value
            if field == "event":
                event_name = value.strip()
            elif field == "data":
                data_lines.append(value)

        if not event_name or not data_lines:
            return None
        data = "\n".join(data_lines).strip()
        if not data:
            return None
        return Frame(name=event_name, data=_decode_json(data))


class TaggedLineFramer(StreamFramer):
    """``<digit>:<json>`` frames, one per line; only tag ``0`` is produced."""

    delimiter = "\n"

    _line_pattern = re.compile(r"^(\d):(.*)$", re.DOTALL)
    text_tag = "0"

    def _parse(self, raw: str) -> Frame | None:
        line = raw.strip()
        if not line:
            return None
        match = self._line_pattern.match(line)
        if match is None:
            logger.debug("ignoring untagged line", extra={"line": line[:200]})
            return None
        tag, payload = match.groups()
        if tag != self.text_tag:
            return None
        return Frame(name=tag, data=_decode_json(payload))
