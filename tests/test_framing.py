"""Unit tests for incremental stream framing."""

from __future__ import annotations

import logging

import pytest

from ask_engine.services.framing import Frame, LineEventFramer, TaggedLineFramer
from tests.conftest import chunk_line, scripted_body, sse

SSE_BODY = (
    sse("connected", {"type": "connected"})
    + sse("answer", {"type": "answer", "text": "Héllo wörld 🌍", "sessionId": "s-1"})
    + sse("tool", {"type": "tool", "tool": "search", "callID": "c-1", "status": "running", "sessionId": "s-1"})
    + sse("done", {"type": "done"})
)

CHUNK_BODY = (
    chunk_line({"type": "text-start", "id": "t1"})
    + chunk_line({"type": "text-delta", "id": "t1", "delta": "ünïcode ✓"})
    + chunk_line({"type": "text-end", "id": "t1"})
)


def _feed_all(framer, fragments: list[bytes]) -> list[Frame]:
    frames: list[Frame] = []
    for fragment in fragments:
        frames.extend(framer.feed(fragment))
    frames.extend(framer.finish())
    return frames


def test_line_event_framer_emits_frames_in_order() -> None:
    frames = _feed_all(LineEventFramer(), [SSE_BODY])

    assert [frame.name for frame in frames] == ["connected", "answer", "tool", "done"]
    assert frames[1].data["text"] == "Héllo wörld 🌍"
    assert frames[2].data["callID"] == "c-1"


@pytest.mark.parametrize(
    ("framer_type", "body"),
    [(LineEventFramer, SSE_BODY), (TaggedLineFramer, CHUNK_BODY)],
)
def test_framing_is_invariant_to_any_single_split(framer_type, body: bytes) -> None:
    expected = _feed_all(framer_type(), [body])

    for offset in range(1, len(body)):
        assert _feed_all(framer_type(), [body[:offset], body[offset:]]) == expected, offset


@pytest.mark.parametrize(
    ("framer_type", "body"),
    [(LineEventFramer, SSE_BODY), (TaggedLineFramer, CHUNK_BODY)],
)
def test_framing_survives_byte_at_a_time_delivery(framer_type, body: bytes) -> None:
    expected = _feed_all(framer_type(), [body])

    assert _feed_all(framer_type(), [body[i : i + 1] for i in range(len(body))]) == expected


def test_line_event_framer_accepts_crlf_split_across_reads() -> None:
    body = b'event: answer\r\ndata: {"text": "a"}\r\n\r\n'
    split = body.index(b"\n")  # between \r and \n

    frames = _feed_all(LineEventFramer(), [body[:split], body[split:]])

    assert frames == [Frame(name="answer", data={"text": "a"})]


def test_line_event_framer_drops_frames_missing_event_or_data() -> None:
    body = b'data: {"text": "orphan"}\n\nevent: answer\n\n: keep-alive\n\nevent: done\ndata: {}\n\n'

    frames = _feed_all(LineEventFramer(), [body])

    assert frames == [Frame(name="done", data={})]


def test_line_event_framer_joins_multiline_data() -> None:
    body = b'event: answer\ndata: {"text":\ndata: "joined"}\n\n'

    assert _feed_all(LineEventFramer(), [body]) == [Frame(name="answer", data={"text": "joined"})]


def test_malformed_payload_is_logged_and_skipped(caplog: pytest.LogCaptureFixture) -> None:
    body = b"event: answer\ndata: {not json\n\n" + sse("done", {"type": "done"})

    with caplog.at_level(logging.WARNING, logger="ask_engine.services.framing"):
        frames = _feed_all(LineEventFramer(), [body])

    assert [frame.name for frame in frames] == ["done"]
    assert "dropping malformed frame" in caplog.text


def test_trailing_partial_frame_is_discarded() -> None:
    framer = LineEventFramer()

    frames = framer.feed(sse("answer", {"text": "a"}) + b'event: answer\ndata: {"text": "b"}\n')

    assert [frame.data["text"] for frame in frames] == ["a"]
    assert framer.finish() == []


def test_tagged_line_framer_only_produces_tag_zero() -> None:
    body = (
        chunk_line({"type": "text-start"})
        + chunk_line({"finishReason": "stop"}, tag="d")
        + chunk_line({"usage": 1}, tag="2")
        + b"garbage line\n"
        + b"\n"
        + chunk_line({"type": "text-end"})
    )

    frames = _feed_all(TaggedLineFramer(), [body])

    assert [frame.data["type"] for frame in frames] == ["text-start", "text-end"]
    assert {frame.name for frame in frames} == {"0"}


def test_tagged_line_framer_skips_malformed_json_without_aborting() -> None:
    body = b"0:{broken\n" + chunk_line({"type": "text-start"})

    frames = _feed_all(TaggedLineFramer(), [body])

    assert frames == [Frame(name="0", data={"type": "text-start"})]


@pytest.mark.asyncio
async def test_aiter_frames_consumes_async_fragments() -> None:
    framer = TaggedLineFramer()

    frames = [frame async for frame in framer.aiter_frames(scripted_body(CHUNK_BODY[:7], CHUNK_BODY[7:]))]

    assert [frame.data["type"] for frame in frames] == ["text-start", "text-delta", "text-end"]
    assert frames[1].data["delta"] == "ünïcode ✓"


OVERSIZED_INTEGER = "1" * 5000
DEEPLY_NESTED = "[" * 100000 + "]" * 100000


@pytest.mark.parametrize("payload", [OVERSIZED_INTEGER, DEEPLY_NESTED])
def test_unparseable_payload_is_dropped_by_line_event_framer(payload: str, caplog: pytest.LogCaptureFixture) -> None:
    body = f"event: answer\ndata: {payload}\n\n".encode() + sse("done", {"type": "done"})

    with caplog.at_level(logging.WARNING, logger="ask_engine.services.framing"):
        frames = _feed_all(LineEventFramer(), [body])

    assert frames == [Frame(name="done", data={"type": "done"})]
    assert "dropping malformed frame" in caplog.text


@pytest.mark.parametrize("payload", [OVERSIZED_INTEGER, DEEPLY_NESTED])
def test_unparseable_payload_is_dropped_by_tagged_line_framer(payload: str) -> None:
    body = f"0:{payload}\n".encode() + chunk_line({"type": "text-start"})

    frames = _feed_all(TaggedLineFramer(), [body])

    assert frames == [Frame(name="0", data={"type": "text-start"})]
