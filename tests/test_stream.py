"""Tests for the stream ingestion loop and chunk sources."""

from __future__ import annotations

import asyncio
import json

import pytest

from hypernotebook.stream import (
    TRANSPORT_ERROR_MESSAGE,
    IteratorSource,
    SSETokenSource,
    StreamIngestor,
    TextBuffer,
    TransportError,
    parse_sse_event,
)
from tests.helpers import _aiter, fence, record

TS = 1700000000000


def _split(text: str, size: int) -> list[str]:
    return [text[i:i + size] for i in range(0, len(text), size)]


def _run(coro):
    return asyncio.run(coro)


class TestTextBuffer:
    def test_append_returns_new_buffer(self):
        a = TextBuffer()
        b = a.append("hi")
        c = b.append(" there")
        assert (a.text, b.text, c.text) == ("", "hi", "hi there")
        assert len(c) == 8


class TestIngestion:
    def test_pass_per_delta_plus_final(self):
        text = "Intro\n" + fence(record("a", "card", properties={"title": "T"})) + "\nOutro"
        chunks = _split(text, 7)
        passes = []
        result = _run(StreamIngestor(timestamp=TS).run(IteratorSource(chunks), on_render=passes.append))
        assert result.status == "completed"
        assert result.passes == len(chunks) + 1
        assert [p.final for p in passes] == [False] * len(chunks) + [True]
        assert result.text == text
        assert result.content == "Intro\n\nOutro"
        assert [n.key for n in result.nodes] == ["a"]

    def test_record_appears_once_block_closes(self):
        block = fence(record("a", "badge", properties={"text": "Done"}))
        chunks = ["Here:\n", block[:-3], block[-3:]]
        passes = []
        _run(StreamIngestor(timestamp=TS).run(IteratorSource(chunks), on_render=passes.append))
        assert [len(p.records) for p in passes] == [0, 0, 1, 1]
        assert passes[2].nodes[0].props["text"] == "Done"

    def test_generated_ids_stable_across_passes(self):
        text = fence([{"type": "card"}, {"type": "badge"}]) + "\ntrailing text"
        passes = []
        _run(StreamIngestor(timestamp=TS).run(IteratorSource(_split(text, 5)), on_render=passes.append))
        with_records = [[r.id for r in p.records] for p in passes if p.records]
        assert with_records
        assert all(ids == [f"parsed-{TS}-0-0", f"parsed-{TS}-0-1"] for ids in with_records)

    def test_final_pass_on_empty_stream(self):
        result = _run(StreamIngestor().run(IteratorSource([])))
        assert result.status == "completed"
        assert result.passes == 1
        assert result.records == []

    def test_empty_deltas_skipped(self):
        result = _run(StreamIngestor().run(IteratorSource(["a", "", "b"])))
        assert result.passes == 3
        assert result.text == "ab"

    def test_async_iterable_source(self):
        result = _run(StreamIngestor().run(IteratorSource(_aiter(["x", "y"]))))
        assert result.text == "xy"

    def test_source_receives_accumulated_text(self):
        seen = []

        class _Source:
            def __init__(self):
                self._chunks = ["ab", "cd"]

            async def next_chunk(self, text):
                seen.append(text)
                return self._chunks.pop(0) if self._chunks else None

        _run(StreamIngestor().run(_Source()))
        assert seen == ["", "ab", "abcd"]


class TestCancellation:
    def test_cancel_between_chunks(self):
        cancel = asyncio.Event()
        chunks = ["one ", fence(record("a", "card")), " three"]

        def _on_render(render_pass):
            if render_pass.records:
                cancel.set()

        result = _run(StreamIngestor().run(IteratorSource(chunks), cancel=cancel, on_render=_on_render))
        assert result.status == "cancelled"
        assert result.passes == 2
        assert [r.id for r in result.records] == ["a"]
        assert not result.text.endswith("three")

    def test_cancel_while_waiting(self):
        async def _scenario():
            cancel = asyncio.Event()
            stalled = asyncio.Event()

            async def _chunks():
                yield fence(record("a", "card"))
                await stalled.wait()
                yield "never"

            asyncio.get_running_loop().call_later(0.05, cancel.set)
            return await StreamIngestor().run(IteratorSource(_chunks()), cancel=cancel)

        result = _run(_scenario())
        assert result.status == "cancelled"
        assert [r.id for r in result.records] == ["a"]

    def test_already_cancelled(self):
        async def _scenario():
            cancel = asyncio.Event()
            cancel.set()
            return await StreamIngestor().run(IteratorSource(["x"]), cancel=cancel)

        result = _run(_scenario())
        assert result.status == "cancelled"
        assert result.passes == 0


class TestTransportFailure:
    def test_failure_keeps_rendered_content(self):
        async def _chunks():
            yield fence(record("a", "card"))
            raise ConnectionError("reset")

        result = _run(StreamIngestor().run(IteratorSource(_chunks())))
        assert result.status == "failed"
        assert result.error == TRANSPORT_ERROR_MESSAGE
        assert [r.id for r in result.records] == ["a"]

    def test_passes_propagates(self):
        async def _chunks():
            raise ConnectionError("down")
            yield ""  # pragma: no cover

        async def _consume():
            return [p async for p in StreamIngestor().passes(IteratorSource(_chunks()))]

        with pytest.raises(ConnectionError):
            _run(_consume())


class TestSSE:
    def _lines(self, *events, extra=()):
        lines = [f"data: {json.dumps(e)}" for e in events]
        return list(extra) + lines

    def test_parse_sse_event(self):
        assert parse_sse_event('data: {"type": "token", "token": "a"}') == {"type": "token", "token": "a"}
        assert parse_sse_event(": keepalive") is None
        assert parse_sse_event("data: {not json") is None
        assert parse_sse_event("data: [1]") is None

    def test_tokens_until_done(self):
        lines = self._lines(
            {"type": "token", "token": "Hel"},
            {"type": "token", "token": "lo"},
            {"type": "done", "content": "Hello"},
            {"type": "token", "token": "ignored"},
            extra=[": keepalive", "", "data: {broken"],
        )
        result = _run(StreamIngestor().run(SSETokenSource(lines)))
        assert result.status == "completed"
        assert result.text == "Hello"

    def test_error_event(self):
        lines = self._lines({"type": "token", "token": "partial"}, {"type": "error", "error": "boom"})
        result = _run(StreamIngestor().run(SSETokenSource(lines)))
        assert result.status == "failed"
        assert result.text == "partial"

    def test_error_event_raises_transport_error(self):
        source = SSETokenSource(self._lines({"type": "error", "error": "boom"}))
        with pytest.raises(TransportError, match="boom"):
            _run(source.next_chunk(""))
