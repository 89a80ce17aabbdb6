"""Stream ingestion: accumulate text deltas and re-render on every one.

Each delta is appended to an immutable TextBuffer and the whole buffer is
re-extracted and re-rendered; the new record list replaces the previous
one. Re-extracting the full buffer keeps every pass a pure function of the
text so far, at a cost quadratic in response length for long streams of
small deltas.

Everything runs on one event loop. The only suspension point is the wait
for the next chunk, which is raced against an optional cancellation event.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import AsyncIterable, AsyncIterator, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, Protocol

from hypernotebook.protocol.extractor import parse_response
from hypernotebook.protocol.records import ComponentRecord
from hypernotebook.render.nodes import RenderNode
from hypernotebook.render.pipeline import render_records
from hypernotebook.render.registry import RendererRegistry

logger = logging.getLogger(__name__)

TRANSPORT_ERROR_MESSAGE = "Sorry, an error occurred while processing your request."

_CANCELLED = object()


class TransportError(RuntimeError):
    """The upstream stream reported an error."""


@dataclass(frozen=True)
class TextBuffer:
    """Append-only response text. ``append`` returns a new buffer."""

    text: str = ""

    def append(self, delta: str) -> TextBuffer:
        return TextBuffer(self.text + delta)

    def __len__(self) -> int:
        return len(self.text)


# ── Chunk sources ──


class ChunkSource(Protocol):
    """Transport abstraction: the next delta, or None when the stream is done."""

    async def next_chunk(self, text: str) -> str | None: ...


async def _aiter_sync(items: Iterable[str]) -> AsyncIterator[str]:
    for item in items:
        yield item


class IteratorSource:
    """ChunkSource over any (async) iterable of text deltas."""

    def __init__(self, chunks: AsyncIterable[str] | Iterable[str]) -> None:
        if not isinstance(chunks, AsyncIterable):
            chunks = _aiter_sync(chunks)
        self._iter = chunks.__aiter__()

    async def next_chunk(self, text: str) -> str | None:
        try:
            return await self._iter.__anext__()
        except StopAsyncIteration:
            return None


def parse_sse_event(line: str) -> dict[str, Any] | None:
    """Decode one ``data: {...}`` SSE line. Other lines and bad JSON give None."""
    if not line.startswith("data: "):
        return None
    try:
        event = json.loads(line[6:])
    except ValueError:
        return None
    return event if isinstance(event, dict) else None


class SSETokenSource:
    """ChunkSource over SSE lines carrying ``token``/``done``/``error`` events."""

    def __init__(self, lines: AsyncIterable[str] | Iterable[str]) -> None:
        self._lines = IteratorSource(lines)
        self._done = False

    async def next_chunk(self, text: str) -> str | None:
        while not self._done:
            line = await self._lines.next_chunk(text)
            if line is None:
                return None
            event = parse_sse_event(line.strip())
            if event is None:
                continue
            kind = event.get("type")
            if kind == "token" and event.get("token"):
                return event["token"]
            if kind == "done":
                self._done = True
            elif kind == "error":
                raise TransportError(event.get("error") or "stream error")
        return None


# ── Ingestion loop ──


@dataclass
class RenderPass:
    """Output of one extraction-and-render cycle over the buffer."""

    text: str
    content: str
    records: list[ComponentRecord]
    nodes: list[RenderNode]
    final: bool = False


@dataclass
class StreamResult:
    status: str = "completed"  # "completed", "cancelled", "failed"
    text: str = ""
    content: str = ""
    records: list[ComponentRecord] = field(default_factory=list)
    nodes: list[RenderNode] = field(default_factory=list)
    passes: int = 0
    error: str | None = None


async def _next_chunk(source: ChunkSource, text: str, cancel: asyncio.Event | None) -> Any:
    """Await the next delta, or return _CANCELLED if ``cancel`` fires first."""
    if cancel is None:
        return await source.next_chunk(text)
    if cancel.is_set():
        return _CANCELLED

    chunk_task = asyncio.ensure_future(source.next_chunk(text))
    cancel_task = asyncio.ensure_future(cancel.wait())
    try:
        done, _ = await asyncio.wait({chunk_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (chunk_task, cancel_task):
            if not task.done():
                task.cancel()

    if cancel_task in done:
        if chunk_task.done() and not chunk_task.cancelled():
            # Drop whatever the transport produced; mark it retrieved
            chunk_task.exception()
        return _CANCELLED
    return chunk_task.result()


class StreamIngestor:
    """Drives extraction and rendering from an incremental text stream.

    Args:
        registry: Renderer registry; the global one when omitted.
        timestamp: Millisecond timestamp seeding generated record ids.
            Fixed once per stream so ids stay stable across passes.
    """

    def __init__(self, registry: RendererRegistry | None = None, timestamp: int | None = None) -> None:
        self._registry = registry
        self._timestamp = timestamp

    def render(self, buffer: TextBuffer, timestamp: int, final: bool = False) -> RenderPass:
        """Run one full extraction and render over a buffer snapshot."""
        extracted = parse_response(buffer.text, timestamp)
        nodes = render_records(extracted.records, self._registry)
        return RenderPass(
            text=buffer.text,
            content=extracted.content,
            records=extracted.records,
            nodes=nodes,
            final=final,
        )

    async def passes(
        self,
        source: ChunkSource,
        cancel: asyncio.Event | None = None,
    ) -> AsyncIterator[RenderPass]:
        """Yield a RenderPass per received delta, then one final pass.

        Stops without a final pass when ``cancel`` is set. Transport
        exceptions propagate to the caller.
        """
        timestamp = self._timestamp if self._timestamp is not None else int(time.time() * 1000)
        buffer = TextBuffer()
        deltas = 0
        while True:
            delta = await _next_chunk(source, buffer.text, cancel)
            if delta is _CANCELLED:
                logger.info("Stream cancelled after %d delta(s), %d chars", deltas, len(buffer))
                return
            if delta is None:
                break
            if not delta:
                continue
            deltas += 1
            buffer = buffer.append(delta)
            yield self.render(buffer, timestamp)

        logger.debug("Stream complete: %d delta(s), %d chars", deltas, len(buffer))
        yield self.render(buffer, timestamp, final=True)

    async def run(
        self,
        source: ChunkSource,
        cancel: asyncio.Event | None = None,
        on_render: Callable[[RenderPass], None] | None = None,
    ) -> StreamResult:
        """Consume ``source`` to the end, calling ``on_render`` after every pass.

        Never raises for transport failures: the result carries status
        "failed" and a user-facing message, and keeps whatever was rendered
        before the failure.
        """
        result = StreamResult()
        finished = False
        t0 = time.perf_counter()
        try:
            async for render_pass in self.passes(source, cancel):
                result.text = render_pass.text
                result.content = render_pass.content
                result.records = render_pass.records
                result.nodes = render_pass.nodes
                result.passes += 1
                finished = render_pass.final
                if on_render is not None:
                    on_render(render_pass)
        except Exception:
            logger.exception("Stream failed after %d chars", len(result.text))
            result.status = "failed"
            result.error = TRANSPORT_ERROR_MESSAGE
            return result

        if not finished:
            result.status = "cancelled"
        logger.debug(
            "Stream %s: %d pass(es), %d record(s), %.2fs",
            result.status, result.passes, len(result.records), time.perf_counter() - t0,
        )
        return result
