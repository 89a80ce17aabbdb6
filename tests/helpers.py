"""Shared test helpers: directive text builders and fake providers."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import MagicMock


def fence(payload: Any, hint: str = "json") -> str:
    """Wrap a payload (JSON-encoded unless already a string) in a fenced block."""
    body = payload if isinstance(payload, str) else json.dumps(payload)
    return f"```{hint}\n{body}\n```"


def record(id: str, type: str, **extra: Any) -> dict[str, Any]:
    d = {"id": id, "type": type}
    d.update(extra)
    return d


def _make_stream_chunk(text: str | None):
    """Create a mock Gemini streaming chunk."""
    chunk = MagicMock()
    chunk.text = text
    return chunk


async def _aiter(items):
    for item in items:
        yield item


class FakeProvider:
    """Streams canned deltas, optionally failing at the end."""

    def __init__(self, chunks: list[str], error: Exception | None = None) -> None:
        self.chunks = chunks
        self.error = error
        self.calls: list[tuple[list[dict[str, str]], str | None]] = []

    async def stream_chat(self, messages, system=None):
        self.calls.append((messages, system))
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error


def parse_sse_body(body: str) -> list[dict[str, Any]]:
    """Decode every ``data:`` event from a raw SSE response body."""
    return [
        json.loads(line[6:])
        for line in body.splitlines()
        if line.startswith("data: ")
    ]
