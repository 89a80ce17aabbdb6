"""FastAPI server: streaming chat with generative UI, and one-shot rendering."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from hypernotebook import config
from hypernotebook.protocol.extractor import parse_response
from hypernotebook.render import renderer_registry, render_to_dicts
from hypernotebook.stream import TRANSPORT_ERROR_MESSAGE, IteratorSource, StreamIngestor

# Configure logging on import, before anything else logs
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)-5s [%(name)s] %(message)s",
    datefmt="%H:%M:%S",
)

logger = logging.getLogger(__name__)

app = FastAPI(title="Hypernotebook", description="Generative UI for streamed model output")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Lazy-initialized provider (created on first chat request)
_provider = None


def _get_provider():
    global _provider
    if _provider is None:
        from hypernotebook.provider import GeminiProvider

        logger.info("Initializing Gemini provider (%s)...", config.GEMINI_MODEL)
        _provider = GeminiProvider()
    return _provider


def _sse(event: dict[str, Any]) -> str:
    return f"data: {json.dumps(event)}\n\n"


DISCONNECT_POLL_SECONDS = 0.5


async def watch_disconnect(
    request: Request, cancel: asyncio.Event, interval: float = DISCONNECT_POLL_SECONDS,
) -> None:
    """Set ``cancel`` once the client goes away, even while no chunk arrives."""
    while not cancel.is_set():
        if await request.is_disconnected():
            logger.info("Client disconnected, cancelling stream")
            cancel.set()
            return
        await asyncio.sleep(interval)


class ChatMessage(BaseModel):
    role: str
    content: str


class ChatRequest(BaseModel):
    messages: list[ChatMessage]
    system_prompt: str | None = None


class RenderRequest(BaseModel):
    text: str
    timestamp: int | None = None


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/components")
def list_components():
    """Component types with a dedicated renderer, plus accepted aliases."""
    return {
        "types": renderer_registry.known_types,
        "aliases": renderer_registry.aliases,
    }


@app.post("/render")
def render(req: RenderRequest):
    """Extract and render every directive in a complete response text."""
    t0 = time.perf_counter()
    extracted = parse_response(req.text, req.timestamp)
    tree = render_to_dicts(extracted.records)
    logger.info(
        "POST /render: %d chars -> %d record(s), %d root(s), %.1fms",
        len(req.text), len(extracted.records), len(tree), (time.perf_counter() - t0) * 1000,
    )
    return {
        "content": extracted.content,
        "records": [r.to_dict() for r in extracted.records],
        "tree": tree,
    }


@app.post("/chat")
async def chat(req: ChatRequest, request: Request):
    """SSE stream of ``token``, ``render``, then ``done`` or ``error`` events.

    A ``render`` event is sent only when the extracted record list changed.
    """
    if not req.messages:
        raise HTTPException(status_code=400, detail="messages must not be empty")
    logger.info("POST /chat (%d message(s))", len(req.messages))

    provider = _get_provider()
    messages = [m.model_dump() for m in req.messages]
    source = IteratorSource(provider.stream_chat(messages, system=req.system_prompt))
    ingestor = StreamIngestor()
    cancel = asyncio.Event()

    async def event_generator():
        text = ""
        last_records: list[dict[str, Any]] = []
        watcher = asyncio.create_task(watch_disconnect(request, cancel))
        try:
            async for render_pass in ingestor.passes(source, cancel):
                records = [r.to_dict() for r in render_pass.records]
                if render_pass.final:
                    yield _sse({
                        "type": "done",
                        "content": render_pass.content,
                        "records": records,
                        "tree": [n.to_dict() for n in render_pass.nodes],
                    })
                    break
                token = render_pass.text[len(text):]
                text = render_pass.text
                yield _sse({"type": "token", "token": token})
                if records != last_records:
                    last_records = records
                    yield _sse({
                        "type": "render",
                        "records": records,
                        "tree": [n.to_dict() for n in render_pass.nodes],
                    })
        except Exception:
            logger.exception("Chat stream failed after %d chars", len(text))
            yield _sse({"type": "error", "error": TRANSPORT_ERROR_MESSAGE})
        finally:
            watcher.cancel()

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
