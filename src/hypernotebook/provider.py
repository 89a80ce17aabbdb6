"""LLM provider interface and Gemini streaming implementation."""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from typing import Protocol

from google import genai
from google.genai import types

from hypernotebook import config
from hypernotebook.protocol.records import KNOWN_TYPES

logger = logging.getLogger(__name__)

DIRECTIVE_SYSTEM_PROMPT = """\
You are a helpful research assistant. When structured output would help the \
reader, emit interactive UI components alongside your prose.

## Component format
Put each group of components in a fenced block tagged `json`:

```json
{{"id": "c1", "type": "card", "properties": {{"title": "Result"}}, "payload": {{"text": "done"}}}}
```

A block may hold a single component object, an array of components, or an \
object with a `components` array. Every component needs a `type`; give each an \
`id` unique within your response. Nest components either with `parentId` \
(the id of another component in the same response) or with a `children` array.

- `properties`: static configuration such as titles, variants and flags.
- `payload`: the bulk content (rows, series, items, diagram tree).

## Component types
{types}

Charts take `payload.data` rows plus `properties.chartType` (line, bar or pie), \
`xKey` and `yKeys`. Diagrams take a tree `{{"label": ..., "children": [...]}}` \
as payload. Keep plain explanations as prose outside the blocks."""


def directive_system_prompt() -> str:
    return DIRECTIVE_SYSTEM_PROMPT.format(types=", ".join(KNOWN_TYPES))


class ChatProvider(Protocol):
    """Protocol for streaming chat providers."""

    def stream_chat(
        self, messages: list[dict[str, str]], system: str | None = None,
    ) -> AsyncIterator[str]:
        """Yield response text deltas for a conversation."""
        ...


def to_contents(messages: list[dict[str, str]]) -> list[types.Content]:
    """Convert ``{"role", "content"}`` chat messages to Gemini contents.

    Gemini calls the assistant role "model". System messages are not
    contents; pass them as the ``system`` argument instead.
    """
    contents = []
    for msg in messages:
        role = msg.get("role", "user")
        if role == "system":
            continue
        contents.append(types.Content(
            role="model" if role == "assistant" else "user",
            parts=[types.Part.from_text(text=msg.get("content", ""))],
        ))
    return contents


class GeminiProvider:
    """Gemini implementation of streaming chat."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        max_output_tokens: int | None = None,
    ) -> None:
        self._client = genai.Client(api_key=api_key or config.GEMINI_API_KEY)
        self._model = model or config.GEMINI_MODEL
        self._max_output_tokens = max_output_tokens or config.MAX_OUTPUT_TOKENS

    async def stream_chat(
        self, messages: list[dict[str, str]], system: str | None = None,
    ) -> AsyncIterator[str]:
        """Stream a chat completion.

        Args:
            messages: Conversation so far, oldest first.
            system: Optional system instruction; defaults to the directive prompt.

        Yields:
            Non-empty text deltas in arrival order.
        """
        contents = to_contents(messages)
        logger.debug("Stream via %s (%d message(s))", self._model, len(contents))
        t0 = time.perf_counter()
        gen_config = types.GenerateContentConfig(
            system_instruction=system or directive_system_prompt(),
            max_output_tokens=self._max_output_tokens,
        )
        stream = await self._client.aio.models.generate_content_stream(
            model=self._model,
            contents=contents,
            config=gen_config,
        )
        total = 0
        async for chunk in stream:
            text = chunk.text
            if text:
                total += len(text)
                yield text
        logger.debug("Stream complete: %d chars, %.0fms", total, (time.perf_counter() - t0) * 1000)
