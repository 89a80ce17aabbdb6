"""Component registry: type tag -> renderer, with an explicit unknown-type entry."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from hypernotebook.protocol.records import ComponentRecord
from hypernotebook.render.nodes import RenderNode, unknown_placeholder

logger = logging.getLogger(__name__)

RendererFn = Callable[[dict[str, Any], list[RenderNode]], RenderNode]
PayloadFn = Callable[[Any], dict[str, Any]]


def default_payload(payload: Any) -> dict[str, Any]:
    """Object payloads merge key-by-key; anything else lands under "data"."""
    if payload is None:
        return {}
    if isinstance(payload, dict):
        return payload
    return {"data": payload}


@dataclass
class RendererDef:
    """A renderer and the payload extraction feeding it."""

    fn: RendererFn
    payload_fn: PayloadFn = default_payload


def _render_unknown(record: ComponentRecord, children: list[RenderNode]) -> RenderNode:
    logger.debug("No renderer for type %r (id=%s)", record.type, record.id)
    node = unknown_placeholder(record.type)
    node.children = children
    return node


class RendererRegistry:
    """Registry of per-type renderers.

    Dispatch is total: any type without a registered renderer goes to the
    fallback, which by default produces a labeled "unknown type" node.
    """

    def __init__(
        self,
        fallback: Callable[[ComponentRecord, list[RenderNode]], RenderNode] = _render_unknown,
    ) -> None:
        self._renderers: dict[str, RendererDef] = {}
        self._aliases: dict[str, str] = {}
        self._fallback = fallback

    def register(
        self,
        type_name: str,
        fn: RendererFn,
        payload_fn: PayloadFn | None = None,
        aliases: tuple[str, ...] = (),
    ) -> None:
        if not type_name:
            raise ValueError("Renderer type name must be non-empty")
        self._renderers[type_name] = RendererDef(fn=fn, payload_fn=payload_fn or default_payload)
        for alias in aliases:
            self._aliases[alias] = type_name

    def resolve(self, type_name: str) -> RendererDef | None:
        canonical = self._aliases.get(type_name, type_name)
        return self._renderers.get(canonical)

    def is_known(self, type_name: str) -> bool:
        return self.resolve(type_name) is not None

    def dispatch(self, record: ComponentRecord, children: list[RenderNode]) -> RenderNode:
        """Render one record given its already-rendered children.

        Properties are merged with the renderer's extraction of the
        payload; payload values win on conflicting keys. Renderer
        exceptions propagate to the caller.
        """
        renderer = self.resolve(record.type)
        if renderer is None:
            node = self._fallback(record, children)
        else:
            props = {**record.properties, **renderer.payload_fn(record.payload)}
            node = renderer.fn(props, children)
        node.key = record.id
        return node

    @property
    def known_types(self) -> list[str]:
        return sorted(self._renderers.keys())

    @property
    def aliases(self) -> dict[str, str]:
        return dict(self._aliases)


# Module-level singleton
renderer_registry = RendererRegistry()
