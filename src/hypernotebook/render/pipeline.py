"""Records -> renderable tree, with a failure boundary around every node."""

from __future__ import annotations

import logging
import time
from typing import Any

from hypernotebook.protocol.records import ComponentRecord
from hypernotebook.protocol.tree import dedupe_records, flatten_records, get_children, get_roots
from hypernotebook.render.nodes import RenderNode, error_placeholder
from hypernotebook.render.registry import RendererRegistry, renderer_registry

logger = logging.getLogger(__name__)


def render_node(
    record: ComponentRecord,
    records: list[ComponentRecord],
    registry: RendererRegistry,
) -> RenderNode:
    """Render ``record`` and its descendants.

    Children render first, each inside its own boundary. If this record's
    renderer raises, the node is replaced by an error placeholder that still
    carries the rendered children; the exception never reaches siblings or
    ancestors.
    """
    children = [render_node(child, records, registry) for child in get_children(records, record.id)]
    try:
        return registry.dispatch(record, children)
    except Exception as e:
        logger.exception("Render failed for type=%r id=%r", record.type, record.id)
        node = error_placeholder(record.type, record.id, f"{type(e).__name__}: {e}")
        node.key = record.id
        node.children = children
        return node


def render_records(
    records: list[ComponentRecord],
    registry: RendererRegistry | None = None,
) -> list[RenderNode]:
    """Render every root of ``records`` (flat or pre-nested) in list order.

    Orphans, records whose parent is absent from the batch, are never
    reached and produce no output.
    """
    registry = registry or renderer_registry
    t0 = time.perf_counter()
    flat = dedupe_records(flatten_records(records))
    nodes = [render_node(root, flat, registry) for root in get_roots(flat)]
    logger.debug(
        "Rendered %d root(s) from %d record(s) (%.1fms)",
        len(nodes), len(flat), (time.perf_counter() - t0) * 1000,
    )
    return nodes


def render_to_dicts(
    records: list[ComponentRecord],
    registry: RendererRegistry | None = None,
) -> list[dict[str, Any]]:
    return [n.to_dict() for n in render_records(records, registry)]
