"""Diagram (mindmap) renderer and the weighted subtree layout.

Layout runs in two passes over the label tree:

1. Weights, post-order. A leaf weighs ``unit`` (the minimum node height);
   an internal node weighs the sum of its children, floored at ``unit``.
2. Placement, pre-order. The root owns the vertical span
   ``[0, root_weight * scale]``. Every node sits at the midpoint of its
   span, and its children split that span contiguously in proportion to
   their weights, so sibling spans never overlap and exactly cover the
   parent's span. x advances by ``level_width`` per depth.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from hypernotebook.render.nodes import RenderNode, empty_placeholder
from hypernotebook.render.registry import renderer_registry

logger = logging.getLogger(__name__)

NODE_HEIGHT = 60.0
SPAN_SCALE = 1.2
LEVEL_WIDTH = 280.0
ROOT_X = 50.0


@dataclass
class MindmapNode:
    """One labeled node of the input tree."""

    id: str
    label: str
    children: list[MindmapNode] = field(default_factory=list)
    weight: float = 0.0


@dataclass
class PlacedNode:
    id: str
    label: str
    depth: int
    x: float
    y: float
    span_start: float
    span_end: float
    weight: float

    @property
    def span(self) -> float:
        return self.span_end - self.span_start


@dataclass
class Connector:
    id: str
    source: str
    target: str
    points: tuple[tuple[float, float], tuple[float, float]]


@dataclass
class MindmapLayout:
    nodes: list[PlacedNode] = field(default_factory=list)
    edges: list[Connector] = field(default_factory=list)

    @property
    def height(self) -> float:
        return self.nodes[0].span if self.nodes else 0.0

    def node(self, node_id: str) -> PlacedNode:
        for n in self.nodes:
            if n.id == node_id:
                return n
        raise KeyError(node_id)


def parse_tree(data: Any, node_id: str = "n0") -> MindmapNode:
    """Build a MindmapNode tree from loosely shaped producer data.

    Nodes are objects with a ``label`` (or ``name``/``title``/``text``) and
    an optional ``children`` list; bare strings become leaves. Missing ids
    are derived from the path: ``n0``, ``n0-0``, ``n0-1``...

    Raises:
        TypeError: if a node is neither an object nor a string, or its
            ``children`` is not a list.
    """
    if isinstance(data, str):
        return MindmapNode(id=node_id, label=data)
    if not isinstance(data, dict):
        raise TypeError(f"Mindmap node must be an object or string, got {type(data).__name__}")

    label = data.get("label") or data.get("name") or data.get("title") or data.get("text") or ""
    raw_id = data.get("id")
    nid = str(raw_id) if raw_id not in (None, "") else node_id
    raw_children = data.get("children")
    if raw_children is None:
        raw_children = []
    elif not isinstance(raw_children, list):
        raise TypeError(f"Mindmap children must be a list, got {type(raw_children).__name__}")
    children = [parse_tree(child, f"{node_id}-{idx}") for idx, child in enumerate(raw_children)]
    return MindmapNode(id=nid, label=str(label), children=children)


def assign_weights(node: MindmapNode, unit: float = NODE_HEIGHT) -> float:
    """Post-order weight pass. Returns (and stores) the node's weight."""
    if not node.children:
        node.weight = unit
    else:
        node.weight = max(sum(assign_weights(c, unit) for c in node.children), unit)
    return node.weight


def layout_tree(
    root: MindmapNode,
    unit: float = NODE_HEIGHT,
    scale: float = SPAN_SCALE,
    level_width: float = LEVEL_WIDTH,
    origin_x: float = ROOT_X,
) -> MindmapLayout:
    """Position every node of ``root`` with the weighted subtree layout."""
    layout = MindmapLayout()
    total = assign_weights(root, unit)

    def _place(node: MindmapNode, start: float, end: float, depth: int) -> PlacedNode:
        placed = PlacedNode(
            id=node.id,
            label=node.label,
            depth=depth,
            x=origin_x + depth * level_width,
            y=(start + end) / 2,
            span_start=start,
            span_end=end,
            weight=node.weight,
        )
        layout.nodes.append(placed)
        if not node.children:
            return placed

        sibling_total = sum(c.weight for c in node.children)
        height = end - start
        cursor = start
        last = len(node.children) - 1
        for idx, child in enumerate(node.children):
            # Last child ends exactly at the parent's end (no float drift gap)
            child_end = end if idx == last else cursor + height * (child.weight / sibling_total)
            child_placed = _place(child, cursor, child_end, depth + 1)
            layout.edges.append(Connector(
                id=f"{node.id}-{child.id}",
                source=node.id,
                target=child.id,
                points=((placed.x, placed.y), (child_placed.x, child_placed.y)),
            ))
            cursor = child_end
        return placed

    _place(root, 0.0, total * scale, 0)
    logger.debug("Laid out %d mindmap nodes, height %.1f", len(layout.nodes), layout.height)
    return layout


def diagram_payload(payload: Any) -> dict[str, Any]:
    if payload is None:
        return {}
    if isinstance(payload, dict) and ("children" in payload or "label" in payload):
        return {"data": payload}
    if isinstance(payload, dict):
        return payload
    return {"data": payload}


def render_diagram(props: dict[str, Any], children: list[RenderNode]) -> RenderNode:
    title = props.get("title", "")
    data = props.get("data") or props.get("root")
    if isinstance(data, list):
        # Several top-level branches: hang them off a synthetic root
        data = {"label": title or "Topic", "children": data}
    if not data:
        node = empty_placeholder("No diagram data")
        node.props["title"] = title
        return node

    layout = layout_tree(parse_tree(data))
    return RenderNode(
        kind="diagram",
        props={
            "title": title,
            "height": layout.height,
            "nodes": [
                {
                    "id": n.id,
                    "label": n.label,
                    "depth": n.depth,
                    "x": n.x,
                    "y": n.y,
                    "span": [n.span_start, n.span_end],
                }
                for n in layout.nodes
            ],
            "edges": [
                {"id": e.id, "source": e.source, "target": e.target}
                for e in layout.edges
            ],
        },
        children=children,
    )


renderer_registry.register("diagram", render_diagram, payload_fn=diagram_payload, aliases=("mindmap",))
