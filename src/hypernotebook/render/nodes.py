"""RenderNode: display-agnostic output of the dispatcher."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class RenderNode:
    """A renderable node.

    ``key`` is the source record's id so display layers can keep nodes
    stable across re-renders. ``kind`` is the renderer that produced it, or
    one of the placeholder kinds "unknown", "error" and "empty".
    """

    kind: str
    props: dict[str, Any] = field(default_factory=dict)
    children: list[RenderNode] = field(default_factory=list)
    key: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "kind": self.kind,
            "props": self.props,
            "children": [c.to_dict() for c in self.children],
        }


def unknown_placeholder(type_name: str) -> RenderNode:
    return RenderNode(
        kind="unknown",
        props={"type": type_name, "label": f"Unknown type: {type_name}"},
    )


def error_placeholder(type_name: str, record_id: str, message: str) -> RenderNode:
    return RenderNode(
        kind="error",
        props={
            "type": type_name,
            "id": record_id,
            "label": f"Failed to render {type_name}",
            "message": message,
        },
    )


def empty_placeholder(message: str) -> RenderNode:
    return RenderNode(kind="empty", props={"message": message})
