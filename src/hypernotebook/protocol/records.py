"""ComponentRecord: the normalized unit of the directive protocol."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

KNOWN_TYPES: tuple[str, ...] = (
    "card",
    "chart",
    "table",
    "list",
    "code",
    "quote",
    "image",
    "accordion",
    "tabs",
    "progress",
    "badge",
    "button",
    "link",
    "diagram",
    "timeline",
    "slide-deck",
)


@dataclass
class ComponentRecord:
    """One renderable UI node as described by the model.

    ``parent_id`` of None marks a root. ``children`` holds the pre-nested
    form some producers emit instead of ``parentId`` references; the tree
    assembler flattens it before rendering.
    """

    id: str
    type: str
    parent_id: str | None = None
    properties: dict[str, Any] = field(default_factory=dict)
    payload: Any = None
    children: list[ComponentRecord] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Wire form, using the producer's camelCase keys."""
        d: dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "properties": self.properties,
        }
        if self.parent_id is not None:
            d["parentId"] = self.parent_id
        if self.payload is not None:
            d["payload"] = self.payload
        if self.children is not None:
            d["children"] = [c.to_dict() for c in self.children]
        return d
