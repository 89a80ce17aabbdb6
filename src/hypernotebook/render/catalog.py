"""Renderers for the simple component types.

Each renderer projects merged properties into a RenderNode. They index
into required fields directly; a missing field raises and is caught by
the per-node error boundary in ``render.pipeline``.
"""

from __future__ import annotations

from typing import Any

from hypernotebook.render.nodes import RenderNode
from hypernotebook.render.registry import default_payload, renderer_registry


def _text_payload(key: str):
    """Payload extraction for types whose bare-string payload is their text."""

    def extract(payload: Any) -> dict[str, Any]:
        if payload is None:
            return {}
        if isinstance(payload, str):
            return {key: payload}
        if isinstance(payload, dict):
            return payload
        return {"data": payload}

    return extract


def _items_payload(key: str):
    """Payload extraction for types whose bare-list payload is their items."""

    def extract(payload: Any) -> dict[str, Any]:
        if payload is None:
            return {}
        if isinstance(payload, list):
            return {key: payload}
        if isinstance(payload, dict):
            return payload
        return {"data": payload}

    return extract


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


# ── Containers ──


def render_card(props: dict[str, Any], children: list[RenderNode]) -> RenderNode:
    return RenderNode(
        kind="card",
        props={
            "title": props.get("title", ""),
            "description": props.get("description", ""),
            "text": _as_text(props.get("text", props.get("content"))),
            "variant": props.get("variant", "default"),
        },
        children=children,
    )


def render_accordion(props: dict[str, Any], children: list[RenderNode]) -> RenderNode:
    sections = [
        {"title": _as_text(item.get("title")), "content": _as_text(item.get("content"))}
        for item in props.get("items", [])
    ]
    return RenderNode(
        kind="accordion",
        props={
            "title": props.get("title", ""),
            "sections": sections,
            "multiple": bool(props.get("multiple", False)),
        },
        children=children,
    )


def render_tabs(props: dict[str, Any], children: list[RenderNode]) -> RenderNode:
    tabs = [
        {"label": _as_text(tab.get("label", tab.get("title"))), "content": _as_text(tab.get("content"))}
        for tab in props.get("tabs", [])
    ]
    active = int(props.get("active", 0))
    if tabs:
        active = min(max(active, 0), len(tabs) - 1)
    else:
        active = 0
    return RenderNode(kind="tabs", props={"tabs": tabs, "active": active}, children=children)


# ── Text ──


def render_code(props: dict[str, Any], children: list[RenderNode]) -> RenderNode:
    code = _as_text(props["code"])
    return RenderNode(
        kind="code",
        props={
            "code": code,
            "language": props.get("language", "text"),
            "filename": props.get("filename"),
            "line_count": len(code.splitlines()),
        },
    )


def render_quote(props: dict[str, Any], children: list[RenderNode]) -> RenderNode:
    return RenderNode(
        kind="quote",
        props={"text": _as_text(props["text"]), "author": props.get("author"), "source": props.get("source")},
    )


def render_list(props: dict[str, Any], children: list[RenderNode]) -> RenderNode:
    items = []
    for item in props.get("items", []):
        if isinstance(item, dict):
            items.append({"text": _as_text(item.get("text", item.get("title"))), "description": item.get("description")})
        else:
            items.append({"text": _as_text(item), "description": None})
    return RenderNode(
        kind="list",
        props={"title": props.get("title", ""), "items": items, "ordered": bool(props.get("ordered", False))},
        children=children,
    )


# ── Data ──


def _table_payload(payload: Any) -> dict[str, Any]:
    if isinstance(payload, list):
        return {"rows": payload}
    return default_payload(payload)


def render_table(props: dict[str, Any], children: list[RenderNode]) -> RenderNode:
    rows = props.get("rows", [])
    columns = props.get("columns")
    if not columns:
        columns = list(rows[0].keys()) if rows and isinstance(rows[0], dict) else []
    # Columns may be plain names or {"key", "label"} objects
    keys = [c["key"] if isinstance(c, dict) else c for c in columns]
    labels = [c.get("label", c["key"]) if isinstance(c, dict) else c for c in columns]

    table_rows = []
    for row in rows:
        if isinstance(row, dict):
            table_rows.append([row.get(k) for k in keys])
        else:
            table_rows.append(list(row))
    return RenderNode(
        kind="table",
        props={"title": props.get("title", ""), "columns": labels, "keys": keys, "rows": table_rows},
    )


def render_progress(props: dict[str, Any], children: list[RenderNode]) -> RenderNode:
    value = float(props.get("value", 0))
    maximum = float(props.get("max", 100))
    if maximum <= 0:
        raise ValueError(f"progress max must be positive, got {maximum}")
    percent = min(max(value / maximum * 100, 0.0), 100.0)
    return RenderNode(
        kind="progress",
        props={"label": props.get("label", ""), "value": value, "max": maximum, "percent": round(percent, 1)},
    )


def render_timeline(props: dict[str, Any], children: list[RenderNode]) -> RenderNode:
    events = [
        {
            "date": _as_text(event.get("date")),
            "title": _as_text(event.get("title")),
            "description": _as_text(event.get("description")),
        }
        for event in props.get("events", [])
    ]
    return RenderNode(kind="timeline", props={"title": props.get("title", ""), "events": events})


def render_slide_deck(props: dict[str, Any], children: list[RenderNode]) -> RenderNode:
    slides = []
    for idx, slide in enumerate(props.get("slides", [])):
        bullets = slide.get("bullets", [])
        slides.append({
            "index": idx,
            "title": _as_text(slide.get("title")),
            "content": _as_text(slide.get("content")),
            "bullets": [_as_text(b) for b in bullets],
            "notes": slide.get("notes"),
        })
    return RenderNode(
        kind="slide-deck",
        props={"title": props.get("title", ""), "slides": slides, "count": len(slides)},
    )


# ── Inline ──


def render_image(props: dict[str, Any], children: list[RenderNode]) -> RenderNode:
    return RenderNode(
        kind="image",
        props={"src": props["src"], "alt": props.get("alt", ""), "caption": props.get("caption")},
    )


def render_badge(props: dict[str, Any], children: list[RenderNode]) -> RenderNode:
    return RenderNode(
        kind="badge",
        props={"text": _as_text(props.get("text", props.get("label"))), "variant": props.get("variant", "default")},
    )


def render_button(props: dict[str, Any], children: list[RenderNode]) -> RenderNode:
    return RenderNode(
        kind="button",
        props={
            "label": _as_text(props.get("label", props.get("text"))),
            "action": props.get("action"),
            "variant": props.get("variant", "default"),
        },
    )


def render_link(props: dict[str, Any], children: list[RenderNode]) -> RenderNode:
    href = props["href"]
    return RenderNode(kind="link", props={"href": href, "text": _as_text(props.get("text") or href)})


renderer_registry.register("card", render_card, payload_fn=_text_payload("text"))
renderer_registry.register("accordion", render_accordion, payload_fn=_items_payload("items"))
renderer_registry.register("tabs", render_tabs, payload_fn=_items_payload("tabs"))
renderer_registry.register("code", render_code, payload_fn=_text_payload("code"))
renderer_registry.register("quote", render_quote, payload_fn=_text_payload("text"))
renderer_registry.register("list", render_list, payload_fn=_items_payload("items"))
renderer_registry.register("table", render_table, payload_fn=_table_payload, aliases=("datatable",))
renderer_registry.register("progress", render_progress)
renderer_registry.register("timeline", render_timeline, payload_fn=_items_payload("events"))
renderer_registry.register("slide-deck", render_slide_deck, payload_fn=_items_payload("slides"), aliases=("slides",))
renderer_registry.register("image", render_image, payload_fn=_text_payload("src"))
renderer_registry.register("badge", render_badge, payload_fn=_text_payload("text"))
renderer_registry.register("button", render_button)
renderer_registry.register("link", render_link, payload_fn=_text_payload("href"))
