"""Chart renderer: line, bar and pie series with palette cycling."""

from __future__ import annotations

import logging
from typing import Any

from hypernotebook.render.nodes import RenderNode, empty_placeholder
from hypernotebook.render.registry import renderer_registry

logger = logging.getLogger(__name__)

CHART_KINDS = ("line", "bar", "pie")
DEFAULT_KIND = "bar"

PALETTE = (
    "#3b82f6",
    "#10b981",
    "#f59e0b",
    "#ef4444",
    "#8b5cf6",
    "#ec4899",
    "#14b8a6",
    "#f97316",
)

EMPTY_MESSAGE = "No data to display"


def palette_color(index: int) -> str:
    return PALETTE[index % len(PALETTE)]


def chart_payload(payload: Any) -> dict[str, Any]:
    """Pull the series out of the payload.

    Accepts a bare list of rows or an object with a ``data`` (or
    ``series``) list. Series found here override ``properties["data"]``.
    """
    if isinstance(payload, list):
        return {"data": payload}
    if not isinstance(payload, dict):
        return {}
    extracted = dict(payload)
    if "data" not in extracted and isinstance(extracted.get("series"), list):
        extracted["data"] = extracted.pop("series")
    return extracted


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _resolve_y_keys(props: dict[str, Any], rows: list[dict[str, Any]], x_key: str) -> list[str]:
    y_keys = props.get("yKeys")
    if isinstance(y_keys, str):
        return [y_keys]
    if y_keys:
        return list(y_keys)
    if props.get("yKey"):
        return [props["yKey"]]
    # Fall back to every numeric column of the first row
    return [k for k, v in rows[0].items() if k != x_key and _is_number(v)]


def render_chart(props: dict[str, Any], children: list[RenderNode]) -> RenderNode:
    kind = props.get("chartType") or props.get("kind") or DEFAULT_KIND
    if kind not in CHART_KINDS:
        logger.debug("Unknown chart kind %r, using %r", kind, DEFAULT_KIND)
        kind = DEFAULT_KIND

    rows = [r for r in props.get("data") or [] if isinstance(r, dict)]
    title = props.get("title", "")
    if not rows:
        node = empty_placeholder(EMPTY_MESSAGE)
        node.props["title"] = title
        node.props["chartType"] = kind
        return node

    x_key = props.get("xKey", "name")
    y_keys = _resolve_y_keys(props, rows, x_key)

    if kind == "pie":
        # A pie shows one value column; each slice takes a palette colour
        value_key = y_keys[0] if y_keys else "value"
        slices = [
            {
                "label": row.get(x_key),
                "value": row.get(value_key),
                "color": palette_color(idx),
            }
            for idx, row in enumerate(rows)
        ]
        return RenderNode(
            kind="chart",
            props={"chartType": "pie", "title": title, "valueKey": value_key, "slices": slices},
        )

    series = [
        {
            "key": key,
            "label": key,
            "color": palette_color(idx),
            "points": [{"x": row.get(x_key), "y": row.get(key)} for row in rows],
        }
        for idx, key in enumerate(y_keys)
    ]
    return RenderNode(
        kind="chart",
        props={
            "chartType": kind,
            "title": title,
            "xKey": x_key,
            "yKeys": y_keys,
            "categories": [row.get(x_key) for row in rows],
            "series": series,
        },
    )


renderer_registry.register("chart", render_chart, payload_fn=chart_payload)
