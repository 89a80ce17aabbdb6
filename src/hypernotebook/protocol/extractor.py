"""Directive extraction: fenced JSON blocks in model text -> ComponentRecords."""

from __future__ import annotations

import json
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any

from hypernotebook.protocol.records import ComponentRecord

logger = logging.getLogger(__name__)

# ```json\n ... \n```  (the "json" hint is optional)
FENCE_PATTERN = re.compile(r"```(?:json)?\s*\n(.*?)\n```", re.DOTALL)

_EXTRA_NEWLINES = re.compile(r"\n{3,}")


@dataclass
class DirectiveBlock:
    """One fenced segment found in the raw text."""

    start: int
    end: int
    body: str

    def decode(self) -> Any:
        """Decode the block body. Raises ValueError on malformed JSON."""
        return json.loads(self.body.strip())


@dataclass
class ExtractionResult:
    """Records found in a response plus the free text with directives removed."""

    records: list[ComponentRecord] = field(default_factory=list)
    content: str = ""


def find_directive_blocks(text: str) -> list[DirectiveBlock]:
    """Return every complete fenced block in ``text``, in order.

    A block still missing its closing fence does not match and is picked up
    on a later pass once the rest of it has streamed in.
    """
    return [
        DirectiveBlock(start=m.start(), end=m.end(), body=m.group(1))
        for m in FENCE_PATTERN.finditer(text)
    ]


def _has_type(item: Any) -> bool:
    return isinstance(item, dict) and isinstance(item.get("type"), str) and bool(item["type"])


def classify_payload(decoded: Any) -> tuple[str, list[Any]]:
    """Resolve the three accepted block shapes into one element list.

    Returns (shape, elements) where shape is "array", "record", "wrapper"
    or "ignored".
    """
    if isinstance(decoded, list):
        return "array", decoded
    if _has_type(decoded):
        return "record", [decoded]
    if isinstance(decoded, dict) and isinstance(decoded.get("components"), list):
        return "wrapper", decoded["components"]
    return "ignored", []


def _build_record(item: dict[str, Any], default_id: str) -> ComponentRecord:
    raw_id = item.get("id")
    record_id = str(raw_id) if raw_id not in (None, "") else default_id

    properties = item.get("properties")
    if not isinstance(properties, dict):
        properties = {}

    parent_id = item.get("parentId")
    if not isinstance(parent_id, str):
        parent_id = None

    payload = item.get("payload")
    if payload is None:
        # Older producers put the bulk content under "data"
        payload = item.get("data")

    children = None
    nested = item.get("children")
    if isinstance(nested, list):
        children = [
            _build_record(child, f"{record_id}-{idx}")
            for idx, child in enumerate(nested)
            if _has_type(child)
        ]

    return ComponentRecord(
        id=record_id,
        type=item["type"],
        parent_id=parent_id,
        properties=properties,
        payload=payload,
        children=children,
    )


def decode_block(block: DirectiveBlock, timestamp: int, ordinal: int = 0) -> list[ComponentRecord]:
    """Decode one block into zero or more records. Never raises.

    Generated ids are ``parsed-{timestamp}-{ordinal}`` for a single record
    and ``parsed-{timestamp}-{ordinal}-{index}`` for array elements, where
    ``ordinal`` is the block's position among the fenced blocks in the text.
    """
    try:
        decoded = block.decode()
    except ValueError:
        logger.debug("Skipping undecodable block at offset %d", block.start)
        return []

    shape, elements = classify_payload(decoded)
    if shape == "record":
        return [_build_record(elements[0], f"parsed-{timestamp}-{ordinal}")]

    records = []
    for idx, item in enumerate(elements):
        if _has_type(item):
            records.append(_build_record(item, f"parsed-{timestamp}-{ordinal}-{idx}"))
    return records


def _now_ms() -> int:
    return int(time.time() * 1000)


def extract_components(text: str, timestamp: int | None = None) -> list[ComponentRecord]:
    """Extract every ComponentRecord from the full accumulated response text.

    Args:
        text: The whole response so far (not a delta).
        timestamp: Millisecond timestamp used in generated ids. Passing the
            same value on every pass keeps generated ids stable across
            re-extractions of a growing buffer.

    Returns:
        Records in the order their blocks and elements appear.
    """
    return parse_response(text, timestamp).records


def parse_response(text: str, timestamp: int | None = None) -> ExtractionResult:
    """Extract records and the remaining free text in one pass."""
    if timestamp is None:
        timestamp = _now_ms()

    records: list[ComponentRecord] = []
    keep: list[str] = []
    cursor = 0
    for ordinal, block in enumerate(find_directive_blocks(text)):
        found = decode_block(block, timestamp, ordinal)
        if not found:
            continue
        records.extend(found)
        keep.append(text[cursor:block.start])
        cursor = block.end
    keep.append(text[cursor:])

    content = _EXTRA_NEWLINES.sub("\n\n", "".join(keep)).strip()
    logger.debug("Extracted %d record(s), %d chars of free text", len(records), len(content))
    return ExtractionResult(records=records, content=content)


def strip_directives(text: str) -> str:
    """Return ``text`` with every record-bearing directive block removed.

    Fenced blocks that yield no records (ordinary code samples) are kept.
    """
    return parse_response(text, timestamp=0).content
