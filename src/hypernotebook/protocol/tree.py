"""Component tree assembly over a flat record list.

The tree is never materialized. Callers ask for the roots, then for the
children of each node they visit. Each query rescans the whole list, so a
full walk is quadratic in the record count: fine for the tens of records a
response carries, not for thousands. A record whose parentId names no
reachable record is simply never visited.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import replace

from hypernotebook.protocol.records import ComponentRecord

logger = logging.getLogger(__name__)


def flatten_records(records: list[ComponentRecord]) -> list[ComponentRecord]:
    """Convert pre-nested ``children`` into parentId references.

    Each nested child is emitted right after its parent (pre-order) with
    ``parent_id`` set to the enclosing record's id.
    """
    flat: list[ComponentRecord] = []

    def _visit(record: ComponentRecord, parent_id: str | None) -> None:
        nested = record.children or []
        flat.append(replace(record, parent_id=parent_id, children=None))
        for child in nested:
            _visit(child, record.id)

    for record in records:
        _visit(record, record.parent_id)
    return flat


def dedupe_records(records: list[ComponentRecord]) -> list[ComponentRecord]:
    """Drop records whose id was already seen. The first occurrence wins."""
    seen: set[str] = set()
    unique = []
    for record in records:
        if record.id in seen:
            logger.debug("Dropping duplicate record id=%r type=%r", record.id, record.type)
            continue
        seen.add(record.id)
        unique.append(record)
    return unique


def get_children(records: list[ComponentRecord], parent_id: str | None) -> list[ComponentRecord]:
    """Records whose parent is ``parent_id``, in original list order.

    ``parent_id=None`` returns the roots.
    """
    return [r for r in records if r.parent_id == parent_id]


def get_roots(records: list[ComponentRecord]) -> list[ComponentRecord]:
    return get_children(records, None)


def walk(records: list[ComponentRecord]) -> Iterator[tuple[int, ComponentRecord]]:
    """Pre-order (depth, record) traversal starting from every root."""
    records = dedupe_records(records)

    def _walk(record: ComponentRecord, depth: int) -> Iterator[tuple[int, ComponentRecord]]:
        yield depth, record
        for child in get_children(records, record.id):
            yield from _walk(child, depth + 1)

    for root in get_roots(records):
        yield from _walk(root, 0)
