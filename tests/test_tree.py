"""Tests for component tree assembly."""

from __future__ import annotations

from hypernotebook.protocol.records import ComponentRecord
from hypernotebook.protocol.tree import (
    dedupe_records,
    flatten_records,
    get_children,
    get_roots,
    walk,
)


def _rec(id: str, parent: str | None = None, type: str = "card", children=None) -> ComponentRecord:
    return ComponentRecord(id=id, type=type, parent_id=parent, children=children)


def _batch() -> list[ComponentRecord]:
    return [
        _rec("r1"),
        _rec("a", "r1"),
        _rec("r2"),
        _rec("b", "r1"),
        _rec("a1", "a"),
        _rec("orphan", "missing"),
        _rec("orphan-child", "orphan"),
    ]


class TestQueries:
    def test_roots_in_list_order(self):
        assert [r.id for r in get_roots(_batch())] == ["r1", "r2"]

    def test_children_stable_order(self):
        assert [r.id for r in get_children(_batch(), "r1")] == ["a", "b"]
        assert [r.id for r in get_children(_batch(), "a")] == ["a1"]
        assert get_children(_batch(), "r2") == []

    def test_none_parent_means_roots(self):
        assert get_children(_batch(), None) == get_roots(_batch())


class TestWalk:
    def test_preorder_with_depth(self):
        visited = [(d, r.id) for d, r in walk(_batch())]
        assert visited == [(0, "r1"), (1, "a"), (2, "a1"), (1, "b"), (0, "r2")]

    def test_orphans_never_visited(self):
        ids = {r.id for _, r in walk(_batch())}
        assert "orphan" not in ids
        assert "orphan-child" not in ids

    def test_parent_chains_end_at_root(self):
        records = _batch()
        by_id = {r.id: r for r in records}
        for _, r in walk(records):
            seen = set()
            while r.parent_id is not None:
                assert r.id not in seen
                seen.add(r.id)
                r = by_id[r.parent_id]
            assert r in get_roots(records)

    def test_self_parent_is_unreachable(self):
        records = [_rec("r"), _rec("loop", "loop")]
        assert [r.id for _, r in walk(records)] == ["r"]

    def test_duplicate_ids_terminate(self):
        records = [_rec("a"), _rec("a", "a")]
        assert [r.id for _, r in walk(records)] == ["a"]


class TestFlatten:
    def test_nested_children_become_parent_refs(self):
        nested = _rec("p", children=[_rec("c1"), _rec("c2", children=[_rec("g")])])
        flat = flatten_records([nested, _rec("q")])
        assert [(r.id, r.parent_id) for r in flat] == [
            ("p", None),
            ("c1", "p"),
            ("c2", "p"),
            ("g", "c2"),
            ("q", None),
        ]
        assert all(r.children is None for r in flat)

    def test_flat_input_unchanged(self):
        flat = flatten_records(_batch())
        assert [(r.id, r.parent_id) for r in flat] == [(r.id, r.parent_id) for r in _batch()]

    def test_mixed_representations(self):
        records = [_rec("p", children=[_rec("nested")]), _rec("ref", "p")]
        flat = flatten_records(records)
        assert [r.id for r in get_children(flat, "p")] == ["nested", "ref"]

    def test_does_not_mutate_input(self):
        nested = _rec("p", children=[_rec("c")])
        flatten_records([nested])
        assert nested.children is not None
        assert nested.children[0].parent_id is None


class TestDedupe:
    def test_first_occurrence_wins(self):
        records = [_rec("a", type="card"), _rec("b"), _rec("a", type="badge")]
        unique = dedupe_records(records)
        assert [(r.id, r.type) for r in unique] == [("a", "card"), ("b", "card")]

    def test_no_record_under_two_parents(self):
        records = [_rec("p1"), _rec("p2"), _rec("c", "p1"), _rec("c", "p2")]
        parents = [r.parent_id for _, r in walk(records) if r.id == "c"]
        assert parents == ["p1"]
