from __future__ import annotations

import pytest

from notetree_api.domain.entities import Folder, Note
from notetree_api.tree import (
    ancestor_chain,
    descendant_ids,
    folder_path,
    next_order_index,
    sort_entries,
    would_create_cycle,
)


def _folder(eid: str, parent: str | None = None, order: float = 1, ts: int = 0, title: str = "") -> Folder:
    return Folder(id=eid, title=title or eid, parent_id=parent, order_index=order, created_at=ts, updated_at=ts)


def _note(eid: str, parent: str | None = None, order: float = 1, ts: int = 0, title: str = "") -> Note:
    return Note(
        id=eid,
        title=title or eid,
        content="",
        parent_id=parent,
        order_index=order,
        created_at=ts,
        updated_at=ts,
    )


TREE = [
    _folder("root-a"),
    _note("n1", "root-a"),
    _folder("sub", "root-a"),
    _note("n2", "sub"),
    _folder("deep", "sub"),
    _note("n3", "deep"),
    _folder("root-b"),
    _note("n4", "root-b"),
]


def test_descendant_ids_cover_all_depths() -> None:
    assert descendant_ids(TREE, "root-a") == frozenset({"n1", "sub", "n2", "deep", "n3"})
    assert descendant_ids(TREE, "deep") == frozenset({"n3"})
    assert descendant_ids(TREE, "n4") == frozenset()
    assert descendant_ids(TREE, "missing") == frozenset()


def test_descendant_ids_returns_fresh_sets() -> None:
    first = descendant_ids(TREE, "sub")
    second = descendant_ids(TREE, "sub")
    assert first == second
    assert first is not second


def test_descendant_ids_terminates_on_corrupt_cycle() -> None:
    corrupt = [_folder("x", "y"), _folder("y", "x"), _note("n", "x")]
    assert descendant_ids(corrupt, "x") == frozenset({"y", "n"})


def test_ancestor_chain_walks_upward() -> None:
    assert ancestor_chain(TREE, "n3") == ("n3", "deep", "sub", "root-a")
    assert ancestor_chain(TREE, None) == ()
    assert ancestor_chain([_note("n", "gone")], "n") == ("n", "gone")


def test_would_create_cycle() -> None:
    assert would_create_cycle(TREE, "root-a", "root-a")
    assert would_create_cycle(TREE, "root-a", "deep")
    assert not would_create_cycle(TREE, "deep", "root-b")
    assert not would_create_cycle(TREE, "root-a", None)


def test_next_order_index() -> None:
    assert next_order_index(TREE, "missing") == 1
    entries = [_note("a", None, 4), _note("b", None, 2), _note("c", "f", 9)]
    assert next_order_index(entries, None) == 5


def test_folder_path_stops_at_dangling_parent() -> None:
    assert [f.id for f in folder_path(TREE, "deep")] == ["root-a", "sub", "deep"]
    entries = [_folder("lost", "gone")]
    assert [f.id for f in folder_path(entries, "lost")] == ["lost"]


def test_sort_entries_puts_folders_first() -> None:
    items = [
        _note("n-old", ts=1, title="b"),
        _folder("f", ts=2, title="z"),
        _note("n-new", ts=3, title="a"),
    ]
    assert [e.id for e in sort_entries(items)] == ["f", "n-new", "n-old"]
    assert [e.id for e in sort_entries(items, "createdAt_asc")] == ["f", "n-old", "n-new"]
    assert [e.id for e in sort_entries(items, "title_asc")] == ["f", "n-new", "n-old"]


def test_sort_entries_by_order_breaks_ties_stably() -> None:
    items = [_note("b", order=1, ts=5), _note("a", order=1, ts=5), _note("c", order=0.5)]
    assert [e.id for e in sort_entries(items, "order")] == ["c", "a", "b"]


def test_sort_entries_rejects_unknown_option() -> None:
    with pytest.raises(ValueError):
        sort_entries([], "random")
