"""
Pure tree algorithms over a collection snapshot.

The collection is flat; the tree is implied by `parent_id` back-references.
None of these functions mutate their input, and each call builds its own
lookup tables.
"""

from __future__ import annotations

from typing import Iterable, Literal, Sequence, get_args

from .domain.entities import Entry, Folder, Note

SortOption = Literal[
    "order",
    "updatedAt_desc",
    "updatedAt_asc",
    "createdAt_desc",
    "createdAt_asc",
    "title_asc",
    "title_desc",
]

SORT_OPTIONS: tuple[str, ...] = get_args(SortOption)


def index_by_id(entries: Iterable[Entry]) -> dict[str, Entry]:
    return {e.id: e for e in entries}


def children_of(entries: Iterable[Entry], parent_id: str | None) -> list[Entry]:
    return [e for e in entries if e.parent_id == parent_id]


def next_order_index(entries: Iterable[Entry], parent_id: str | None) -> float:
    """One past the highest `order_index` among the children of `parent_id`."""
    highest = max((e.order_index for e in entries if e.parent_id == parent_id), default=0)
    return highest + 1


def descendant_ids(entries: Sequence[Entry], root_id: str) -> frozenset[str]:
    """
    Ids of every entry transitively parented under `root_id` (excluding it).

    Only folders can have children, so only folders are expanded.
    """
    children: dict[str, list[Entry]] = {}
    for e in entries:
        if e.parent_id is not None:
            children.setdefault(e.parent_id, []).append(e)

    found: set[str] = set()
    stack = [root_id]
    while stack:
        current = stack.pop()
        for child in children.get(current, []):
            if child.id in found or child.id == root_id:
                continue
            found.add(child.id)
            if isinstance(child, Folder):
                stack.append(child.id)
            elif not isinstance(child, Note):
                raise TypeError(f"unexpected entry type: {type(child).__name__}")
    return frozenset(found)


def ancestor_chain(entries: Sequence[Entry], start_id: str | None) -> tuple[str, ...]:
    """
    Ids visited walking `parent_id` upward from `start_id`, `start_id` first.

    The walk stops at the root, at a dangling reference, or at a repeated id.
    """
    by_id = index_by_id(entries)
    chain: list[str] = []
    seen: set[str] = set()
    current = start_id
    while current is not None and current not in seen:
        seen.add(current)
        chain.append(current)
        entry = by_id.get(current)
        if entry is None:
            break
        current = entry.parent_id
    return tuple(chain)


def would_create_cycle(entries: Sequence[Entry], entry_id: str, target_folder_id: str | None) -> bool:
    """True when placing `entry_id` under `target_folder_id` makes it its own ancestor."""
    if target_folder_id is None:
        return False
    return entry_id in ancestor_chain(entries, target_folder_id)


def folder_path(entries: Sequence[Entry], folder_id: str | None) -> list[Folder]:
    """Folders from the root down to `folder_id`, for breadcrumbs."""
    by_id = index_by_id(entries)
    path: list[Folder] = []
    for eid in ancestor_chain(entries, folder_id):
        entry = by_id.get(eid)
        if not isinstance(entry, Folder):
            break
        path.append(entry)
    path.reverse()
    return path


def sort_entries(entries: Iterable[Entry], option: str = "updatedAt_desc") -> list[Entry]:
    """Folders first, then by the chosen option."""
    if option not in SORT_OPTIONS:
        raise ValueError(f"unknown sort option: {option}")

    items = list(entries)
    if option == "order":
        items.sort(key=lambda e: (e.order_index, e.created_at, e.id))
    elif option.startswith("title_"):
        items.sort(key=lambda e: (e.title.casefold(), e.id), reverse=option.endswith("_desc"))
    else:
        attr = "updated_at" if option.startswith("updatedAt") else "created_at"
        items.sort(key=lambda e: (getattr(e, attr), e.id), reverse=option.endswith("_desc"))

    # Stable sort keeps the option's order inside each group.
    items.sort(key=lambda e: 0 if isinstance(e, Folder) else 1)
    return items
