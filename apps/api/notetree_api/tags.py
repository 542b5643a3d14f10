from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass
from itertools import combinations
from typing import Iterable

from .domain.entities import Entry, Note
from .repository import EntryRepository


@dataclass(frozen=True)
class TagNode:
    id: str
    name: str
    count: int
    size: float


@dataclass(frozen=True)
class TagEdge:
    source: str
    target: str
    weight: int


@dataclass(frozen=True)
class TagGraph:
    nodes: list[TagNode]
    edges: list[TagEdge]


def node_size(count: int) -> float:
    """Logarithmic size hint, never below 1."""
    if count <= 0:
        return 1.0
    return max(1.0, math.log(count * 2) * 2)


def _notes(entries: Iterable[Entry]) -> list[Note]:
    return [e for e in entries if isinstance(e, Note)]


def all_tags(entries: Iterable[Entry]) -> list[str]:
    tags: set[str] = set()
    for note in _notes(entries):
        tags.update(note.tags)
    return sorted(tags)


def notes_with_tag(entries: Iterable[Entry], tag: str) -> list[Note]:
    return [n for n in _notes(entries) if tag in n.tags]


def build_tag_graph(entries: Iterable[Entry]) -> TagGraph:
    occurrences: Counter[str] = Counter()
    cooccurrences: Counter[tuple[str, str]] = Counter()

    for note in _notes(entries):
        tags = sorted(set(note.tags))
        if not tags:
            continue
        occurrences.update(tags)
        # Sorted input makes every pair come out as (smaller, larger).
        cooccurrences.update(combinations(tags, 2))

    nodes = [
        TagNode(id=tag, name=tag, count=count, size=node_size(count))
        for tag, count in sorted(occurrences.items())
    ]
    edges = [
        TagEdge(source=a, target=b, weight=weight)
        for (a, b), weight in sorted(cooccurrences.items())
    ]
    return TagGraph(nodes=nodes, edges=edges)


class TagIndex:
    """Read-only tag views derived from the repository's current collection."""

    def __init__(self, repository: EntryRepository) -> None:
        self.repository = repository

    def get_all_tags(self) -> list[str]:
        return all_tags(self.repository.get_all_notes())

    def notes_with_tag(self, tag: str) -> list[Note]:
        return notes_with_tag(self.repository.get_all_notes(), tag.strip())

    def graph(self) -> TagGraph:
        return build_tag_graph(self.repository.get_all_notes())
