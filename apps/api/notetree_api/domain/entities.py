from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar

NOTE = "note"
FOLDER = "folder"


@dataclass(frozen=True)
class Note:
    type: ClassVar[str] = NOTE

    id: str
    title: str
    content: str
    parent_id: str | None
    order_index: float
    created_at: int
    updated_at: int
    tags: tuple[str, ...] = field(default_factory=tuple)
    source_url: str | None = None


@dataclass(frozen=True)
class Folder:
    type: ClassVar[str] = FOLDER

    id: str
    title: str
    parent_id: str | None
    order_index: float
    created_at: int
    updated_at: int

    @property
    def content(self) -> str:
        return ""


Entry = Note | Folder


def unique_tags(tags: list[str] | tuple[str, ...]) -> tuple[str, ...]:
    """Drop duplicates while keeping first-seen order."""
    seen: set[str] = set()
    out: list[str] = []
    for t in tags:
        if t in seen:
            continue
        seen.add(t)
        out.append(t)
    return tuple(out)


def entry_from_record(record: dict[str, Any]) -> Entry:
    """
    Build an Entry from a persisted record.

    Records are expected to have gone through the load-time migrations, so
    `type` and `parentId` are present.
    """
    kind = record["type"]
    if kind == FOLDER:
        return Folder(
            id=str(record["id"]),
            title=str(record.get("title") or ""),
            parent_id=record.get("parentId"),
            order_index=record.get("orderIndex", 0),
            created_at=int(record.get("createdAt", 0)),
            updated_at=int(record.get("updatedAt", 0)),
        )
    if kind == NOTE:
        return Note(
            id=str(record["id"]),
            title=str(record.get("title") or ""),
            content=str(record.get("content") or ""),
            parent_id=record.get("parentId"),
            order_index=record.get("orderIndex", 0),
            created_at=int(record.get("createdAt", 0)),
            updated_at=int(record.get("updatedAt", 0)),
            tags=unique_tags([t for t in record.get("tags") or [] if isinstance(t, str)]),
            source_url=record.get("sourceUrl"),
        )
    raise ValueError(f"unknown entry type: {kind!r}")


def entry_to_record(entry: Entry) -> dict[str, Any]:
    record: dict[str, Any] = {
        "id": entry.id,
        "type": entry.type,
        "title": entry.title,
        "content": entry.content,
        "parentId": entry.parent_id,
        "orderIndex": entry.order_index,
        "createdAt": entry.created_at,
        "updatedAt": entry.updated_at,
    }
    if isinstance(entry, Note):
        record["tags"] = list(entry.tags)
        record["sourceUrl"] = entry.source_url
    return record
