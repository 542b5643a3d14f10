from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .entities import Entry, Note


class EntryOut(BaseModel):
    id: str
    type: Literal["note", "folder"]
    title: str
    content: str
    tags: list[str] = Field(default_factory=list)
    sourceUrl: Optional[str] = None
    parentId: Optional[str] = None
    orderIndex: float
    createdAt: int
    updatedAt: int

    @classmethod
    def from_entry(cls, entry: Entry) -> "EntryOut":
        is_note = isinstance(entry, Note)
        return cls(
            id=entry.id,
            type=entry.type,
            title=entry.title,
            content=entry.content,
            tags=list(entry.tags) if is_note else [],
            sourceUrl=entry.source_url if is_note else None,
            parentId=entry.parent_id,
            orderIndex=entry.order_index,
            createdAt=entry.created_at,
            updatedAt=entry.updated_at,
        )


class EntryListOut(BaseModel):
    items: list[EntryOut] = Field(default_factory=list)


class NoteCreateIn(BaseModel):
    title: str
    content: str = ""
    tags: list[str] = Field(default_factory=list)
    sourceUrl: Optional[str] = None
    parentId: Optional[str] = None


class FolderCreateIn(BaseModel):
    title: str
    parentId: Optional[str] = None


class CreatedOut(BaseModel):
    id: str


class EntryUpdateIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = None
    content: Optional[str] = None
    tags: Optional[list[str]] = None
    sourceUrl: Optional[str] = None

    def changes(self) -> dict:
        raw = self.model_dump(exclude_unset=True)
        # Only sourceUrl may be cleared with an explicit null.
        raw = {k: v for k, v in raw.items() if v is not None or k == "sourceUrl"}
        if "sourceUrl" in raw:
            raw["source_url"] = raw.pop("sourceUrl")
        return raw


class MoveIn(BaseModel):
    targetFolderId: Optional[str] = None


class ReorderIn(BaseModel):
    orderIndex: float


class TagIn(BaseModel):
    tag: str = Field(min_length=1)


class DeleteOut(BaseModel):
    ok: bool = True
    removed: list[str] = Field(default_factory=list)


class TagsOut(BaseModel):
    items: list[str] = Field(default_factory=list)


class TagNodeOut(BaseModel):
    id: str
    name: str
    count: int
    val: float


class TagLinkOut(BaseModel):
    source: str
    target: str
    value: int


class TagGraphOut(BaseModel):
    nodes: list[TagNodeOut] = Field(default_factory=list)
    links: list[TagLinkOut] = Field(default_factory=list)
