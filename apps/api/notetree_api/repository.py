from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Callable, Iterable, Mapping

from .domain.entities import Entry, Folder, Note, entry_from_record, entry_to_record, unique_tags
from .domain.exceptions import CycleError, EntryNotFound, InvalidTarget
from .domain.ports import BlobStore, Collection
from .tree import children_of, descendant_ids, folder_path, index_by_id, next_order_index, would_create_cycle
from .util import new_entry_id, now_ms

logger = logging.getLogger("notetree.repository")

SCRATCHPAD_ID = "@Scratchpad"
SCRATCHPAD_TITLE = "Scratchpad"
SCRATCHPAD_TEMPLATE = "# Scratchpad\n\nUse this note as a quick inbox for ideas and web captures.\n\n---\n\n"

NOTE_FIELDS = frozenset({"title", "content", "tags", "source_url"})
FOLDER_FIELDS = frozenset({"title"})


def clean_tags(tags: Iterable[str]) -> tuple[str, ...]:
    return unique_tags([t.strip() for t in tags if isinstance(t, str) and t.strip()])


def _require_folder(by_id: Mapping[str, Entry], parent_id: str | None) -> None:
    if parent_id is None:
        return
    if not isinstance(by_id.get(parent_id), Folder):
        raise InvalidTarget(parent_id)


def _require_entry(by_id: Mapping[str, Entry], entry_id: str) -> Entry:
    entry = by_id.get(entry_id)
    if entry is None:
        raise EntryNotFound(entry_id)
    return entry


def _require_note(by_id: Mapping[str, Entry], entry_id: str) -> Note:
    entry = _require_entry(by_id, entry_id)
    if not isinstance(entry, Note):
        raise InvalidTarget(entry_id, reason="not_a_note")
    return entry


class EntryRepository:
    """
    Sole writer of the note/folder collection held by a blob store.

    Every mutation is expressed as a transform over the latest committed
    collection and handed to `BlobStore.set`, so lookups, validation and
    sibling index computation never run against a stale snapshot. A
    transform that raises leaves the stored collection untouched.
    """

    def __init__(
        self,
        store: BlobStore,
        *,
        clock: Callable[[], int] = now_ms,
        id_factory: Callable[[], str] = new_entry_id,
    ) -> None:
        self.store = store
        self._clock = clock
        self._new_id = id_factory

    # ---------- plumbing ----------

    def _snapshot(self) -> list[Entry]:
        return [entry_from_record(r) for r in self.store.get()]

    def _mutate(self, fn: Callable[[list[Entry]], list[Entry]]) -> None:
        def transform(records: Collection) -> Collection:
            entries = [entry_from_record(r) for r in records]
            return [entry_to_record(e) for e in fn(entries)]

        self.store.set(transform)

    # ---------- reads ----------

    def get_note(self, entry_id: str) -> Entry | None:
        for entry in self._snapshot():
            if entry.id == entry_id:
                return entry
        return None

    def get_all_notes(self) -> list[Entry]:
        return self._snapshot()

    def get_children(self, parent_id: str | None) -> list[Entry]:
        return children_of(self._snapshot(), parent_id)

    def get_folder_path(self, folder_id: str) -> list[Folder]:
        entries = self._snapshot()
        by_id = index_by_id(entries)
        entry = _require_entry(by_id, folder_id)
        if not isinstance(entry, Folder):
            raise InvalidTarget(folder_id)
        return folder_path(entries, folder_id)

    # ---------- creation ----------

    def add_note(
        self,
        title: str,
        content: str = "",
        *,
        tags: Iterable[str] | None = None,
        source_url: str | None = None,
        parent_id: str | None = None,
    ) -> str:
        new_id = self._new_id()
        cleaned = clean_tags(tags or ())

        def fn(entries: list[Entry]) -> list[Entry]:
            _require_folder(index_by_id(entries), parent_id)
            now = self._clock()
            note = Note(
                id=new_id,
                title=title,
                content=content,
                parent_id=parent_id,
                order_index=next_order_index(entries, parent_id),
                created_at=now,
                updated_at=now,
                tags=cleaned,
                source_url=source_url,
            )
            return [*entries, note]

        self._mutate(fn)
        logger.info("entry_create", extra={"id": new_id, "type": "note", "parent_id": parent_id})
        return new_id

    def create_folder(self, parent_id: str | None, title: str) -> str:
        new_id = self._new_id()

        def fn(entries: list[Entry]) -> list[Entry]:
            _require_folder(index_by_id(entries), parent_id)
            now = self._clock()
            folder = Folder(
                id=new_id,
                title=title,
                parent_id=parent_id,
                order_index=next_order_index(entries, parent_id),
                created_at=now,
                updated_at=now,
            )
            return [*entries, folder]

        self._mutate(fn)
        logger.info("entry_create", extra={"id": new_id, "type": "folder", "parent_id": parent_id})
        return new_id

    # ---------- updates ----------

    def update_note(self, entry_id: str, changes: Mapping[str, Any]) -> Entry:
        """
        Merge `changes` into an entry and refresh its update time.

        Notes accept title, content, tags and source_url; folders only title.
        """
        unknown = set(changes) - NOTE_FIELDS
        if unknown:
            raise ValueError(f"fields_not_updatable: {sorted(unknown)}")
        result: list[Entry] = []

        def fn(entries: list[Entry]) -> list[Entry]:
            target = _require_entry(index_by_id(entries), entry_id)
            if isinstance(target, Folder):
                if set(changes) - FOLDER_FIELDS:
                    raise InvalidTarget(entry_id, reason="not_a_note")
                updated: Entry = replace(target, title=changes.get("title", target.title), updated_at=self._clock())
            else:
                fields = dict(changes)
                if "tags" in fields:
                    fields["tags"] = clean_tags(fields["tags"] or ())
                updated = replace(target, **fields, updated_at=self._clock())
            result.append(updated)
            return [updated if e.id == entry_id else e for e in entries]

        self._mutate(fn)
        return result[-1]

    def reorder(self, entry_id: str, new_order_index: float) -> Entry:
        result: list[Entry] = []

        def fn(entries: list[Entry]) -> list[Entry]:
            target = _require_entry(index_by_id(entries), entry_id)
            updated = replace(target, order_index=new_order_index, updated_at=self._clock())
            result.append(updated)
            return [updated if e.id == entry_id else e for e in entries]

        self._mutate(fn)
        return result[-1]

    def move_entry(self, entry_id: str, target_folder_id: str | None) -> Entry:
        result: list[Entry] = []

        def fn(entries: list[Entry]) -> list[Entry]:
            by_id = index_by_id(entries)
            target = _require_entry(by_id, entry_id)
            _require_folder(by_id, target_folder_id)
            if isinstance(target, Folder):
                if would_create_cycle(entries, entry_id, target_folder_id):
                    raise CycleError(entry_id, target_folder_id)
            elif not isinstance(target, Note):
                raise TypeError(f"unexpected entry type: {type(target).__name__}")
            others = [e for e in entries if e.id != entry_id]
            updated = replace(
                target,
                parent_id=target_folder_id,
                order_index=next_order_index(others, target_folder_id),
                updated_at=self._clock(),
            )
            result.append(updated)
            return [updated if e.id == entry_id else e for e in entries]

        self._mutate(fn)
        logger.info("entry_move", extra={"id": entry_id, "target_id": target_folder_id})
        return result[-1]

    def add_tag(self, entry_id: str, tag: str) -> Note:
        cleaned = tag.strip()
        if not cleaned:
            raise ValueError("tag_empty")
        result: list[Note] = []

        def fn(entries: list[Entry]) -> list[Entry]:
            note = _require_note(index_by_id(entries), entry_id)
            if cleaned in note.tags:
                result.append(note)
                return entries
            updated = replace(note, tags=(*note.tags, cleaned), updated_at=self._clock())
            result.append(updated)
            return [updated if e.id == entry_id else e for e in entries]

        self._mutate(fn)
        return result[-1]

    def remove_tag(self, entry_id: str, tag: str) -> Note:
        cleaned = tag.strip()
        result: list[Note] = []

        def fn(entries: list[Entry]) -> list[Entry]:
            note = _require_note(index_by_id(entries), entry_id)
            updated = replace(note, tags=tuple(t for t in note.tags if t != cleaned), updated_at=self._clock())
            result.append(updated)
            return [updated if e.id == entry_id else e for e in entries]

        self._mutate(fn)
        return result[-1]

    # ---------- deletion ----------

    def delete_note(self, entry_id: str) -> tuple[str, ...]:
        """
        Remove an entry; folders take their whole subtree with them.

        Deleting an id that is not present succeeds and removes nothing.
        Returns the ids that were removed.
        """
        removed: list[str] = []

        def fn(entries: list[Entry]) -> list[Entry]:
            target = index_by_id(entries).get(entry_id)
            if target is None:
                return entries
            doomed = {entry_id}
            if isinstance(target, Folder):
                doomed |= descendant_ids(entries, entry_id)
            elif not isinstance(target, Note):
                raise TypeError(f"unexpected entry type: {type(target).__name__}")
            removed[:] = [e.id for e in entries if e.id in doomed]
            return [e for e in entries if e.id not in doomed]

        self._mutate(fn)
        if removed:
            logger.info("entry_delete", extra={"id": entry_id, "removed": len(removed)})
        return tuple(removed)

    # ---------- scratchpad ----------

    def ensure_scratchpad(self) -> Note:
        existing = self.get_note(SCRATCHPAD_ID)
        if isinstance(existing, Note):
            return existing

        def fn(entries: list[Entry]) -> list[Entry]:
            if SCRATCHPAD_ID in index_by_id(entries):
                return entries
            now = self._clock()
            pad = Note(
                id=SCRATCHPAD_ID,
                title=SCRATCHPAD_TITLE,
                content=SCRATCHPAD_TEMPLATE,
                parent_id=None,
                order_index=next_order_index(entries, None),
                created_at=now,
                updated_at=now,
            )
            return [*entries, pad]

        self._mutate(fn)
        pad = self.get_note(SCRATCHPAD_ID)
        if not isinstance(pad, Note):
            raise InvalidTarget(SCRATCHPAD_ID, reason="not_a_note")
        return pad

    def clear_scratchpad(self) -> Entry:
        self.ensure_scratchpad()
        return self.update_note(SCRATCHPAD_ID, {"content": SCRATCHPAD_TEMPLATE})
