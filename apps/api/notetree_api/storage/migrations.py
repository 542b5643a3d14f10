from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from ..domain.entities import FOLDER, NOTE, unique_tags
from ..domain.ports import BlobStore, Collection
from ..util import new_entry_id, now_ms

logger = logging.getLogger("notetree.storage")


@dataclass(frozen=True)
class Migration:
    version: int
    name: str
    apply: Callable[[Collection], bool]


def _backfill_type_and_parent(records: Collection) -> bool:
    changed = False
    for r in records:
        if "type" not in r or r["type"] not in {NOTE, FOLDER}:
            r["type"] = NOTE
            changed = True
        if "parentId" not in r:
            r["parentId"] = None
            changed = True
    return changed


def _backfill_body_fields(records: Collection) -> bool:
    changed = False
    for r in records:
        if not isinstance(r.get("title"), str):
            r["title"] = ""
            changed = True
        if r["type"] == FOLDER:
            if r.get("content") != "":
                r["content"] = ""
                changed = True
            continue
        if not isinstance(r.get("content"), str):
            r["content"] = ""
            changed = True
        raw_tags = r.get("tags")
        tags = list(unique_tags([t for t in raw_tags if isinstance(t, str)])) if isinstance(raw_tags, list) else []
        if raw_tags != tags:
            r["tags"] = tags
            changed = True
    return changed


def _backfill_order_index(records: Collection) -> bool:
    # Legacy entries without a position are appended after their siblings in stored order.
    highest: dict[str | None, float] = {}
    for r in records:
        idx = r.get("orderIndex")
        if isinstance(idx, (int, float)):
            key = r["parentId"]
            highest[key] = max(highest.get(key, 0), idx)

    changed = False
    for r in records:
        if isinstance(r.get("orderIndex"), (int, float)):
            continue
        key = r["parentId"]
        r["orderIndex"] = highest.get(key, 0) + 1
        highest[key] = r["orderIndex"]
        changed = True
    return changed


def _timestamp(value: object) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)


def _normalize_ids_and_timestamps(records: Collection) -> bool:
    # Later duplicates get a fresh id so children keep pointing at the first holder.
    seen: set[str] = set()
    changed = False
    for r in records:
        raw = r.get("id")
        if isinstance(raw, bool) or not isinstance(raw, (str, int)) or raw == "":
            eid = new_entry_id()
        else:
            eid = str(raw)
        if eid in seen:
            eid = new_entry_id()
        seen.add(eid)
        if raw != eid:
            r["id"] = eid
            changed = True

        created = _timestamp(r.get("createdAt"))
        updated = _timestamp(r.get("updatedAt"))
        if created is None:
            created = updated if updated is not None else now_ms()
        if updated is None:
            updated = created
        if r.get("createdAt") != created or r.get("updatedAt") != updated:
            r["createdAt"] = created
            r["updatedAt"] = updated
            changed = True
    return changed


MIGRATIONS: tuple[Migration, ...] = (
    Migration(1, "backfill_type_and_parent", _backfill_type_and_parent),
    Migration(2, "backfill_body_fields", _backfill_body_fields),
    Migration(3, "backfill_order_index", _backfill_order_index),
    Migration(4, "normalize_ids_and_timestamps", _normalize_ids_and_timestamps),
)


def migrate_collection(records: Collection) -> tuple[Collection, list[str]]:
    """
    Run every migration over `records` in version order.

    Returns the migrated collection and the names of the migrations that
    changed something. The input list is not modified.
    """
    migrated = [dict(r) for r in records if isinstance(r, dict)]
    applied: list[str] = []
    if len(migrated) != len(records):
        applied.append("drop_non_mapping_records")
    for m in MIGRATIONS:
        if m.apply(migrated):
            applied.append(m.name)
    return migrated, applied


def run_migrations(store: BlobStore) -> list[str]:
    """Migrate the persisted collection once, writing back only if needed."""
    _, applied = migrate_collection(store.get())
    if not applied:
        return []

    def transform(current: Collection) -> Collection:
        migrated, _ = migrate_collection(current)
        return migrated

    store.set(transform)
    logger.info("migration_applied", extra={"migrations": applied})
    return applied
