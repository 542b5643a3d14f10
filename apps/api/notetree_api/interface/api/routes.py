import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from notetree_api.dependencies import get_repository, get_tag_index
from notetree_api.domain.entities import Folder
from notetree_api.domain.exceptions import CycleError, EntryNotFound, InvalidTarget, PersistenceFailure
from notetree_api.domain.schemas import (
    CreatedOut,
    DeleteOut,
    EntryListOut,
    EntryOut,
    EntryUpdateIn,
    FolderCreateIn,
    MoveIn,
    NoteCreateIn,
    ReorderIn,
    TagGraphOut,
    TagIn,
    TagLinkOut,
    TagNodeOut,
    TagsOut,
)
from notetree_api.repository import EntryRepository
from notetree_api.tags import TagIndex
from notetree_api.tree import SortOption, sort_entries

router = APIRouter()
logger = logging.getLogger("notetree.api")


def _rid(request: Request) -> str:
    return getattr(request.state, "request_id", "")


def _http_error(e: Exception) -> HTTPException:
    if isinstance(e, EntryNotFound):
        return HTTPException(status_code=404, detail="entry_not_found")
    if isinstance(e, CycleError):
        return HTTPException(status_code=409, detail="cycle")
    if isinstance(e, InvalidTarget):
        return HTTPException(status_code=400, detail=f"invalid_target:{e.reason}")
    if isinstance(e, PersistenceFailure):
        return HTTPException(status_code=503, detail="persistence_failure")
    return HTTPException(status_code=400, detail=str(e))


def _list_out(entries) -> dict:
    return EntryListOut(items=[EntryOut.from_entry(e) for e in entries]).model_dump()


@router.get("/health")
def health():
    return {"ok": True}


@router.get("/entries")
def list_entries(
    parentId: Optional[str] = None,
    tag: Optional[str] = None,
    sort: Optional[SortOption] = Query(None),
    repo: EntryRepository = Depends(get_repository),
    tags: TagIndex = Depends(get_tag_index),
):
    try:
        entries = tags.notes_with_tag(tag) if tag else repo.get_children(parentId)
    except PersistenceFailure as e:
        raise _http_error(e) from e
    if sort:
        entries = sort_entries(entries, sort)
    return _list_out(entries)


@router.get("/entries/all")
def list_all_entries(repo: EntryRepository = Depends(get_repository)):
    try:
        return _list_out(repo.get_all_notes())
    except PersistenceFailure as e:
        raise _http_error(e) from e


@router.post("/notes", response_model=CreatedOut)
def create_note(payload: NoteCreateIn, request: Request, repo: EntryRepository = Depends(get_repository)):
    try:
        new_id = repo.add_note(
            payload.title,
            payload.content,
            tags=payload.tags,
            source_url=payload.sourceUrl,
            parent_id=payload.parentId,
        )
    except (InvalidTarget, PersistenceFailure) as e:
        raise _http_error(e) from e
    logger.info("note_create", extra={"rid": _rid(request), "id": new_id})
    return CreatedOut(id=new_id)


@router.post("/folders", response_model=CreatedOut)
def create_folder(payload: FolderCreateIn, request: Request, repo: EntryRepository = Depends(get_repository)):
    try:
        new_id = repo.create_folder(payload.parentId, payload.title)
    except (InvalidTarget, PersistenceFailure) as e:
        raise _http_error(e) from e
    logger.info("folder_create", extra={"rid": _rid(request), "id": new_id})
    return CreatedOut(id=new_id)


@router.get("/entries/{entry_id}", response_model=EntryOut)
def get_entry(entry_id: str, repo: EntryRepository = Depends(get_repository)):
    try:
        entry = repo.get_note(entry_id)
    except PersistenceFailure as e:
        raise _http_error(e) from e
    if entry is None:
        raise HTTPException(status_code=404, detail="entry_not_found")
    return EntryOut.from_entry(entry)


@router.patch("/entries/{entry_id}", response_model=EntryOut)
def update_entry(
    entry_id: str,
    payload: EntryUpdateIn,
    request: Request,
    repo: EntryRepository = Depends(get_repository),
):
    try:
        entry = repo.update_note(entry_id, payload.changes())
    except (EntryNotFound, InvalidTarget, PersistenceFailure) as e:
        raise _http_error(e) from e
    logger.info("entry_update", extra={"rid": _rid(request), "id": entry_id})
    return EntryOut.from_entry(entry)


@router.delete("/entries/{entry_id}", response_model=DeleteOut)
def delete_entry(entry_id: str, request: Request, repo: EntryRepository = Depends(get_repository)):
    try:
        removed = repo.delete_note(entry_id)
    except PersistenceFailure as e:
        raise _http_error(e) from e
    logger.info("entry_delete", extra={"rid": _rid(request), "id": entry_id, "removed": len(removed)})
    return DeleteOut(removed=list(removed))


@router.post("/entries/{entry_id}/move", response_model=EntryOut)
def move_entry(entry_id: str, payload: MoveIn, request: Request, repo: EntryRepository = Depends(get_repository)):
    try:
        entry = repo.move_entry(entry_id, payload.targetFolderId)
    except (EntryNotFound, InvalidTarget, CycleError, PersistenceFailure) as e:
        raise _http_error(e) from e
    logger.info("entry_move", extra={"rid": _rid(request), "id": entry_id, "target_id": payload.targetFolderId})
    return EntryOut.from_entry(entry)


@router.post("/entries/{entry_id}/reorder", response_model=EntryOut)
def reorder_entry(entry_id: str, payload: ReorderIn, repo: EntryRepository = Depends(get_repository)):
    try:
        entry = repo.reorder(entry_id, payload.orderIndex)
    except (EntryNotFound, PersistenceFailure) as e:
        raise _http_error(e) from e
    return EntryOut.from_entry(entry)


@router.get("/folders/{folder_id}/path")
def folder_path(folder_id: str, repo: EntryRepository = Depends(get_repository)):
    try:
        path: list[Folder] = repo.get_folder_path(folder_id)
    except (EntryNotFound, InvalidTarget, PersistenceFailure) as e:
        raise _http_error(e) from e
    return _list_out(path)


@router.get("/tags", response_model=TagsOut)
def list_tags(tags: TagIndex = Depends(get_tag_index)):
    try:
        return TagsOut(items=tags.get_all_tags())
    except PersistenceFailure as e:
        raise _http_error(e) from e


@router.get("/tags/graph", response_model=TagGraphOut)
def tag_graph(tags: TagIndex = Depends(get_tag_index)):
    try:
        graph = tags.graph()
    except PersistenceFailure as e:
        raise _http_error(e) from e
    return TagGraphOut(
        nodes=[TagNodeOut(id=n.id, name=n.name, count=n.count, val=n.size) for n in graph.nodes],
        links=[TagLinkOut(source=e.source, target=e.target, value=e.weight) for e in graph.edges],
    )


@router.post("/notes/{entry_id}/tags", response_model=EntryOut)
def add_tag(entry_id: str, payload: TagIn, repo: EntryRepository = Depends(get_repository)):
    try:
        note = repo.add_tag(entry_id, payload.tag)
    except (EntryNotFound, InvalidTarget, PersistenceFailure, ValueError) as e:
        raise _http_error(e) from e
    return EntryOut.from_entry(note)


@router.delete("/notes/{entry_id}/tags/{tag}", response_model=EntryOut)
def remove_tag(entry_id: str, tag: str, repo: EntryRepository = Depends(get_repository)):
    try:
        note = repo.remove_tag(entry_id, tag)
    except (EntryNotFound, InvalidTarget, PersistenceFailure) as e:
        raise _http_error(e) from e
    return EntryOut.from_entry(note)


@router.get("/scratchpad", response_model=EntryOut)
def get_scratchpad(repo: EntryRepository = Depends(get_repository)):
    try:
        return EntryOut.from_entry(repo.ensure_scratchpad())
    except (InvalidTarget, PersistenceFailure) as e:
        raise _http_error(e) from e


@router.post("/scratchpad/clear", response_model=EntryOut)
def clear_scratchpad(repo: EntryRepository = Depends(get_repository)):
    try:
        return EntryOut.from_entry(repo.clear_scratchpad())
    except (InvalidTarget, PersistenceFailure) as e:
        raise _http_error(e) from e
