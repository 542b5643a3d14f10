from functools import lru_cache

from notetree_api.config import load_settings
from notetree_api.domain.ports import BlobStore
from notetree_api.notifier import ChangeNotifier
from notetree_api.repository import EntryRepository
from notetree_api.storage.blob import InMemoryBlobStore, JsonFileBlobStore
from notetree_api.storage.migrations import run_migrations
from notetree_api.tags import TagIndex


@lru_cache()
def get_settings():
    return load_settings()


def build_blob_store(settings) -> BlobStore:
    if settings.store_backend == "memory":
        store: BlobStore = InMemoryBlobStore()
    else:
        store = JsonFileBlobStore(settings.data_dir / "storage.json", key=settings.store_key)
    run_migrations(store)
    return store


@lru_cache()
def get_blob_store() -> BlobStore:
    return build_blob_store(get_settings())


@lru_cache()
def get_repository() -> EntryRepository:
    return EntryRepository(get_blob_store())


@lru_cache()
def get_tag_index() -> TagIndex:
    return TagIndex(get_repository())


@lru_cache()
def get_notifier() -> ChangeNotifier:
    return ChangeNotifier(get_blob_store())


def clear_caches() -> None:
    for provider in (get_settings, get_blob_store, get_repository, get_tag_index, get_notifier):
        provider.cache_clear()
