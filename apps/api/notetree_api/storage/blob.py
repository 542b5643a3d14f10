from __future__ import annotations

import copy
import json
import logging
import threading
from pathlib import Path
from typing import Callable

from ..domain.exceptions import PersistenceFailure
from ..domain.ports import Collection, Transform, Unsubscribe
from ..util import atomic_write_json

logger = logging.getLogger("notetree.storage")


class _ListenerSet:
    """
    Callbacks fired with no payload after every successful write.

    Registration shares the owning store's lock. A failing callback is
    logged and does not stop the others or fail the write that fired it.
    """

    def __init__(self, lock: threading.RLock) -> None:
        self._lock = lock
        self._callbacks: list[tuple[int, Callable[[], None]]] = []
        self._next_token = 0

    def add(self, callback: Callable[[], None]) -> Unsubscribe:
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._callbacks.append((token, callback))

        def unsubscribe() -> None:
            with self._lock:
                self._callbacks = [(t, cb) for t, cb in self._callbacks if t != token]

        return unsubscribe

    def fire(self) -> None:
        with self._lock:
            callbacks = list(self._callbacks)
        for token, cb in callbacks:
            try:
                cb()
            except Exception:
                logger.exception("listener_error", extra={"token": token})

    def __len__(self) -> int:
        return len(self._callbacks)


class InMemoryBlobStore:
    def __init__(self, initial: Collection | None = None) -> None:
        self._value: Collection = copy.deepcopy(initial) if initial is not None else []
        self._lock = threading.RLock()
        self._listeners = _ListenerSet(self._lock)

    def get(self) -> Collection:
        with self._lock:
            return copy.deepcopy(self._value)

    def set(self, transform: Transform) -> Collection:
        with self._lock:
            updated = transform(copy.deepcopy(self._value))
            self._value = copy.deepcopy(updated)
            self._listeners.fire()
            return updated

    def subscribe(self, callback: Callable[[], None]) -> Unsubscribe:
        return self._listeners.add(callback)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)


class JsonFileBlobStore:
    """
    Keeps one collection under `key` inside a JSON object file.

    Every write rewrites the whole file atomically. Other keys found in the
    file are preserved untouched.
    """

    def __init__(self, path: Path, key: str, default: Collection | None = None) -> None:
        self.path = path
        self.key = key
        self._default: Collection = list(default or [])
        self._cache: Collection | None = None
        self._lock = threading.RLock()
        self._listeners = _ListenerSet(self._lock)

    def _load_file(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise PersistenceFailure(f"malformed_store_file: {self.path}") from e
        except OSError as e:
            raise PersistenceFailure(f"store_read_failed: {self.path}") from e
        if not isinstance(data, dict):
            raise PersistenceFailure(f"malformed_store_file: {self.path}")
        return data

    def _current(self) -> Collection:
        if self._cache is None:
            value = self._load_file().get(self.key)
            if value is None:
                value = copy.deepcopy(self._default)
            elif not isinstance(value, list):
                raise PersistenceFailure(f"malformed_store_value: {self.key}")
            self._cache = value
        return self._cache

    def get(self) -> Collection:
        with self._lock:
            return copy.deepcopy(self._current())

    def set(self, transform: Transform) -> Collection:
        with self._lock:
            updated = transform(copy.deepcopy(self._current()))
            data = self._load_file()
            data[self.key] = updated
            try:
                atomic_write_json(self.path, data)
            except OSError as e:
                raise PersistenceFailure(f"store_write_failed: {self.path}") from e
            self._cache = copy.deepcopy(updated)
            logger.debug("blob_write", extra={"key": self.key, "count": len(updated)})
            self._listeners.fire()
            return updated

    def subscribe(self, callback: Callable[[], None]) -> Unsubscribe:
        return self._listeners.add(callback)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)
