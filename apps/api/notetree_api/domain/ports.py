from __future__ import annotations

from typing import Any, Callable, Protocol, runtime_checkable

Record = dict[str, Any]
Collection = list[Record]
Transform = Callable[[Collection], Collection]
Unsubscribe = Callable[[], None]


@runtime_checkable
class BlobStore(Protocol):
    def get(self) -> Collection:
        ...

    def set(self, transform: Transform) -> Collection:
        ...

    def subscribe(self, callback: Callable[[], None]) -> Unsubscribe:
        ...
