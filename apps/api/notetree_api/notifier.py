from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable

from .domain.entities import Entry, entry_from_record
from .domain.ports import BlobStore, Unsubscribe

logger = logging.getLogger("notetree.notifier")

ChangeCallback = Callable[[list[Entry], list[Entry]], None]

IDLE = "idle"
SUBSCRIBED = "subscribed"


def summarize_change(current: list[Entry], previous: list[Entry]) -> dict[str, list[str]]:
    """Ids added, removed and modified between two snapshots."""
    before = {e.id: e for e in previous}
    after = {e.id: e for e in current}
    return {
        "added": [eid for eid in after if eid not in before],
        "removed": [eid for eid in before if eid not in after],
        "updated": [eid for eid, e in after.items() if eid in before and before[eid] != e],
    }


@dataclass(eq=False)
class _Subscription:
    token: int
    callback: ChangeCallback
    last: list[Entry]


class ChangeNotifier:
    """
    Turns the blob store's bare "something changed" signal into
    `(current, previous)` pairs, one previous-value slot per subscription.

    A single store registration is shared by all listeners. It is made when
    the first listener subscribes and released when the last one leaves.
    Listeners run synchronously, in registration order. A write made by a
    listener is delivered after the current round finishes, so every
    listener sees its snapshots move forward. A failing listener is logged
    and the others still run.
    """

    def __init__(self, store: BlobStore) -> None:
        self.store = store
        self._subs: list[_Subscription] = []
        self._next_token = 0
        self._store_unsubscribe: Unsubscribe | None = None
        self._lock = threading.RLock()
        self._delivering = False
        self._pending = False

    @property
    def state(self) -> str:
        return SUBSCRIBED if self._store_unsubscribe is not None else IDLE

    def _snapshot(self) -> list[Entry]:
        return [entry_from_record(r) for r in self.store.get()]

    def subscribe(self, callback: ChangeCallback) -> Unsubscribe:
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._subs.append(_Subscription(token=token, callback=callback, last=self._snapshot()))
            if self._store_unsubscribe is None:
                self._store_unsubscribe = self.store.subscribe(self._on_store_change)
                logger.debug("notifier_attached")

        def unsubscribe() -> None:
            self._remove(token)

        return unsubscribe

    def _remove(self, token: int) -> None:
        with self._lock:
            self._subs = [s for s in self._subs if s.token != token]
            if not self._subs and self._store_unsubscribe is not None:
                self._store_unsubscribe()
                self._store_unsubscribe = None
                logger.debug("notifier_detached")

    def _on_store_change(self) -> None:
        # The store fires inside its lock, so only re-entrant writes reach here mid-delivery.
        if self._delivering:
            self._pending = True
            return
        self._delivering = True
        try:
            while True:
                self._pending = False
                self._deliver(self._snapshot())
                if not self._pending:
                    break
        finally:
            self._delivering = False
            self._pending = False

    def _deliver(self, current: list[Entry]) -> None:
        for sub in list(self._subs):
            if sub not in self._subs:
                continue
            previous, sub.last = sub.last, current
            try:
                sub.callback(current, previous)
            except Exception:
                logger.exception("listener_error", extra={"token": sub.token})
