from __future__ import annotations


class EntryError(Exception):
    pass


class EntryNotFound(EntryError, LookupError):
    def __init__(self, entry_id: str) -> None:
        super().__init__(entry_id)
        self.entry_id = entry_id


class InvalidTarget(EntryError, ValueError):
    def __init__(self, target_id: str | None, reason: str = "not_a_folder") -> None:
        super().__init__(f"{reason}: {target_id}")
        self.target_id = target_id
        self.reason = reason


class CycleError(EntryError, ValueError):
    def __init__(self, entry_id: str, target_id: str) -> None:
        super().__init__(f"{entry_id} -> {target_id}")
        self.entry_id = entry_id
        self.target_id = target_id


class PersistenceFailure(EntryError, OSError):
    pass
